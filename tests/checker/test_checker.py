#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import threading
from concurrent.futures import ThreadPoolExecutor

from conftest import has_error_code

from et_ast import CaseClause, ReturnStmt, TypeAssertExpr, TypeSwitchStmt, inspect
from et_symbols import Func, TypeName
from et_types import Alias, Named, Pointer, Struct, format_type, instantiate_named, under


def find_all(node, cls):
    found = []

    def visit(n):
        if isinstance(n, cls):
            found.append(n)
        return True

    inspect(node, visit)
    return found


def test_declares_types_and_methods(check_source):
    _, pkg, _, diags = check_source(
        """
        package p

        type E struct{ msg string }

        func (e *E) Error() string { return e.msg }

        func (e *E) Unwrap() error { return nil }
        """
    )
    assert diags == []
    obj = pkg.scope.lookup("E")
    assert isinstance(obj, TypeName)
    assert obj.parent is pkg.scope
    assert isinstance(obj.type, Named)
    assert isinstance(under(obj.type), Struct)
    assert [m.name for m in obj.type.methods] == ["Error", "Unwrap"]
    assert all(isinstance(m, Func) for m in obj.type.methods)


def test_declaration_order_does_not_matter(check_source):
    _, pkg, _, diags = check_source(
        """
        package p

        var ErrLate = &Late{}

        type Late struct{}

        func (*Late) Error() string { return "late" }
        """
    )
    assert diags == []
    assert format_type(pkg.scope.lookup("ErrLate").type) == "*example.com/p.Late"


def test_undefined_identifier_is_reported(check_source):
    _, _, _, diags = check_source(
        """
        package p

        func f() error { return missing }
        """
    )
    assert has_error_code(diags, "CHK-0010")
    assert "undefined: missing" in diags[0].message


def test_unknown_field_in_struct_literal(check_source):
    _, _, _, diags = check_source(
        """
        package p

        type E struct{ msg string }

        var x = E{code: 1}
        """
    )
    assert has_error_code(diags, "CHK-0020")


def test_unresolved_import_is_reported(check_source):
    _, pkg, _, diags = check_source(
        """
        package p

        import "example.com/missing"

        var _ = missing.Thing
        """
    )
    assert has_error_code(diags, "CHK-0050")
    assert pkg.imports[0].fake


def test_records_return_expression_types(check_source):
    file, _, info, diags = check_source(
        """
        package p

        type E struct{}

        func (*E) Error() string { return "" }

        func f() error { return &E{} }

        func g() error { return nil }
        """
    )
    assert diags == []
    _, ret_f, ret_g = find_all(file, ReturnStmt)

    tv = info.types[ret_f.results[0]]
    assert tv.is_value
    assert isinstance(tv.type, Pointer)
    assert format_type(tv.type) == "*example.com/p.E"

    assert info.types[ret_g.results[0]].is_nil


def test_type_assertion_records_asserted_type(check_source):
    file, _, info, diags = check_source(
        """
        package p

        type E struct{}

        func (E) Error() string { return "" }

        func f(err error) bool {
            e, ok := err.(E)
            _ = e
            return ok
        }
        """
    )
    assert diags == []
    (assertion,) = find_all(file, TypeAssertExpr)
    tv = info.types[assertion]
    assert tv.is_value
    assert format_type(tv.type) == "example.com/p.E"
    assert info.types[assertion.type].is_type


def test_type_switch_cases_record_types_and_nil(check_source):
    file, _, info, diags = check_source(
        """
        package p

        type E struct{}

        func (*E) Error() string { return "" }

        func f(err error) {
            switch e := err.(type) {
            case *E:
                _ = e
            case nil:
            }
        }
        """
    )
    assert diags == []
    (switch,) = find_all(file, TypeSwitchStmt)
    first, second = [c for c in switch.body.list if isinstance(c, CaseClause)]
    assert info.types[first.list[0]].is_type
    assert isinstance(info.types[first.list[0]].type, Pointer)
    assert info.types[second.list[0]].is_nil


def test_alias_declaration(check_source):
    _, pkg, _, diags = check_source(
        """
        package p

        type E struct{}

        func (E) Error() string { return "" }

        type A = E
        """
    )
    assert diags == []
    alias = pkg.scope.lookup("A")
    assert alias.is_alias
    assert not pkg.scope.lookup("E").is_alias
    assert isinstance(alias.type, (Alias, Named))


def test_local_type_is_not_in_package_scope(check_source):
    _, pkg, info, diags = check_source(
        """
        package p

        func f() error {
            type local struct{ error }
            return local{}
        }
        """
    )
    assert diags == []
    assert pkg.scope.lookup("local") is None
    local = next(obj for obj in info.defs.values() if isinstance(obj, TypeName) and obj.name == "local")
    assert local.parent is not pkg.scope


def test_generic_instances_are_shared_across_threads(check_source):
    _, pkg, _, diags = check_source(
        """
        package p

        type Box[T any] struct{ v T }

        var n int
        """
    )
    assert diags == []
    origin = pkg.scope.lookup("Box").type
    int_type = pkg.scope.lookup("n").type
    start = threading.Barrier(8)

    def instantiate(_):
        start.wait()
        return [instantiate_named(origin, [int_type]) for _ in range(50)]

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = [inst for batch in executor.map(instantiate, range(8)) for inst in batch]

    assert len(origin.instances) == 1
    assert all(inst is origin.instances[0] for inst in results)
    assert format_type(results[0]) == "example.com/p.Box[int]"
