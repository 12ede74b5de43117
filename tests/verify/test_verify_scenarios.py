#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import codes_of, has_error_code

import et_verify
from et_context import AnalysisContext
from et_errortypes import ErrorType, TypeName
from et_overrides import Override


def test_pointer_error_returned_by_value(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func fail() error { return A{} }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["RET-0011"]

    diag = result.diagnostics[0]
    assert diag.message == (
        '[RET-0011] Error type "A" should be returned as a pointer ("&A{...}"), not by value. (et:ret+)'
    )
    assert diag.category == "ret+"
    assert diag.module_name == "example.com/a"
    assert diag.filename.endswith("a.go")
    assert (diag.line, diag.column) == (8, 28)


def test_value_error_target_is_pointer_to_pointer(write_go_package, analyze_packages):
    write_go_package("example.com/b", """
        package b

        import "errors"

        type B struct{}

        func (B) Error() string { return "" }

        var _ error = B{}

        func is(err error) bool {
            var target *B
            return errors.As(err, &target)
        }
    """)
    result = analyze_packages("example.com/b")
    assert codes_of(result.diagnostics) == ["ASX-0010"]
    message = result.diagnostics[0].message
    assert 'Target for value error "B" is a pointer-to-pointer' in message
    assert '"var target B; ... errors.As(err, &target)"' in message
    assert result.diagnostics[0].category == "err"


def test_undetermined_type_reported_at_every_site(write_go_package, analyze_packages):
    write_go_package("example.com/c", """
        package c

        type C struct {
            error
        }

        func kind(err error) int {
            switch err.(type) {
            case C:
                return 1
            case *C:
                return 2
            }
            return 0
        }
    """)
    result = analyze_packages("example.com/c")
    assert codes_of(result.diagnostics) == ["UND-0010", "UND-0011"]
    assert [d.category for d in result.diagnostics] == ["emb", "emb+"]
    assert 'Undetermined usage for error type "C"' in result.diagnostics[0].message

    verified = result.verify_results["example.com/c"]
    assert verified.inconsistent == [TypeName("example.com/c", "C")]


def test_pointer_override_changes_expectation(write_go_package, analyze_packages):
    write_go_package("example.com/d", """
        package d

        type D struct{}

        func (D) Error() string { return "" }

        func ok() error { return &D{} }

        func bad() error { return D{} }
    """)
    result = analyze_packages(
        "example.com/d", overrides=[Override(TypeName("example.com/d", "D"), ErrorType.POINTER)]
    )
    assert codes_of(result.diagnostics) == ["RET-0011"]


def test_suppressed_type_is_never_reported(write_go_package, analyze_packages):
    write_go_package("example.com/d", """
        package d

        type D struct{}

        func (*D) Error() string { return "" }

        func one() error { return &D{} }

        func two(err error) bool {
            _, ok := err.(D)
            return ok
        }
    """)
    result = analyze_packages(
        "example.com/d", overrides=[Override(TypeName("example.com/d", "D"), ErrorType.SUPPRESS)]
    )
    assert result.diagnostics == []


def test_value_error_returned_as_pointer_in_other_package(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type V struct{}

        func (V) Error() string { return "" }

        var _ error = V{}
    """)
    write_go_package("example.com/b", """
        package b

        import "example.com/a"

        func fail() (int, error) { return 0, &a.V{} }
    """)
    result = analyze_packages("example.com/b")
    assert codes_of(result.diagnostics) == ["RET-0010"]
    assert result.diagnostics[0].message == (
        '[RET-0010] Error type "example.com/a.V" should be returned by value ("a.V{...}"), '
        'not as a pointer. (et:ret)'
    )


def test_multi_valued_call_in_return_is_skipped(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func inner() (int, error) { return 0, &A{} }

        func outer() (int, error) { return inner() }
    """)
    result = analyze_packages("example.com/a")
    assert result.diagnostics == []


def test_nested_function_literal_returns_are_checked_once(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func outer() error {
            f := func() error { return A{} }
            _ = f
            return nil
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["RET-0011"]


def test_type_assertions(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type P struct{}

        func (*P) Error() string { return "" }

        type V struct{}

        func (V) Error() string { return "" }

        var _ error = V{}

        func check(err error, x any) {
            _, _ = err.(P)
            _, _ = err.(*V)
            _, _ = err.(*P)
            _, _ = x.(V)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["AST-0011", "AST-0010"]
    assert '("err.(*P)")' in result.diagnostics[0].message
    assert '("err.(V)")' in result.diagnostics[1].message


def test_type_switch_cases(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type P struct{}

        func (*P) Error() string { return "" }

        type V struct{}

        func (V) Error() string { return "" }

        var _ error = V{}

        func kind(err error) int {
            switch e := err.(type) {
            case nil:
                return 0
            case *V, P:
                _ = e
                return 1
            case *P, V:
                return 2
            }
            return 3
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["SWT-0010", "SWT-0011"]
    assert '("case V:")' in result.diagnostics[0].message
    assert '("case *P:")' in result.diagnostics[1].message


def test_pointer_error_target_is_pointer_to_value(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "errors"

        type P struct{}

        func (P) Error() string { return "" }

        var ErrP = &P{}

        func is(err error) bool {
            var p P
            return errors.As(err, &p)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["ASX-0011"]
    assert '"var p *P; ... errors.As(err, &p)"' in result.diagnostics[0].message


def test_value_of_pointer_receiver_type_is_not_an_error_target(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "errors"

        type P struct{}

        func (*P) Error() string { return "" }

        func is(err error) bool {
            var p P
            return errors.As(err, &p)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["ARG-0010"]
    assert "but P does not." in result.diagnostics[0].message


def test_malformed_and_non_error_targets(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "errors"

        type V struct{}

        func (V) Error() string { return "" }

        var _ error = V{}

        func check(err error) {
            var s string
            errors.As(err, &s)

            var v V
            errors.As(err, v)

            var t interface{ Timeout() bool }
            errors.As(err, &t)

            var e error
            errors.As(err, e)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["ARG-0010", "ARG-0020"]
    assert result.diagnostics[0].message == (
        "[ARG-0010] Expected pointer to type implementing error, but string does not. (et:arg)"
    )
    assert result.diagnostics[1].message == (
        '[ARG-0020] Target argument in As must be a pointer or an interface, '
        'got "v" (type example.com/a.V). (et:arg)'
    )


def test_style_check_on_target_expression(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "errors"

        type P struct{}

        func (*P) Error() string { return "" }

        func is(err error) bool {
            var p *P
            target := &p
            return errors.As(err, target)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["STY-0010"]
    assert '"var target *P; ... errors.As(err, &target)"' in result.diagnostics[0].message
    assert result.diagnostics[0].category == "sty"

    relaxed = analyze_packages("example.com/a", context=AnalysisContext(style_check=False))
    assert relaxed.diagnostics == []


def test_generic_as_target(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "reflect"

        type V struct{}

        func (V) Error() string { return "" }

        var _ error = V{}

        func get(v reflect.Value) {
            _, _ = reflect.TypeAssert[*V](v)
            _, _ = reflect.TypeAssert[V](v)
        }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["GEN-0010"]
    assert '("reflect.TypeAssert[V]")' in result.diagnostics[0].message


def test_generic_target_without_type_info(write_go_package, analyze_packages, monkeypatch):
    write_go_package("example.com/a", """
        package a

        import "reflect"

        type P struct{}

        func (*P) Error() string { return "" }

        func get(v reflect.Value) {
            _, _ = reflect.TypeAssert[*P](v)
        }
    """)
    result = analyze_packages("example.com/a")
    assert result.diagnostics == []

    is_errors_as = et_verify.is_errors_as

    def forget_target_type(info, call):
        fun, target_expr, index = is_errors_as(info, call)
        if target_expr is not None:
            info.types.pop(target_expr, None)
        return fun, target_expr, index

    monkeypatch.setattr(et_verify, "is_errors_as", forget_target_type)
    verified = et_verify.verify_package(result.roots[0], result.detect_results["example.com/a"])
    assert codes_of(verified.diagnostics) == ["INT-0010"]
    assert "Expected type as generic target" in verified.diagnostics[0].message


def test_local_types_are_not_checked(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        func fail(err error) error {
            type local struct{ error }
            return &local{err}
        }
    """)
    result = analyze_packages("example.com/a")
    assert result.diagnostics == []


def test_only_requested_packages_are_verified(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func fail() error { return A{} }
    """)
    write_go_package("example.com/b", """
        package b

        import "example.com/a"

        var _ error = &a.A{}
    """)
    result = analyze_packages("example.com/b")
    assert result.diagnostics == []
    assert "example.com/a" not in result.verify_results
    assert "example.com/a" in result.detect_results


def test_library_type_used_as_value(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "os"

        func check(err error) bool {
            _, ok := err.(os.PathError)
            return ok
        }
    """)
    result = analyze_packages("example.com/a")
    assert has_error_code(result.diagnostics, "AST-0011")
    assert '"io/fs.PathError"' in result.diagnostics[0].message


def test_library_alias_used_as_pointer(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "os"

        func check(err error) bool {
            _, ok := err.(*os.PathError)
            return ok
        }
    """)
    result = analyze_packages("example.com/a")
    assert result.diagnostics == []


def test_local_alias_is_named_by_its_target(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type E struct{}

        func (*E) Error() string { return "" }

        type Alias = E

        func fail() error { return Alias{} }
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["RET-0011"]
    assert 'Error type "E" should be returned as a pointer' in result.diagnostics[0].message
