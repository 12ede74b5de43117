#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from textwrap import dedent

from et_ast import (
    AssignStmt, CallExpr, CaseClause, CompositeLit, ExprStmt, FuncDecl, FuncLit, GenDecl, Ident, IfStmt, IndexExpr,
    RangeStmt, ReturnStmt, SelectorExpr, StarExpr, StructType, TypeAssertExpr, TypeSpec, TypeSwitchStmt, UnaryExpr,
    ValueSpec, format_expr)
from et_parser import parse_source


def parse(src):
    return parse_source(dedent(src), filename="a.go")


def parse_expr(text):
    f = parse_source(f"package p\nvar _ = {text}\n")
    return f.decls[0].specs[0].values[0]


def test_parse_package_imports_and_declarations():
    f = parse(
        """
        package a

        import (
            "errors"
            f "fmt"
        )

        type E struct{ msg string }

        func (e *E) Error() string { return e.msg }

        var ErrX = &E{"x"}
        """
    )
    assert f.package.name == "a"
    assert f.filename == "a.go"
    assert [s.path for s in f.imports] == ["errors", "fmt"]
    assert f.imports[0].name is None
    assert f.imports[1].name.name == "f"

    assert [type(d) for d in f.decls] == [GenDecl, GenDecl, FuncDecl, GenDecl]

    spec = f.decls[1].specs[0]
    assert isinstance(spec, TypeSpec)
    assert spec.name.name == "E"
    assert not spec.assign
    assert isinstance(spec.type, StructType)

    method = f.decls[2]
    assert method.name.name == "Error"
    recv = method.recv.list[0]
    assert recv.names[0].name == "e"
    assert isinstance(recv.type, StarExpr)
    assert isinstance(method.body.list[0], ReturnStmt)

    var = f.decls[3].specs[0]
    assert isinstance(var, ValueSpec)
    assert var.type is None
    value = var.values[0]
    assert isinstance(value, UnaryExpr) and value.op == "&"
    assert isinstance(value.x, CompositeLit)


def test_parse_alias_and_embedded_field():
    f = parse(
        """
        package a

        import "os"

        type PathError = os.PathError

        type C struct {
            error
            code int
        }
        """
    )
    alias = f.decls[1].specs[0]
    assert alias.assign
    assert isinstance(alias.type, SelectorExpr)

    fields = f.decls[2].specs[0].type.fields.list
    assert fields[0].names == []
    assert isinstance(fields[0].type, Ident) and fields[0].type.name == "error"
    assert [n.name for n in fields[1].names] == ["code"]


def test_parse_type_switch_with_binding():
    f = parse(
        """
        package a

        func f(err error) {
            switch e := err.(type) {
            case *E, nil:
                _ = e
            default:
            }
        }
        """
    )
    stmt = f.decls[0].body.list[0]
    assert isinstance(stmt, TypeSwitchStmt)
    assert isinstance(stmt.assign, AssignStmt)
    guard = stmt.assign.rhs[0]
    assert isinstance(guard, TypeAssertExpr) and guard.type is None

    first, second = stmt.body.list
    assert isinstance(first, CaseClause) and len(first.list) == 2
    assert isinstance(first.list[0], StarExpr)
    assert second.list is None


def test_parse_type_switch_without_binding():
    f = parse(
        """
        package a

        func f(err error) {
            switch err.(type) {
            case E:
            }
        }
        """
    )
    stmt = f.decls[0].body.list[0]
    assert isinstance(stmt, TypeSwitchStmt)
    assert isinstance(stmt.assign, ExprStmt)


def test_composite_literal_not_taken_in_control_clause():
    f = parse(
        """
        package a

        func f(err error, xs []int) error {
            if err != nil {
                return err
            }
            for _, x := range xs {
                _ = x
            }
            return nil
        }
        """
    )
    body = f.decls[0].body.list
    assert isinstance(body[0], IfStmt)
    assert isinstance(body[1], RangeStmt)
    assert body[1].tok == ":="
    assert isinstance(body[2], ReturnStmt)


def test_parse_generic_function_and_instantiation():
    f = parse(
        """
        package a

        func As[T any](err error) (T, bool) {
            var zero T
            return zero, false
        }

        func g(err error) {
            _, _ = As[*E](err)
        }
        """
    )
    generic = f.decls[0]
    assert generic.type.type_params is not None
    assert generic.type.type_params.list[0].names[0].name == "T"

    call = f.decls[1].body.list[0].rhs[0]
    assert isinstance(call, CallExpr)
    assert isinstance(call.fun, IndexExpr)
    assert isinstance(call.fun.indices[0], StarExpr)


def test_parse_func_literal_call():
    call = parse_expr("func() error { return nil }()")
    assert isinstance(call, CallExpr)
    assert isinstance(call.fun, FuncLit)


def test_format_expr_renders_source_form():
    assert format_expr(parse_expr("errors.As(err, &target)")) == "errors.As(err, &target)"
    assert format_expr(parse_expr("err.(*os.PathError)")) == "err.(*os.PathError)"
    assert format_expr(parse_expr("(*E)(nil)")) == "(*E)(nil)"
    assert format_expr(parse_expr("E{code: 1}")) == "E{code: 1}"
