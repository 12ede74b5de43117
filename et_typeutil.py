#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple as PyTuple

from et_ast import (
    AssignStmt, CallExpr, Expr, ExprStmt, FieldList, Ident, IndexExpr, ParenExpr, SelectorExpr, TypeAssertExpr,
    TypeSwitchStmt)
from et_checker import SelectionKind, TypesInfo
from et_symbols import Func, TypeName, lookup_field_or_method
from et_types import Alias, Basic, Named, Pointer, Signature, Type, unalias

__all__ = [
    "FuncName",
    "func_name_of",
    "func_of",
    "has_error_method",
    "has_error_result",
    "has_error_sig",
    "has_pointer_receiver",
    "is_errors_as",
    "lookup_field_or_method",
    "relative_to",
    "type_name_of",
    "type_switch_expr",
]


def type_name_of(t: Optional[Type]) -> PyTuple[Optional[TypeName], bool, bool]:
    """
    Find the declared type name behind `t`, looking through one pointer.

    Returns `(type_name, is_ptr, ok)`; `ok` is False for anonymous types
    such as struct literals, nil or a pointer to an unnamed type.
    """
    if isinstance(t, (Named, Alias)):
        return t.obj, False, True
    if isinstance(t, Pointer):
        elem = t.elem
        if isinstance(elem, (Named, Alias)):
            return elem.obj, True, True
        return None, True, False
    return None, False, False


def type_switch_expr(n: TypeSwitchStmt) -> Optional[Expr]:
    """The operand of `switch x := y.(type)` or `switch y.(type)`."""
    assert_expr = None
    if isinstance(n.assign, AssignStmt):
        if n.assign.rhs and isinstance(n.assign.rhs[0], TypeAssertExpr):
            assert_expr = n.assign.rhs[0]
    elif isinstance(n.assign, ExprStmt):
        if isinstance(n.assign.x, TypeAssertExpr):
            assert_expr = n.assign.x

    if assert_expr is None or assert_expr.type is not None:
        return None
    return assert_expr.x


def has_error_sig(sig: Optional[Signature]) -> bool:
    """Is `sig` shaped like `func() string`?"""
    if sig is None or len(sig.params) > 0 or len(sig.results) != 1:
        return False
    restype = unalias(sig.results.at(0).type)
    return isinstance(restype, Basic) and restype.name == "string"


def has_error_method(t: Optional[Type]) -> bool:
    """
    Does the method set of `t` contain `Error() string`?

    When T implements error, *T does as well, but not the other way around.
    """
    if t is None:
        return False
    obj, _, _ = lookup_field_or_method(t, False, "Error")
    return isinstance(obj, Func) and has_error_sig(obj.signature)


def has_pointer_receiver(sig: Optional[Signature]) -> PyTuple[Optional[Type], bool]:
    """Returns `(elem, True)` when `sig` is a method with a pointer receiver."""
    if sig is None or sig.recv is None:
        return None, False
    recv = unalias(sig.recv.type)
    if isinstance(recv, Pointer):
        return recv.elem, True
    return None, False


def has_error_result(info: TypesInfo, results: Optional[FieldList]) -> int:
    """
    Index of the error-bearing result of a function, or -1.

    Only the last declared result is considered; the index counts every
    name of grouped results.
    """
    if results is None or not results.list:
        return -1
    last = results.list[-1].type
    tv = info.types.get(last)
    if tv is not None and has_error_method(tv.type):
        return results.num_fields() - 1
    return -1


def func_of(info: TypesInfo, ex: Expr):
    """
    Unwrap a call's function expression to the function it denotes.

    Returns `(func, type_params, method_expr, ok)`. `type_params` holds the
    explicit type argument expressions of a generic instantiation.
    """
    tp: List[Expr] = []
    while True:
        if isinstance(ex, Ident):
            fun = info.uses.get(ex)
            if isinstance(fun, Func):
                return fun, tp, False, True
            return None, tp, False, False

        if isinstance(ex, SelectorExpr):
            sel = info.selections.get(ex)
            if sel is None:
                # Package-qualified identifier.
                fun = info.uses.get(ex.sel)
                if isinstance(fun, Func):
                    return fun, tp, False, True
                return None, tp, False, False
            if sel.kind is SelectionKind.METHOD_VAL and isinstance(sel.obj, Func):
                return sel.obj, tp, False, True
            if sel.kind is SelectionKind.METHOD_EXPR and isinstance(sel.obj, Func):
                return sel.obj, tp, True, True
            return None, [], False, False  # struct field selector

        if isinstance(ex, IndexExpr):
            if tp:
                return None, [], False, False
            for index in ex.indices:
                tv = info.types.get(index)
                if tv is None or not tv.is_type:
                    return None, [], False, False  # slice or map index
                tp.append(index)
            ex = ex.x
            continue

        if isinstance(ex, ParenExpr):
            ex = ex.x
            continue

        return None, [], False, False


@dataclass(frozen=True)
class FuncName:
    path: str
    name: str
    receiver: str = ""
    ptr: bool = False


def func_name_of(fun: Func) -> FuncName:
    path = fun.pkg.path if fun.pkg is not None else ""
    sig = fun.signature
    if sig is None or sig.recv is None:
        return FuncName(path, fun.name)
    recv = unalias(sig.recv.type)
    ptr = False
    if isinstance(recv, Pointer):
        recv, ptr = unalias(recv.elem), True
    receiver = recv.obj.name if isinstance(recv, Named) else ""
    return FuncName(path, fun.name, receiver, ptr)


@dataclass(frozen=True)
class _AsTarget:
    arg_index: int
    type_param: int


_AS_PACKAGES = (
    "errors",
    "golang.org/x/exp/errors",
    "golang.org/x/xerrors",
    "github.com/pkg/errors",
    "github.com/go-errors/errors",
    "github.com/cockroachdb/errors",
    "github.com/cockroachdb/errors/errutil",
    "github.com/juju/errors",
)

_TESTIFY_PACKAGES = (
    "github.com/stretchr/testify/assert",
    "github.com/stretchr/testify/require",
)

_TESTIFY_NAMES = ("ErrorAs", "ErrorAsf", "NotErrorAs", "NotErrorAsf")


def _build_errors_as() -> Dict[FuncName, _AsTarget]:
    registry: Dict[FuncName, _AsTarget] = {}
    for path in _AS_PACKAGES:
        registry[FuncName(path, "As")] = _AsTarget(1, -1)
    registry[FuncName("reflect", "TypeAssert")] = _AsTarget(-1, 0)
    registry[FuncName("github.com/juju/errors", "AsType")] = _AsTarget(-1, 0)
    registry[FuncName("github.com/juju/errors", "HasType")] = _AsTarget(-1, 0)
    for path in _TESTIFY_PACKAGES:
        for name in _TESTIFY_NAMES:
            registry[FuncName(path, name)] = _AsTarget(2, -1)
            registry[FuncName(path, name, "Assertions", True)] = _AsTarget(1, -1)
    return registry


# Functions that behave like errors.As, mapped to their "target" argument
# or to the type parameter used as the target.
ERRORS_AS = _build_errors_as()


def is_errors_as(info: TypesInfo, call: CallExpr) -> PyTuple[Optional[Func], Optional[Expr], int]:
    """
    Recognize an errors.As-style call.

    Returns `(func, target_type_expr, target_arg_index)`: the index of the
    target argument, or the explicit type argument used as the target for
    generic forms (index -1). `(None, None, -1)` for anything else.
    """
    fun, type_params, method_expr, ok = func_of(info, call.fun)
    if not ok:
        return None, None, -1

    target = ERRORS_AS.get(func_name_of(fun))
    if target is None:
        return None, None, -1

    if target.type_param >= 0:
        if len(type_params) <= target.type_param:
            return None, None, -1
        return fun, type_params[target.type_param], -1

    index = target.arg_index
    if method_expr:
        # (*assert.Assertions).ErrorAs(a, err, &target): the receiver comes first.
        index += 1
    return fun, None, index


def relative_to(pkg):
    """Qualifier that omits the package path for types of `pkg`."""
    def qualifier(other) -> str:
        if other is pkg:
            return ""
        return other.path
    return qualifier
