"""
Diagnostic messages of the usage verifier.

Every message starts with its code and ends with its category tag, e.g.

    [RET-0010] Error type "a.E" should be returned by value ("E{...}"), not as a pointer. (et:ret)

Type names in the quoted part are relative to the current package (full
import path otherwise); suggested source fragments qualify by package name.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from et_ast import Expr, Ident, UnaryExpr, format_expr, unparen
from et_symbols import Func, Package, TypeName as TypeObject
from et_types import Type, format_type


class SiteKind(Enum):
    RETURN = auto()
    ASSERT = auto()
    SWITCH_CASE = auto()
    AS_TARGET = auto()
    GENERIC_AS_TARGET = auto()


@dataclass
class UsageSite:
    """
    Where an error type is referenced.

    - expr: the returned value, asserted type, case type, target argument
      or type argument
    - fun: the called function for "as"-style sites
    """
    kind: SiteKind
    expr: Expr
    pkg: Package
    fun: Optional[Func] = None

    def relative_name(self, tn: TypeObject) -> str:
        pkg = self.pkg
        return format_type(tn.type, lambda other: "" if other is pkg else other.path)

    def import_name(self, t: Type) -> str:
        pkg = self.pkg
        return format_type(t, lambda other: "" if other is pkg else other.name)

    def fun_name(self) -> str:
        """Short function name, not necessarily matching the file's imports."""
        fun = self.fun
        if fun is None:
            return ""
        if fun.pkg is not None:
            return f"{fun.pkg.name}.{fun.name}"
        return fun.name

    def var_id(self) -> Optional[Ident]:
        """The variable of a `&name` target."""
        e = unparen(self.expr)
        if isinstance(e, UnaryExpr) and e.op == "&":
            x = unparen(e.x)
            if isinstance(x, Ident):
                return x
        return None

    def var_name(self) -> str:
        ident = self.var_id()
        return ident.name if ident is not None else "target"


_CATEGORY_RE = re.compile(r"\(et:([a-z]+\+?)\)$")


def category_of(message: str) -> Optional[str]:
    """The category tag a message ends with, e.g. "ret+"."""
    m = _CATEGORY_RE.search(message)
    return m.group(1) if m else None


# ==========================
# Pointer / value mismatches
# ==========================

def should_be_value(site: UsageSite, tn: TypeObject) -> str:
    """A value error type used as a pointer."""
    full, short = site.relative_name(tn), site.import_name(tn.type)
    kind = site.kind

    if kind is SiteKind.RETURN:
        return f'[RET-0010] Error type "{full}" should be returned by value ("{short}{{...}}"), not as a pointer. (et:ret)'
    if kind is SiteKind.ASSERT:
        return (f'[AST-0010] Value error "{full}" should be asserted as a value ("err.({short})"), '
                f'not as a pointer. (et:ast)')
    if kind is SiteKind.SWITCH_CASE:
        return (f'[SWT-0010] Value error "{full}" should be used as a value type ("case {short}:") '
                f'in the type switch, not as a pointer type. (et:ast)')
    if kind is SiteKind.AS_TARGET:
        # errors.As(err, &p) with p of type *ValueError.
        var = site.var_name()
        return (f'[ASX-0010] Target for value error "{full}" is a pointer-to-pointer, use a pointer to a value '
                f'instead: "var {var} {short}; ... {site.fun_name()}(err, &{var})". (et:err)')
    if kind is SiteKind.GENERIC_AS_TARGET:
        return (f'[GEN-0010] Error type "{full}" should be queried as a value ("{site.fun_name()}[{short}]"), '
                f'not a pointer. (et:ast)')
    raise ValueError(f"unknown site kind {kind}")


def should_be_pointer(site: UsageSite, tn: TypeObject) -> str:
    """A pointer error type used as a value."""
    full, short = site.relative_name(tn), site.import_name(tn.type)
    kind = site.kind

    if kind is SiteKind.RETURN:
        return f'[RET-0011] Error type "{full}" should be returned as a pointer ("&{short}{{...}}"), not by value. (et:ret+)'
    if kind is SiteKind.ASSERT:
        return (f'[AST-0011] Pointer error "{full}" should be asserted as a pointer ("err.(*{short})"), '
                f'not as a value. (et:ast+)')
    if kind is SiteKind.SWITCH_CASE:
        return (f'[SWT-0011] Pointer error "{full}" should be used as a pointer type ("case *{short}:") '
                f'in the type switch, not as a value type. (et:ast+)')
    if kind is SiteKind.AS_TARGET:
        # errors.As(err, &p) with p of type PointerError.
        var = site.var_name()
        return (f'[ASX-0011] Target for pointer error "{full}" is a pointer-to-value, use a pointer to a pointer '
                f'instead: "var {var} *{short}; ... {site.fun_name()}(err, &{var})". (et:err+)')
    if kind is SiteKind.GENERIC_AS_TARGET:
        return (f'[GEN-0011] Error type "{full}" should be queried as a pointer ("{site.fun_name()}[*{short}]"), '
                f'not a value. (et:ast+)')
    raise ValueError(f"unknown site kind {kind}")


def undetermined_usage(site: UsageSite, tn: TypeObject, is_ptr: bool) -> str:
    code, plus = ("UND-0011", "+") if is_ptr else ("UND-0010", "")
    return (f'[{code}] Undetermined usage for error type "{site.relative_name(tn)}". '
            f'Specify in the configuration whether it is a pointer or value error. (et:emb{plus})')


# ==========================
# Target arguments
# ==========================

def non_error_target(site: UsageSite, elem: Type) -> str:
    """Pointer target whose element does not implement error."""
    name = format_type(elem, lambda other: "" if other is site.pkg else other.path)
    return f"[ARG-0010] Expected pointer to type implementing error, but {name} does not. (et:arg)"


def malformed_target(site: UsageSite, target_type: Type) -> str:
    """Target that is neither a pointer nor an interface."""
    name = site.fun.name if site.fun is not None else ""
    return (f'[ARG-0020] Target argument in {name} must be a pointer or an interface, '
            f'got "{format_expr(site.expr)}" (type {format_type(target_type)}). (et:arg)')


def style_violation(site: UsageSite, elem: Type) -> Optional[str]:
    """None when the target is `&variable`."""
    if site.var_id() is not None:
        return None
    return (f'[STY-0010] Target is not an address operation on a variable, use '
            f'"var target {site.import_name(elem)}; ... {site.fun_name()}(err, &target)" instead. (et:sty)')


def internal_error(message: str) -> str:
    return f"[INT-0010] Internal error: {message}. (et:xxx)"
