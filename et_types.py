#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from et_symbols import Func, Package, TypeName, Var

# ========================================
# The semantic type system of the analyzed language.
# ========================================

BASIC_TYPE_NAMES = (
    "bool", "string",
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "float32", "float64", "complex64", "complex128",
)


class Type:
    """
    Base class for all semantic types.
    Used only as a common marker; concrete types are dataclasses below.
    """
    pass


@dataclass(eq=False)
class Basic(Type):
    name: str  # "int", "untyped int", "invalid", ...

    @property
    def is_untyped(self) -> bool:
        return self.name.startswith("untyped ")

    @property
    def is_string(self) -> bool:
        return self.name in ("string", "untyped string")

    @property
    def is_integer(self) -> bool:
        n = self.name
        return n.startswith("int") or n.startswith("uint") or n in ("untyped int", "untyped rune")

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self.name.startswith("float") or self.name.startswith("complex") \
            or self.name in ("untyped float", "untyped complex")

    @property
    def is_boolean(self) -> bool:
        return self.name in ("bool", "untyped bool")


@dataclass(eq=False)
class Named(Type):
    obj: "TypeName"
    underlying_: Optional[Type] = None
    methods: List["Func"] = field(default_factory=list)
    type_params: List["TypeParam"] = field(default_factory=list)
    type_args: List[Type] = field(default_factory=list)
    origin_: Optional["Named"] = None
    instances: List["Named"] = field(default_factory=list, repr=False)
    # Set by the checker for lazily resolved declarations.
    resolver: Optional[Callable[[], None]] = field(default=None, repr=False)
    _resolving: bool = field(default=False, repr=False)

    def origin(self) -> "Named":
        return self.origin_ if self.origin_ is not None else self

    def underlying(self) -> Type:
        if self.underlying_ is None and self.resolver is not None:
            resolve, self.resolver = self.resolver, None
            resolve()
        if self.underlying_ is None and self.origin_ is not None:
            origin_under = self.origin_.underlying()
            mapping = dict(zip(self.origin_.type_params, self.type_args))
            self.underlying_ = subst(origin_under, mapping)
        if self.underlying_ is None or self._resolving:
            return INVALID
        # "type A B" with B declared later: collapse the chain on first use.
        if isinstance(self.underlying_, (Named, Alias)):
            self._resolving = True
            try:
                self.underlying_ = under(self.underlying_)
            finally:
                self._resolving = False
        return self.underlying_

    def all_methods(self) -> List["Func"]:
        return self.origin().methods

    def method(self, name: str) -> Optional["Func"]:
        for m in self.all_methods():
            if m.name == name:
                return m
        return None


@dataclass(eq=False)
class Alias(Type):
    obj: "TypeName"
    rhs: Optional[Type] = None
    resolver: Optional[Callable[[], None]] = field(default=None, repr=False)

    def actual(self) -> Type:
        if self.rhs is None and self.resolver is not None:
            resolve, self.resolver = self.resolver, None
            resolve()
        return self.rhs if self.rhs is not None else INVALID


@dataclass(eq=False)
class Pointer(Type):
    elem: Type


@dataclass(eq=False)
class Slice(Type):
    elem: Type


@dataclass(eq=False)
class Array(Type):
    length: Optional[int]
    elem: Type


@dataclass(eq=False)
class Map(Type):
    key: Type
    elem: Type


@dataclass(eq=False)
class Chan(Type):
    dir: str  # "both", "send", "recv"
    elem: Type


@dataclass(eq=False)
class Struct(Type):
    fields: List["Var"] = field(default_factory=list)
    tags: List[Optional[str]] = field(default_factory=list)


@dataclass(eq=False)
class Interface(Type):
    methods: List["Func"] = field(default_factory=list)  # explicitly declared
    embeddeds: List[Type] = field(default_factory=list)  # embedded interfaces and type-set terms
    _all: Optional[List["Func"]] = field(default=None, repr=False)

    def all_methods(self) -> List["Func"]:
        """Declared plus embedded methods, computed once on first use."""
        if self._all is None:
            result: List["Func"] = list(self.methods)
            names = {m.name for m in result}
            for emb in self.embeddeds:
                u = under(emb)
                if isinstance(u, Interface) and u is not self:
                    for m in u.all_methods():
                        if m.name not in names:
                            names.add(m.name)
                            result.append(m)
            self._all = result
        return self._all

    @property
    def is_empty(self) -> bool:
        return not self.all_methods() and not any(not isinstance(under(e), Interface) for e in self.embeddeds)


@dataclass(eq=False)
class Tuple(Type):
    vars: List["Var"] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.vars)

    def at(self, i: int) -> "Var":
        return self.vars[i]


@dataclass(eq=False)
class Signature(Type):
    params: Tuple
    results: Tuple
    variadic: bool = False
    recv: Optional["Var"] = None
    type_params: List["TypeParam"] = field(default_factory=list)


@dataclass(eq=False)
class TypeParam(Type):
    obj: "TypeName"
    index: int
    constraint: Optional[Type] = None


# --- helpers for builtins ---

_BASIC_CACHE: Dict[str, Basic] = {}


def get_basic(name: str) -> Basic:
    """
    Get (or create) the canonical Basic type for a given name.
    """
    if name not in _BASIC_CACHE:
        _BASIC_CACHE[name] = Basic(name)
    return _BASIC_CACHE[name]


INVALID = get_basic("invalid")
UNTYPED_NIL = get_basic("untyped nil")
UNTYPED_BOOL = get_basic("untyped bool")
UNTYPED_INT = get_basic("untyped int")
UNTYPED_RUNE = get_basic("untyped rune")
UNTYPED_FLOAT = get_basic("untyped float")
UNTYPED_COMPLEX = get_basic("untyped complex")
UNTYPED_STRING = get_basic("untyped string")

_DEFAULT_TYPES = {
    "untyped bool": "bool",
    "untyped int": "int",
    "untyped rune": "int32",
    "untyped float": "float64",
    "untyped complex": "complex128",
    "untyped string": "string",
}


def default_type(t: Type) -> Type:
    """The type an untyped constant takes when nothing else constrains it."""
    if isinstance(t, Basic) and t.name in _DEFAULT_TYPES:
        return get_basic(_DEFAULT_TYPES[t.name])
    return t


# --- structural helpers ---

def unalias(t: Optional[Type]) -> Optional[Type]:
    seen = 0
    while isinstance(t, Alias) and seen < 100:
        t = t.actual()
        seen += 1
    return t


def under(t: Optional[Type]) -> Type:
    t = unalias(t)
    if t is None:
        return INVALID
    if isinstance(t, Named):
        return t.underlying()
    return t


def is_interface(t: Optional[Type]) -> bool:
    return isinstance(under(t), Interface)


def is_invalid(t: Optional[Type]) -> bool:
    return t is None or t is INVALID


def deref(t: Type):
    """Return (elem, True) for a pointer type, (t, False) otherwise."""
    u = unalias(t)
    if isinstance(u, Pointer):
        return u.elem, True
    return t, False


def identical(a: Optional[Type], b: Optional[Type]) -> bool:
    a = unalias(a)
    b = unalias(b)
    if a is b:
        return True
    if a is None or b is None:
        return False
    if isinstance(a, Named) and isinstance(b, Named):
        if a.origin() is not b.origin() or len(a.type_args) != len(b.type_args):
            return False
        return all(identical(x, y) for x, y in zip(a.type_args, b.type_args))
    if type(a) is not type(b):
        return False
    if isinstance(a, Basic):
        return a.name == b.name
    if isinstance(a, (Pointer, Slice)):
        return identical(a.elem, b.elem)
    if isinstance(a, Array):
        return a.length == b.length and identical(a.elem, b.elem)
    if isinstance(a, Map):
        return identical(a.key, b.key) and identical(a.elem, b.elem)
    if isinstance(a, Chan):
        return a.dir == b.dir and identical(a.elem, b.elem)
    if isinstance(a, Struct):
        if len(a.fields) != len(b.fields):
            return False
        return all(f.name == g.name and f.embedded == g.embedded and identical(f.type, g.type)
                   for f, g in zip(a.fields, b.fields))
    if isinstance(a, Interface):
        am = sorted(a.all_methods(), key=lambda m: m.name)
        bm = sorted(b.all_methods(), key=lambda m: m.name)
        if len(am) != len(bm):
            return False
        return all(m.name == n.name and identical(m.type, n.type) for m, n in zip(am, bm))
    if isinstance(a, Signature):
        return (a.variadic == b.variadic
                and _identical_tuples(a.params, b.params)
                and _identical_tuples(a.results, b.results))
    if isinstance(a, Tuple):
        return _identical_tuples(a, b)
    return False


def _identical_tuples(a: Tuple, b: Tuple) -> bool:
    return len(a) == len(b) and all(identical(x.type, y.type) for x, y in zip(a.vars, b.vars))


def subst(t: Optional[Type], mapping: Dict["TypeParam", Type]) -> Optional[Type]:
    """Replace type parameters in `t` according to `mapping`."""
    if t is None or not mapping:
        return t
    if isinstance(t, TypeParam):
        return mapping.get(t, t)
    if isinstance(t, Pointer):
        elem = subst(t.elem, mapping)
        return t if elem is t.elem else Pointer(elem)
    if isinstance(t, Slice):
        elem = subst(t.elem, mapping)
        return t if elem is t.elem else Slice(elem)
    if isinstance(t, Array):
        elem = subst(t.elem, mapping)
        return t if elem is t.elem else Array(t.length, elem)
    if isinstance(t, Map):
        return Map(subst(t.key, mapping), subst(t.elem, mapping))
    if isinstance(t, Chan):
        return Chan(t.dir, subst(t.elem, mapping))
    if isinstance(t, Named):
        if not t.type_args:
            return t
        args = [subst(a, mapping) for a in t.type_args]
        if all(x is y for x, y in zip(args, t.type_args)):
            return t
        return instantiate_named(t.origin(), args)
    if isinstance(t, Struct):
        from et_symbols import Var
        fields = [Var(f.name, f.pkg, subst(f.type, mapping), is_field=True, embedded=f.embedded)
                  for f in t.fields]
        return Struct(fields, list(t.tags))
    if isinstance(t, Tuple):
        from et_symbols import Var
        return Tuple([Var(v.name, v.pkg, subst(v.type, mapping)) for v in t.vars])
    if isinstance(t, Signature):
        remaining = [tp for tp in t.type_params if tp not in mapping]
        return Signature(subst(t.params, mapping), subst(t.results, mapping), t.variadic, t.recv, remaining)
    if isinstance(t, Interface):
        return t
    return t


# Instances of a dependency's generic types are created while its importers
# are checked, possibly on several worker threads at once.
_instances_lock = threading.RLock()


def instantiate_named(origin: Named, args: Sequence[Type]) -> Named:
    """Return the (cached) instance of a generic named type."""
    args = list(args)
    with _instances_lock:
        for inst in origin.instances:
            if len(inst.type_args) == len(args) and all(identical(x, y) for x, y in zip(inst.type_args, args)):
                return inst
        inst = Named(origin.obj, None, [], [], args, origin)
        origin.instances.append(inst)
        return inst


# --- type stringification ---

Qualifier = Callable[["Package"], str]


def _default_qualifier(pkg: "Package") -> str:
    return pkg.path


def format_type(t: Optional[Type], qualifier: Optional[Qualifier] = None) -> str:
    """Render a type in source form, qualifying named types with `qualifier(pkg)`."""
    q = qualifier or _default_qualifier
    if t is None:
        return "<none>"
    if isinstance(t, Basic):
        return t.name
    if isinstance(t, (Named, Alias)):
        obj = t.obj
        prefix = ""
        if obj.pkg is not None:
            p = q(obj.pkg)
            if p:
                prefix = p + "."
        text = prefix + obj.name
        if isinstance(t, Named) and t.type_args:
            text += "[" + ", ".join(format_type(a, q) for a in t.type_args) + "]"
        return text
    if isinstance(t, Pointer):
        return "*" + format_type(t.elem, q)
    if isinstance(t, Slice):
        return "[]" + format_type(t.elem, q)
    if isinstance(t, Array):
        return f"[{t.length if t.length is not None else '?'}]" + format_type(t.elem, q)
    if isinstance(t, Map):
        return f"map[{format_type(t.key, q)}]{format_type(t.elem, q)}"
    if isinstance(t, Chan):
        prefix = {"send": "chan<- ", "recv": "<-chan "}.get(t.dir, "chan ")
        return prefix + format_type(t.elem, q)
    if isinstance(t, Struct):
        parts = []
        for f in t.fields:
            parts.append(format_type(f.type, q) if f.embedded else f"{f.name} {format_type(f.type, q)}")
        return "struct{" + "; ".join(parts) + "}"
    if isinstance(t, Interface):
        if not t.methods and not t.embeddeds:
            return "interface{}"
        parts = [m.name + format_type(m.type, q)[4:] for m in t.methods]
        parts += [format_type(e, q) for e in t.embeddeds]
        return "interface{" + "; ".join(parts) + "}"
    if isinstance(t, Tuple):
        return "(" + ", ".join(format_type(v.type, q) for v in t.vars) + ")"
    if isinstance(t, Signature):
        params = [format_type(v.type, q) for v in t.params.vars]
        if t.variadic and params:
            last = t.params.vars[-1].type
            params[-1] = "..." + format_type(last.elem if isinstance(last, Slice) else last, q)
        text = "func(" + ", ".join(params) + ")"
        if len(t.results) == 1:
            text += " " + format_type(t.results.vars[0].type, q)
        elif len(t.results) > 1:
            text += " " + format_type(t.results, q)
        return text
    if isinstance(t, TypeParam):
        return t.obj.name
    # Fallback (should not happen)
    return repr(t)
