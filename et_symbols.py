#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple as PyTuple

from et_types import (
    BASIC_TYPE_NAMES, Type, Named, Alias, Interface, Pointer, Signature, Struct, Tuple, get_basic, UNTYPED_BOOL,
    UNTYPED_INT, UNTYPED_NIL, deref, format_type, identical, under, unalias)


# ==========================
# Objects
# ==========================

@dataclass(eq=False)
class Object:
    """
    A named language entity: type, variable, constant, function, package name.

    `parent` is the scope the object was declared in (None for methods and
    struct fields).
    """
    name: str
    pkg: Optional["Package"]
    type: Optional[Type] = None
    parent: Optional["Scope"] = field(default=None, repr=False)
    node: object = field(default=None, repr=False)  # declaring AST node

    def exported(self) -> bool:
        return bool(self.name) and self.name[0].isupper()


@dataclass(eq=False)
class TypeName(Object):
    @property
    def is_alias(self) -> bool:
        t = self.type
        if isinstance(t, Alias):
            return t.obj is self
        if isinstance(t, Named):
            return t.obj is not self
        # Predeclared aliases (byte, rune, any) point straight at their target.
        return t is not None and self.pkg is None and self.name in ("byte", "rune", "any")


@dataclass(eq=False)
class Var(Object):
    is_field: bool = False
    embedded: bool = False


@dataclass(eq=False)
class Const(Object):
    pass


@dataclass(eq=False)
class Func(Object):
    @property
    def signature(self) -> Optional[Signature]:
        return self.type if isinstance(self.type, Signature) else None

    def full_name(self) -> str:
        sig = self.signature
        if sig is not None and sig.recv is not None:
            return f"({format_type(sig.recv.type)}).{self.name}"
        if self.pkg is not None:
            return f"{self.pkg.path}.{self.name}"
        return self.name


@dataclass(eq=False)
class PkgName(Object):
    imported: Optional["Package"] = None
    used: bool = False


@dataclass(eq=False)
class Builtin(Object):
    pass


@dataclass(eq=False)
class Nil(Object):
    pass


# ==========================
# Scopes and packages
# ==========================

@dataclass(eq=False)
class Scope:
    parent: Optional["Scope"]
    kind: str = "block"  # "universe", "package", "file", "func", "block"
    elems: Dict[str, Object] = field(default_factory=dict)

    def lookup(self, name: str) -> Optional[Object]:
        """Look up `name` in this scope only."""
        return self.elems.get(name)

    def lookup_parent(self, name: str) -> PyTuple[Optional["Scope"], Optional[Object]]:
        """Look up `name` along the parent chain; returns (scope, object)."""
        s: Optional[Scope] = self
        while s is not None:
            obj = s.elems.get(name)
            if obj is not None:
                return s, obj
            s = s.parent
        return None, None

    def insert(self, obj: Object) -> Optional[Object]:
        """Insert `obj`; returns the existing object of the same name instead, if any."""
        if obj.name == "_":
            obj.parent = self
            return None
        existing = self.elems.get(obj.name)
        if existing is not None:
            return existing
        self.elems[obj.name] = obj
        if obj.parent is None:
            obj.parent = self
        return None

    def names(self) -> List[str]:
        return sorted(self.elems)

    def __iter__(self) -> Iterator[Object]:
        return iter(self.elems.values())


@dataclass(eq=False)
class Package:
    path: str
    name: str
    scope: Scope = field(default=None)
    imports: List["Package"] = field(default_factory=list)
    fake: bool = False  # stands in for an import that could not be loaded

    def __post_init__(self) -> None:
        if self.scope is None:
            self.scope = Scope(universe(), "package")

    def __repr__(self) -> str:
        return f"Package({self.path!r})"


# ==========================
# Universe
# ==========================

UNIVERSE_BUILTINS = (
    "append", "cap", "clear", "close", "complex", "copy", "delete", "imag", "len", "make", "max", "min", "new",
    "panic", "print", "println", "real", "recover",
)

_UNIVERSE: Optional[Scope] = None


def universe() -> Scope:
    """The predeclared scope, built once."""
    global _UNIVERSE
    if _UNIVERSE is None:
        _UNIVERSE = _build_universe()
    return _UNIVERSE


def _build_universe() -> Scope:
    scope = Scope(None, "universe")

    for name in BASIC_TYPE_NAMES:
        scope.insert(TypeName(name, None, get_basic(name)))
    scope.insert(TypeName("byte", None, get_basic("uint8")))
    scope.insert(TypeName("rune", None, get_basic("int32")))
    scope.insert(TypeName("any", None, Interface()))

    # type error interface { Error() string }
    error_obj = TypeName("error", None)
    error_sig = Signature(Tuple([]), Tuple([Var("", None, get_basic("string"))]))
    error_method = Func("Error", None, error_sig)
    error_type = Named(error_obj, Interface([error_method]))
    error_sig.recv = Var("", None, error_type)
    error_obj.type = error_type
    scope.insert(error_obj)

    comparable_obj = TypeName("comparable", None)
    comparable_obj.type = Named(comparable_obj, Interface())
    scope.insert(comparable_obj)

    scope.insert(Const("true", None, UNTYPED_BOOL))
    scope.insert(Const("false", None, UNTYPED_BOOL))
    scope.insert(Const("iota", None, UNTYPED_INT))
    scope.insert(Nil("nil", None, UNTYPED_NIL))

    for name in UNIVERSE_BUILTINS:
        scope.insert(Builtin(name, None))
    return scope


def error_type() -> Named:
    return universe().lookup("error").type


# ==========================
# Member lookup
# ==========================

@dataclass
class _Embedded:
    type: Type
    index: List[int]
    indirect: bool
    multiples: bool = False


def has_ptr_recv(fn: Func) -> bool:
    sig = fn.signature
    if sig is None or sig.recv is None:
        return False
    return isinstance(unalias(sig.recv.type), Pointer)


def _find_method(methods: List[Func], name: str):
    for i, m in enumerate(methods):
        if m.name == name:
            return i, m
    return -1, None


def lookup_field_or_method(t: Type, addressable: bool, name: str):
    """
    Look up a field or method called `name` in `t`.

    Returns `(obj, index, indirect)`. `index` is the path of field and
    method indices followed, `indirect` is set when a pointer indirection
    was crossed. A method with a pointer receiver found on a
    non-addressable value without indirection yields `(None, index, True)`.
    Ambiguous names at the shallowest depth yield `(None, index, False)`.
    """
    named = unalias(t)
    if isinstance(named, Named):
        p = under(named)
        if isinstance(p, Pointer):
            # Methods of "type P *S" are not in the method set of P.
            obj, index, indirect = _lookup(p, False, name)
            if isinstance(obj, Func):
                return None, None, False
            return obj, index, indirect
    return _lookup(t, addressable, name)


def _lookup(t: Type, addressable: bool, name: str):
    if name == "_":
        return None, None, False

    typ, is_ptr = deref(t)
    if is_ptr and isinstance(under(typ), Interface):
        return None, None, False  # *I has no methods

    current = [_Embedded(typ, [], is_ptr)]
    seen: List[Named] = []

    while current:
        next_level: List[_Embedded] = []
        obj: Optional[Object] = None
        index: Optional[List[int]] = None
        indirect = False

        for e in current:
            etyp = unalias(e.type)
            if isinstance(etyp, Named):
                origin = etyp.origin()
                if any(s is origin for s in seen):
                    continue
                seen.append(origin)
                i, m = _find_method(etyp.all_methods(), name)
                if m is not None:
                    index = e.index + [i]
                    if obj is not None or e.multiples:
                        return None, index, False  # collision
                    obj = m
                    indirect = e.indirect
                    continue

            u = under(etyp)
            if isinstance(u, Struct):
                for i, f in enumerate(u.fields):
                    if f.name == name:
                        index = e.index + [i]
                        if obj is not None or e.multiples:
                            return None, index, False  # collision
                        obj = f
                        indirect = e.indirect
                        continue
                    if obj is None and f.embedded:
                        ftyp, fptr = deref(f.type)
                        next_level.append(_Embedded(ftyp, e.index + [i], e.indirect or fptr, e.multiples))
            elif isinstance(u, Interface):
                i, m = _find_method(u.all_methods(), name)
                if m is not None:
                    index = e.index + [i]
                    if obj is not None or e.multiples:
                        return None, index, False  # collision
                    obj = m
                    indirect = e.indirect

        if obj is not None:
            if isinstance(obj, Func) and has_ptr_recv(obj) and not indirect and not addressable:
                return None, index, True  # pointer/addressable receiver required
            return obj, index, indirect

        current = _consolidate_multiples(next_level)

    return None, None, False


def _consolidate_multiples(entries: List[_Embedded]) -> List[_Embedded]:
    result: List[_Embedded] = []
    for e in entries:
        for r in result:
            if identical(r.type, e.type):
                r.multiples = True
                break
        else:
            result.append(e)
    return result
