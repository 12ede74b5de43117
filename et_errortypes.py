#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

from et_symbols import TypeName as TypeObject


class ErrorType(Enum):
    """How a type implementing error should be referenced."""
    UNDECIDED = 0
    POINTER = 1
    VALUE = 2
    SUPPRESS = 3

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True, order=True)
class TypeName:
    """
    Fully qualified name of a declared type: package path plus name.

    Ordering is by (path, name); `str()` gives "path.Name".
    """
    path: str
    name: str

    def __str__(self) -> str:
        if not self.path:
            return self.name
        return f"{self.path}.{self.name}"

    @staticmethod
    def parse(text: str) -> "TypeName":
        """Split "a/b.Name" at the last dot."""
        path, dot, name = text.rpartition(".")
        if not dot:
            return TypeName("", text)
        return TypeName(path, name)

    @staticmethod
    def of(obj: TypeObject) -> "TypeName":
        path = obj.pkg.path if obj.pkg is not None else ""
        return TypeName(path, obj.name)


P = TypeVar("P", bound=int)


def type_object_key(obj: TypeObject) -> Tuple[str, str]:
    return (obj.pkg.path if obj.pkg is not None else "", obj.name)


class PropertyMap(Generic[P]):
    """
    Flags collected per type object during one package's analysis.

    Keys are type objects (compared by identity); `decide` maps a flag set
    to an ErrorType.
    """

    def __init__(self, decide: Callable[[P], ErrorType]) -> None:
        self._decide = decide
        self._props: Dict[TypeObject, P] = {}

    def __contains__(self, tn: TypeObject) -> bool:
        return tn in self._props

    def __iter__(self) -> Iterator[TypeObject]:
        return iter(list(self._props))

    def __len__(self) -> int:
        return len(self._props)

    def get_type_property(self, tn: TypeObject) -> Tuple[Optional[P], bool]:
        if tn in self._props:
            return self._props[tn], True
        return None, False

    def set_type_property(self, tn: TypeObject, prop: P) -> None:
        self._props[tn] = prop

    def add_type_property(self, tn: TypeObject, prop: P) -> P:
        """
        OR `prop` into the flags of `tn`, adding `tn` if needed.

        Returns the previous flags, empty when `tn` was not present.
        """
        old = self._props.get(tn, type(prop)(0))
        if tn not in self._props or not (old & prop):
            self._props[tn] = old | prop
        return old

    def determined_type(self, tn: TypeObject) -> ErrorType:
        prop, ok = self.get_type_property(tn)
        if not ok:
            return ErrorType.UNDECIDED
        return self._decide(prop)

    def has_undetermined_errors(self) -> bool:
        return any(self._decide(p) is ErrorType.UNDECIDED for p in self._props.values())

    def all_determined(self) -> Iterator[Tuple[TypeObject, ErrorType]]:
        for tn, prop in list(self._props.items()):
            error_type = self._decide(prop)
            if error_type is not ErrorType.UNDECIDED:
                yield tn, error_type

    def all_sorted(self) -> Iterator[Tuple[TypeObject, P]]:
        for tn in sorted(self._props, key=type_object_key):
            yield tn, self._props[tn]
