#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import threading
from typing import Dict, Iterable, Optional, Set

from et_errortypes import ErrorType, TypeName
from et_internal_error import InternalAnalyzerError, MissingFactError
from et_symbols import Package, TypeName as TypeObject


class FactStore:
    """
    Decisions exported by analyzed packages, keyed by type object.

    The table is append-only: each key is written once, by the package that
    declares the type, before that package is marked complete. Reads of a
    package's facts are only valid after it completed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._facts: Dict[TypeObject, ErrorType] = {}
        self._owners: Dict[str, Dict[TypeObject, ErrorType]] = {}
        self._complete: Set[str] = set()

    def export_fact(self, unit: str, key: TypeObject, decision: ErrorType) -> None:
        with self._lock:
            if unit in self._complete:
                raise InternalAnalyzerError(f"[ICE-0110] package {unit} exports {TypeName.of(key)} after completion")
            if key in self._facts:
                raise InternalAnalyzerError(f"[ICE-0120] fact for {TypeName.of(key)} exported twice")
            self._facts[key] = decision
            self._owners.setdefault(unit, {})[key] = decision

    def mark_complete(self, unit: str) -> None:
        with self._lock:
            self._complete.add(unit)

    def is_complete(self, unit: str) -> bool:
        with self._lock:
            return unit in self._complete

    def import_fact(self, key: TypeObject) -> Optional[ErrorType]:
        """
        The exported decision for `key`, None when its package left it undecided.

        Raises MissingFactError when the declaring package has not completed.
        """
        unit = key.pkg.path if key.pkg is not None else ""
        with self._lock:
            if unit not in self._complete:
                raise MissingFactError(unit, str(TypeName.of(key)))
            return self._facts.get(key)

    def facts_of(self, units: Iterable[str]) -> Dict[TypeObject, ErrorType]:
        """Merged view of every fact exported by `units`."""
        result: Dict[TypeObject, ErrorType] = {}
        with self._lock:
            for unit in units:
                if unit not in self._complete:
                    raise MissingFactError(unit, "<any>")
                result.update(self._owners.get(unit, {}))
        return result


def transitive_imports(pkg: Package) -> Set[str]:
    """Paths of every package `pkg` depends on, directly or not."""
    seen: Set[str] = set()
    stack = list(pkg.imports)
    while stack:
        dep = stack.pop()
        if dep.path in seen or dep.fake:
            continue
        seen.add(dep.path)
        stack.extend(dep.imports)
    return seen
