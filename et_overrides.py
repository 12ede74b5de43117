"""
Override files.

An override file holds one or more YAML documents, each with up to four
lists of "path.Name" strings:

    ---
    pointer:
      - example.com/a.PathError
    value:
      - example.com/a.CodeError
    suppress:
      - example.com/a.Legacy
    inconsistent:
      - example.com/b.Mixed

`inconsistent` is written by suggestion runs and ignored on read;
`suppress` is only ever written when read back from user input.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Dict, IO, Iterable, List

import yaml

from et_errortypes import ErrorType, TypeName


class OverrideFileError(Exception):
    """Malformed or unreadable override file."""


@dataclass(frozen=True)
class Override:
    type_name: TypeName
    error_type: ErrorType

    def __lt__(self, other: "Override") -> bool:
        return (self.type_name, self.error_type.value) < (other.type_name, other.error_type.value)


_READ_SECTIONS = (
    ("pointer", ErrorType.POINTER),
    ("value", ErrorType.VALUE),
    ("suppress", ErrorType.SUPPRESS),
)

_WRITE_SECTIONS = (
    ("pointer", ErrorType.POINTER),
    ("value", ErrorType.VALUE),
    ("suppress", ErrorType.SUPPRESS),
    ("inconsistent", ErrorType.UNDECIDED),
)

_KNOWN_KEYS = {"pointer", "value", "suppress", "inconsistent"}


class _Loader(yaml.SafeLoader):
    pass


# Type names such as "a.No" are plain strings, never YAML 1.1 booleans.
_Loader.yaml_implicit_resolvers = {
    key: [(tag, regexp) for tag, regexp in values if tag != "tag:yaml.org,2002:bool"]
    for key, values in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _Dumper(yaml.SafeDumper):
    # Indent sequences under their key ("pointer:\n  - a.E").
    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def read_overrides(stream: IO[str]) -> List[Override]:
    """
    Parse an override stream.

    Suggestion runs append one document each, so every document is read and
    the results are concatenated in order; empty documents yield nothing.
    """
    try:
        documents = list(yaml.load_all(stream, Loader=_Loader))
    except yaml.YAMLError as e:
        raise OverrideFileError(f"error parsing override file: {e}") from e

    overrides: List[Override] = []
    for document in documents:
        if document is not None:
            overrides.extend(_overrides_of(document))
    return overrides


def _overrides_of(document) -> List[Override]:
    if not isinstance(document, dict):
        raise OverrideFileError("error parsing override file: expected a mapping at the top level")

    unknown = sorted(str(k) for k in document if k not in _KNOWN_KEYS)
    if unknown:
        raise OverrideFileError(f"error parsing override file: unknown section(s) {', '.join(unknown)}")

    overrides: List[Override] = []
    for key, error_type in _READ_SECTIONS:
        entries = document.get(key) or []
        if not isinstance(entries, list):
            raise OverrideFileError(f"error parsing override file: {key} must be a list")
        for entry in entries:
            if not isinstance(entry, str) or not entry:
                raise OverrideFileError(f"error parsing override file: invalid type name {entry!r} in {key}")
            overrides.append(Override(TypeName.parse(entry), error_type))
    return overrides


def write_overrides(stream: IO[str], overrides: Iterable[Override]) -> None:
    """Write `overrides` grouped by decision, each list sorted by (path, name)."""
    sections: Dict[ErrorType, List[TypeName]] = {error_type: [] for _, error_type in _WRITE_SECTIONS}
    for override in overrides:
        sections[override.error_type].append(override.type_name)

    document = {}
    for key, error_type in _WRITE_SECTIONS:
        names = sorted(sections[error_type])
        if names:
            document[key] = [str(name) for name in names]

    stream.write("---\n")
    if document:
        yaml.dump(document, stream, Dumper=_Dumper, default_flow_style=False, sort_keys=False)


def load_overrides(path: str) -> List[Override]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return read_overrides(f)
    except OSError as e:
        raise OverrideFileError(f"can't open overrides file: {e}") from e


class OverrideTable:
    """Overrides grouped by package path; later entries win."""

    def __init__(self, overrides: Iterable[Override] = ()) -> None:
        self._by_path: Dict[str, Dict[str, ErrorType]] = {}
        self.add(overrides)

    def add(self, overrides: Iterable[Override]) -> None:
        for override in overrides:
            names = self._by_path.setdefault(override.type_name.path, {})
            names[override.type_name.name] = override.error_type

    def for_package(self, path: str) -> Dict[str, ErrorType]:
        return dict(self._by_path.get(path, {}))

    def __len__(self) -> int:
        return sum(len(names) for names in self._by_path.values())
