#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import io
from textwrap import dedent

import pytest

from et_errortypes import ErrorType, TypeName
from et_overrides import (
    Override, OverrideFileError, OverrideTable, load_overrides, read_overrides, write_overrides)


def _read(text: str):
    return read_overrides(io.StringIO(dedent(text)))


def _written(overrides) -> str:
    out = io.StringIO()
    write_overrides(out, overrides)
    return out.getvalue()


def test_read_sections():
    overrides = _read("""
        ---
        pointer:
          - example.com/a.PathError
        value:
          - example.com/a.CodeError
          - example.com/b/c.Other
        suppress:
          - example.com/a.Legacy
    """)

    assert overrides == [
        Override(TypeName("example.com/a", "PathError"), ErrorType.POINTER),
        Override(TypeName("example.com/a", "CodeError"), ErrorType.VALUE),
        Override(TypeName("example.com/b/c", "Other"), ErrorType.VALUE),
        Override(TypeName("example.com/a", "Legacy"), ErrorType.SUPPRESS),
    ]


def test_inconsistent_section_is_ignored_on_read():
    overrides = _read("""
        inconsistent:
          - example.com/a.Mixed
    """)
    assert overrides == []


def test_empty_document_yields_nothing():
    assert _read("") == []
    assert _read("---\n") == []


def test_names_that_look_like_booleans_stay_strings():
    overrides = _read("""
        value:
          - a.No
          - Off
    """)
    assert [str(o.type_name) for o in overrides] == ["a.No", "Off"]


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("pointers:\n  - a.E\n", "unknown section(s) pointers"),
        ("pointer: a.E\n", "pointer must be a list"),
        ("value:\n  - 42\n", "invalid type name 42 in value"),
        ("- a.E\n", "expected a mapping"),
        ("pointer: [a.E\n", "error parsing override file"),
    ],
)
def test_malformed_documents(text, fragment):
    with pytest.raises(OverrideFileError) as excinfo:
        _read(text)
    assert fragment in str(excinfo.value)


def test_write_groups_and_sorts():
    text = _written([
        Override(TypeName("example.com/b", "Mixed"), ErrorType.UNDECIDED),
        Override(TypeName("example.com/b", "Z"), ErrorType.POINTER),
        Override(TypeName("example.com/a", "Z"), ErrorType.POINTER),
        Override(TypeName("example.com/a", "V"), ErrorType.VALUE),
    ])

    assert text == dedent("""\
        ---
        pointer:
          - example.com/a.Z
          - example.com/b.Z
        value:
          - example.com/a.V
        inconsistent:
          - example.com/b.Mixed
    """)


def test_write_nothing_is_an_empty_document():
    assert _written([]) == "---\n"


def test_written_file_reads_back(tmp_path):
    path = tmp_path / "overrides.yaml"
    original = [
        Override(TypeName("example.com/a", "E"), ErrorType.POINTER),
        Override(TypeName("example.com/a", "V"), ErrorType.VALUE),
        Override(TypeName("example.com/a", "S"), ErrorType.SUPPRESS),
    ]
    with open(path, "w", encoding="utf-8") as f:
        write_overrides(f, original)

    assert sorted(load_overrides(str(path))) == sorted(original)


def test_appended_documents_are_all_read():
    out = io.StringIO()
    write_overrides(out, [Override(TypeName("example.com/a", "E"), ErrorType.POINTER)])
    write_overrides(out, [])
    write_overrides(out, [
        Override(TypeName("example.com/a", "E"), ErrorType.VALUE),
        Override(TypeName("example.com/b", "M"), ErrorType.UNDECIDED),
    ])

    overrides = read_overrides(io.StringIO(out.getvalue()))
    assert overrides == [
        Override(TypeName("example.com/a", "E"), ErrorType.POINTER),
        Override(TypeName("example.com/a", "E"), ErrorType.VALUE),
    ]
    assert OverrideTable(overrides).for_package("example.com/a") == {"E": ErrorType.VALUE}


def test_malformed_later_document():
    with pytest.raises(OverrideFileError) as excinfo:
        _read("---\nvalue:\n  - a.V\n---\n- a.E\n")
    assert "expected a mapping" in str(excinfo.value)


def test_unreadable_file(tmp_path):
    with pytest.raises(OverrideFileError) as excinfo:
        load_overrides(str(tmp_path / "missing.yaml"))
    assert "can't open overrides file" in str(excinfo.value)


def test_table_groups_by_package_and_later_entries_win():
    table = OverrideTable([
        Override(TypeName("example.com/a", "E"), ErrorType.POINTER),
        Override(TypeName("example.com/b", "E"), ErrorType.VALUE),
    ])
    table.add([Override(TypeName("example.com/a", "E"), ErrorType.SUPPRESS)])

    assert len(table) == 2
    assert table.for_package("example.com/a") == {"E": ErrorType.SUPPRESS}
    assert table.for_package("example.com/b") == {"E": ErrorType.VALUE}
    assert table.for_package("example.com/c") == {}
