#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import os
import re
from pathlib import Path

from et_ast import Span
from et_diagnostics import DIAGNOSTIC_CODE_FAMILIES, Diagnostic, code_of
from et_internal_error import ICELocation, InternalAnalyzerError, MissingFactError

PROJECT_ROOT = Path(__file__).parent.parent.parent

_EMITTED_RE = re.compile(r"\[([A-Z]{3}-\d{4})\]|\"([A-Z]{3}-\d{4})\"")


def test_every_emitted_code_is_registered():
    registered = {code for codes in DIAGNOSTIC_CODE_FAMILIES.values() for code in codes}
    emitted = set()
    for path in sorted(PROJECT_ROOT.glob("et_*.py")):
        if path.name == "et_diagnostics.py":
            continue
        for m in _EMITTED_RE.finditer(path.read_text(encoding="utf-8")):
            code = m.group(1) or m.group(2)
            if not code.startswith("ICE-"):
                emitted.add(code)

    assert emitted
    assert sorted(emitted - registered) == []


def test_registry_codes_match_their_family():
    for family, codes in DIAGNOSTIC_CODE_FAMILIES.items():
        assert codes == sorted(codes)
        assert all(code.startswith(family + "-") for code in codes)


def test_code_of():
    assert code_of("[RET-0010] Error type") == "RET-0010"
    assert code_of("Error type [RET-0010]") is None
    assert code_of("[ret-0010] lower case") is None


def test_front_end_families():
    assert Diagnostic("error", "[CHK-0010] undefined: x").is_front_end
    assert Diagnostic("error", "[DRV-0030] cycle").is_front_end
    assert not Diagnostic("error", "[RET-0011] Error type").is_front_end
    assert not Diagnostic("error", "no code").is_front_end


def test_format_with_location():
    diag = Diagnostic(
        kind="error",
        message="[RET-0011] Error type",
        module_name="example.com/a",
        filename="a.go",
        line=7,
        column=28,
    )
    assert diag.format() == f"{os.path.abspath('a.go')}:7:28(example.com/a): error: [RET-0011] Error type"
    assert Diagnostic("error", "[DRV-0010] missing").format() == "error: [DRV-0010] missing"


def test_to_json():
    diag = Diagnostic(kind="error", message="[STY-0010] m", filename="a.go", line=3, column=9, category="sty")
    assert diag.to_json() == {"posn": "a.go:3:9", "message": "[STY-0010] m", "category": "sty"}
    assert Diagnostic("error", "[DRV-0010] m").to_json() == {"posn": "", "message": "[DRV-0010] m"}


def test_internal_error_format():
    assert InternalAnalyzerError("boom").format() == "internal analyzer error: [ICE-9999] boom"

    only_file = InternalAnalyzerError("boom", ICELocation(filename="a.go", span=None))
    assert only_file.format() == "a.go: internal analyzer error: [ICE-9999] boom"

    span = Span(start_line=3, start_column=15, end_line=3, end_column=20)
    coded = InternalAnalyzerError("[ICE-0120] twice", ICELocation(filename="a.go", span=span))
    assert coded.format() == "a.go:3:15: internal analyzer error: [ICE-0120] twice"


def test_missing_fact_is_internal_error():
    err = MissingFactError("example.com/a", "example.com/a.E")
    assert isinstance(err, InternalAnalyzerError)
    assert err.format() == (
        "internal analyzer error: [ICE-0100] no fact for example.com/a.E: package example.com/a has not completed"
    )
