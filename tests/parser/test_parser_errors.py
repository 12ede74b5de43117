#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from et_parser import ParseError, parse_source


def parse_error(src) -> ParseError:
    with pytest.raises(ParseError) as excinfo:
        parse_source(src, filename="bad.go")
    return excinfo.value


def test_missing_package_clause():
    err = parse_error("var x = 1\n")
    assert "[PAR-0010]" in err.message
    assert err.filename == "bad.go"
    assert (err.token.line, err.token.column) == (1, 1)


def test_missing_package_name():
    err = parse_error("package\n")
    assert "[PAR-0011]" in err.message


def test_import_after_declaration():
    err = parse_error('package a\nvar x = 1\nimport "fmt"\n')
    assert "[PAR-0012]" in err.message
    assert err.token.line == 3


def test_statement_at_top_level():
    err = parse_error("package a\nx := 1\n")
    assert "[PAR-0030]" in err.message


def test_unterminated_group():
    err = parse_error("package a\nvar (\n\tx = 1\n")
    assert "[PAR-0040]" in err.message


def test_missing_closing_brace():
    err = parse_error("package a\nfunc f() {\n\treturn\n")
    assert "[PAR-0141]" in err.message


def test_mixed_named_and_unnamed_parameters():
    err = parse_error("package a\nfunc f(a int, string) {}\n")
    assert "[PAR-0103]" in err.message


def test_unexpected_token_in_expression():
    err = parse_error("package a\nvar x = )\n")
    assert "[PAR-0225]" in err.message
