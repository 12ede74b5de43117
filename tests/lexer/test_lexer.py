#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from et_lexer import Lexer, LexerError, TokenKind


def kinds(src):
    return [t.kind for t in Lexer.from_source(src).tokenize()]


def test_semicolon_inserted_after_identifier_at_newline():
    assert kinds("package a\nvar x = 1\n") == [
        TokenKind.PACKAGE,
        TokenKind.IDENT,
        TokenKind.SEMICOLON,
        TokenKind.VAR,
        TokenKind.IDENT,
        TokenKind.ASSIGN,
        TokenKind.INT,
        TokenKind.SEMICOLON,
        TokenKind.EOF,
    ]


def test_no_semicolon_after_operator_or_open_brace():
    toks = Lexer.from_source("x = a +\n b {\n}").tokenize()
    semis = [t for t in toks if t.kind is TokenKind.SEMICOLON]
    # Only the final "}" at end of input triggers one.
    assert len(semis) == 1
    assert toks[-2].kind is TokenKind.SEMICOLON


def test_semicolon_inserted_at_end_of_input():
    toks = Lexer.from_source("return").tokenize()
    assert [t.kind for t in toks] == [TokenKind.RETURN, TokenKind.SEMICOLON, TokenKind.EOF]
    assert toks[1].text == "\n"


def test_maximal_munch_operators():
    assert kinds("a &^= b") == [TokenKind.IDENT, TokenKind.ASSIGN_OP, TokenKind.IDENT, TokenKind.SEMICOLON,
                                TokenKind.EOF]
    assert kinds("x := y...") == [TokenKind.IDENT, TokenKind.DEFINE, TokenKind.IDENT, TokenKind.ELLIPSIS,
                                  TokenKind.EOF]
    assert kinds("<-ch") == [TokenKind.ARROW, TokenKind.IDENT, TokenKind.SEMICOLON, TokenKind.EOF]


def test_literal_kinds():
    toks = Lexer.from_source("0x2a 1.5 1e3 2i 'a' \"s\" `raw`").tokenize()
    assert [t.kind for t in toks[:7]] == [
        TokenKind.INT,
        TokenKind.FLOAT,
        TokenKind.FLOAT,
        TokenKind.IMAG,
        TokenKind.CHAR,
        TokenKind.STRING,
        TokenKind.STRING,
    ]
    assert toks[0].text == "0x2a"
    assert toks[6].text == "`raw`"


def test_escaped_quote_stays_inside_string():
    toks = Lexer.from_source(r'"a\"b"').tokenize()
    assert toks[0].kind is TokenKind.STRING
    assert toks[0].text == r'"a\"b"'


def test_comments_are_skipped():
    assert kinds("a // trailing\n/* block */ b") == [
        TokenKind.IDENT,
        TokenKind.SEMICOLON,
        TokenKind.IDENT,
        TokenKind.SEMICOLON,
        TokenKind.EOF,
    ]


def test_multiline_block_comment_acts_as_newline():
    assert kinds("a /* one\ntwo */ b") == [
        TokenKind.IDENT,
        TokenKind.SEMICOLON,
        TokenKind.IDENT,
        TokenKind.SEMICOLON,
        TokenKind.EOF,
    ]


def test_token_positions():
    toks = Lexer.from_source("package a\n\nfunc f()").tokenize()
    func = next(t for t in toks if t.kind is TokenKind.FUNC)
    assert (func.line, func.column) == (3, 1)
    name = next(t for t in toks if t.text == "f")
    assert (name.line, name.column) == (3, 6)


def test_unterminated_string_reports_start():
    with pytest.raises(LexerError) as excinfo:
        Lexer.from_source('x := "abc\n').tokenize()
    assert "[LEX-0010]" in excinfo.value.message
    assert (excinfo.value.line, excinfo.value.column) == (1, 6)


def test_unterminated_rune():
    with pytest.raises(LexerError) as excinfo:
        Lexer.from_source("'a").tokenize()
    assert "[LEX-0020]" in excinfo.value.message


def test_unterminated_raw_string():
    with pytest.raises(LexerError) as excinfo:
        Lexer.from_source("`never closed").tokenize()
    assert "[LEX-0030]" in excinfo.value.message


def test_unexpected_character():
    with pytest.raises(LexerError) as excinfo:
        Lexer("a @ b", filename="x.go").tokenize()
    assert "[LEX-0040]" in excinfo.value.message
    assert excinfo.value.filename == "x.go"
    assert (excinfo.value.line, excinfo.value.column) == (1, 3)


def test_unterminated_block_comment():
    with pytest.raises(LexerError) as excinfo:
        Lexer.from_source("a /* comment").tokenize()
    assert "[LEX-0070]" in excinfo.value.message
    assert (excinfo.value.line, excinfo.value.column) == (1, 3)
