#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional


# ==========================
# Tokens and lexer
# ==========================

class TokenKind(Enum):
    # Special
    EOF = auto()

    IDENT = auto()  # identifier, e.g. i, name, etc.
    INT = auto()  # integer literal, e.g. 42, 0x2a, etc.
    FLOAT = auto()  # floating-point literal, e.g. 1.5, 1e3
    IMAG = auto()  # imaginary literal, e.g. 2i
    CHAR = auto()  # rune literal, e.g. 'a', '\n'
    STRING = auto()  # interpreted or raw string literal

    # Keywords
    BREAK = auto()
    CASE = auto()
    CHAN = auto()
    CONST = auto()
    CONTINUE = auto()
    DEFAULT = auto()
    DEFER = auto()
    ELSE = auto()
    FALLTHROUGH = auto()
    FOR = auto()
    FUNC = auto()
    GO = auto()
    GOTO = auto()
    IF = auto()
    IMPORT = auto()
    INTERFACE = auto()
    MAP = auto()
    PACKAGE = auto()
    RANGE = auto()
    RETURN = auto()
    SELECT = auto()
    STRUCT = auto()
    SWITCH = auto()
    TYPE = auto()
    VAR = auto()

    # Operators
    ADD = auto()  # +
    SUB = auto()  # -
    MUL = auto()  # *
    QUO = auto()  # /
    REM = auto()  # %
    AND = auto()  # &
    OR = auto()  # |
    XOR = auto()  # ^
    SHL = auto()  # <<
    SHR = auto()  # >>
    AND_NOT = auto()  # &^
    ASSIGN_OP = auto()  # +=, -=, <<=, &^=, ...
    LAND = auto()  # &&
    LOR = auto()  # ||
    ARROW = auto()  # <-
    INC = auto()  # ++
    DEC = auto()  # --
    EQL = auto()  # ==
    LSS = auto()  # <
    GTR = auto()  # >
    ASSIGN = auto()  # =
    NOT = auto()  # !
    TILDE = auto()  # ~
    NEQ = auto()  # !=
    LEQ = auto()  # <=
    GEQ = auto()  # >=
    DEFINE = auto()  # :=
    ELLIPSIS = auto()  # ...

    # Delimiters
    LPAREN = auto()  # (
    LBRACK = auto()  # [
    LBRACE = auto()  # {
    COMMA = auto()  # ,
    PERIOD = auto()  # .
    RPAREN = auto()  # )
    RBRACK = auto()  # ]
    RBRACE = auto()  # }
    SEMICOLON = auto()  # ; (explicit or inserted at a newline)
    COLON = auto()  # :


KEYWORDS = {
    "break": TokenKind.BREAK,
    "case": TokenKind.CASE,
    "chan": TokenKind.CHAN,
    "const": TokenKind.CONST,
    "continue": TokenKind.CONTINUE,
    "default": TokenKind.DEFAULT,
    "defer": TokenKind.DEFER,
    "else": TokenKind.ELSE,
    "fallthrough": TokenKind.FALLTHROUGH,
    "for": TokenKind.FOR,
    "func": TokenKind.FUNC,
    "go": TokenKind.GO,
    "goto": TokenKind.GOTO,
    "if": TokenKind.IF,
    "import": TokenKind.IMPORT,
    "interface": TokenKind.INTERFACE,
    "map": TokenKind.MAP,
    "package": TokenKind.PACKAGE,
    "range": TokenKind.RANGE,
    "return": TokenKind.RETURN,
    "select": TokenKind.SELECT,
    "struct": TokenKind.STRUCT,
    "switch": TokenKind.SWITCH,
    "type": TokenKind.TYPE,
    "var": TokenKind.VAR,
}

# Operators ordered longest first so that maximal munch picks e.g. "&^=" over "&".
OPERATORS = [
    ("...", TokenKind.ELLIPSIS),
    ("<<=", TokenKind.ASSIGN_OP),
    (">>=", TokenKind.ASSIGN_OP),
    ("&^=", TokenKind.ASSIGN_OP),
    ("+=", TokenKind.ASSIGN_OP),
    ("-=", TokenKind.ASSIGN_OP),
    ("*=", TokenKind.ASSIGN_OP),
    ("/=", TokenKind.ASSIGN_OP),
    ("%=", TokenKind.ASSIGN_OP),
    ("&=", TokenKind.ASSIGN_OP),
    ("|=", TokenKind.ASSIGN_OP),
    ("^=", TokenKind.ASSIGN_OP),
    ("&^", TokenKind.AND_NOT),
    ("<<", TokenKind.SHL),
    (">>", TokenKind.SHR),
    ("&&", TokenKind.LAND),
    ("||", TokenKind.LOR),
    ("<-", TokenKind.ARROW),
    ("++", TokenKind.INC),
    ("--", TokenKind.DEC),
    ("==", TokenKind.EQL),
    ("!=", TokenKind.NEQ),
    ("<=", TokenKind.LEQ),
    (">=", TokenKind.GEQ),
    (":=", TokenKind.DEFINE),
    ("+", TokenKind.ADD),
    ("-", TokenKind.SUB),
    ("*", TokenKind.MUL),
    ("/", TokenKind.QUO),
    ("%", TokenKind.REM),
    ("&", TokenKind.AND),
    ("|", TokenKind.OR),
    ("^", TokenKind.XOR),
    ("<", TokenKind.LSS),
    (">", TokenKind.GTR),
    ("=", TokenKind.ASSIGN),
    ("!", TokenKind.NOT),
    ("~", TokenKind.TILDE),
    ("(", TokenKind.LPAREN),
    ("[", TokenKind.LBRACK),
    ("{", TokenKind.LBRACE),
    (",", TokenKind.COMMA),
    (".", TokenKind.PERIOD),
    (")", TokenKind.RPAREN),
    ("]", TokenKind.RBRACK),
    ("}", TokenKind.RBRACE),
    (";", TokenKind.SEMICOLON),
    (":", TokenKind.COLON),
]

# A newline after one of these tokens terminates the statement.
_SEMI_TRIGGERS = {
    TokenKind.IDENT, TokenKind.INT, TokenKind.FLOAT, TokenKind.IMAG, TokenKind.CHAR, TokenKind.STRING,
    TokenKind.BREAK, TokenKind.CONTINUE, TokenKind.FALLTHROUGH, TokenKind.RETURN,
    TokenKind.INC, TokenKind.DEC, TokenKind.RPAREN, TokenKind.RBRACK, TokenKind.RBRACE,
}


@dataclass
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int

    def __repr__(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end-of-file"
        if self.kind is TokenKind.SEMICOLON and self.text == "\n":
            return "newline"
        return f"{self.text!r}"


@dataclass
class LexerError(Exception):
    message: str
    filename: str
    line: int
    column: int


def is_keyword(word: str) -> bool:
    return word in KEYWORDS


class Lexer:
    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.length = len(source)
        self.index = 0
        self.line = 1
        self.column = 1
        self._last_kind: Optional[TokenKind] = None

    @classmethod
    def from_source(cls, source: str) -> "Lexer":
        return cls(source)

    # --- low-level char utilities ---

    def _at_end(self) -> bool:
        return self.index >= self.length

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.index]

    def _peek_next(self) -> str:
        if self.index + 1 >= self.length:
            return "\0"
        return self.source[self.index + 1]

    def _advance(self) -> str:
        c = self._peek()
        if not self._at_end():
            self.index += 1
            if c == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return c

    def _error(self, message: str, line: int, column: int) -> LexerError:
        return LexerError(message, self.filename, line, column)

    # --- main API ---

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            tok = self._next_token()
            tokens.append(tok)
            self._last_kind = tok.kind
            if tok.kind is TokenKind.EOF:
                break
        return tokens

    def _needs_semicolon(self) -> bool:
        return self._last_kind in _SEMI_TRIGGERS

    def _next_token(self) -> Token:
        newline = self._skip_ws_and_comments()
        if newline is not None:
            line, col = newline
            return Token(TokenKind.SEMICOLON, "\n", line, col)

        start_line, start_col = self.line, self.column

        if self._at_end():
            if self._needs_semicolon():
                return Token(TokenKind.SEMICOLON, "\n", start_line, start_col)
            return Token(TokenKind.EOF, "", start_line, start_col)

        c = self._peek()

        # identifiers / keywords
        if c.isalpha() or c == "_":
            ident = []
            while self._peek().isalnum() or self._peek() == "_":
                ident.append(self._advance())
            text = "".join(ident)
            return Token(KEYWORDS.get(text, TokenKind.IDENT), text, start_line, start_col)

        # numbers
        if c.isdigit() or (c == "." and self._peek_next().isdigit()):
            kind, text = self._read_number()
            return Token(kind, text, start_line, start_col)

        if c == '"':
            return Token(TokenKind.STRING, self._read_string_literal(), start_line, start_col)

        if c == "`":
            return Token(TokenKind.STRING, self._read_raw_string(), start_line, start_col)

        if c == "'":
            return Token(TokenKind.CHAR, self._read_char_literal(), start_line, start_col)

        for text, kind in OPERATORS:
            if self.source.startswith(text, self.index):
                for _ in text:
                    self._advance()
                return Token(kind, text, start_line, start_col)

        raise self._error(f"[LEX-0040] unexpected character {c!r} at {start_line}:{start_col}", start_line,
                          start_col)

    def _skip_ws_and_comments(self) -> Optional[tuple]:
        """
        Skip whitespace and comments.

        Returns the position of a newline that terminates the current
        statement (automatic semicolon insertion), or None.
        """
        while not self._at_end():
            c = self._peek()
            if c == "\n":
                if self._needs_semicolon():
                    pos = (self.line, self.column)
                    self._advance()
                    return pos
                self._advance()
            elif c in " \t\r":
                self._advance()
            elif c == "/" and self._peek_next() == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
            elif c == "/" and self._peek_next() == "*":
                start_line, start_col = self.line, self.column
                self._advance()
                self._advance()
                had_newline = False
                while True:
                    if self._at_end():
                        raise self._error("[LEX-0070] unterminated block comment", start_line, start_col)
                    if self._peek() == "*" and self._peek_next() == "/":
                        self._advance()
                        self._advance()
                        break
                    if self._peek() == "\n":
                        had_newline = True
                    self._advance()
                # a multi-line comment acts like a newline
                if had_newline and self._needs_semicolon():
                    return start_line, start_col
            else:
                break
        return None

    def _read_number(self) -> tuple:
        chars: List[str] = []
        kind = TokenKind.INT
        if self._peek() == "0" and self._peek_next() in "xXbBoO":
            chars.append(self._advance())
            chars.append(self._advance())
            while self._peek().isalnum() or self._peek() == "_":
                chars.append(self._advance())
            return kind, "".join(chars)

        while self._peek().isdigit() or self._peek() == "_":
            chars.append(self._advance())
        if self._peek() == "." and self._peek_next() != ".":
            kind = TokenKind.FLOAT
            chars.append(self._advance())
            while self._peek().isdigit() or self._peek() == "_":
                chars.append(self._advance())
        if self._peek() in "eE":
            kind = TokenKind.FLOAT
            chars.append(self._advance())
            if self._peek() in "+-":
                chars.append(self._advance())
            while self._peek().isdigit():
                chars.append(self._advance())
        if self._peek() == "i":
            kind = TokenKind.IMAG
            chars.append(self._advance())
        return kind, "".join(chars)

    def _read_string_literal(self) -> str:
        start_line, start_col = self.line, self.column
        chars: List[str] = [self._advance()]  # opening quote
        while True:
            ch = self._peek()
            if ch == "\0" or ch == "\n":
                raise self._error("[LEX-0010] unterminated string literal", start_line, start_col)
            if ch == "\\":
                chars.append(self._advance())
                chars.append(self._advance())
                continue
            chars.append(self._advance())
            if ch == '"':
                break
        return "".join(chars)

    def _read_raw_string(self) -> str:
        start_line, start_col = self.line, self.column
        chars: List[str] = [self._advance()]  # opening backquote
        while True:
            if self._at_end():
                raise self._error("[LEX-0030] unterminated raw string literal", start_line, start_col)
            ch = self._advance()
            chars.append(ch)
            if ch == "`":
                break
        return "".join(chars)

    def _read_char_literal(self) -> str:
        start_line, start_col = self.line, self.column
        chars: List[str] = [self._advance()]  # opening quote
        while True:
            ch = self._peek()
            if ch == "\0" or ch == "\n":
                raise self._error("[LEX-0020] unterminated rune literal", start_line, start_col)
            if ch == "\\":
                chars.append(self._advance())
                chars.append(self._advance())
                continue
            chars.append(self._advance())
            if ch == "'":
                break
        return "".join(chars)
