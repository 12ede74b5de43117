#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import List, Optional, Tuple

from et_ast import (
    Span, Node, Expr, Ident, BasicLit, Ellipsis, CompositeLit, KeyValueExpr, FuncLit, ParenExpr, SelectorExpr,
    IndexExpr, SliceExpr, TypeAssertExpr, CallExpr, StarExpr, UnaryExpr, BinaryExpr, Field, FieldList, ArrayType,
    StructType, FuncType, InterfaceType, MapType, ChanType, Stmt, DeclStmt, EmptyStmt, LabeledStmt, ExprStmt,
    SendStmt, IncDecStmt, AssignStmt, GoStmt, DeferStmt, ReturnStmt, BranchStmt, BlockStmt, IfStmt, CaseClause,
    SwitchStmt, TypeSwitchStmt, CommClause, SelectStmt, ForStmt, RangeStmt, Spec, ImportSpec, ValueSpec, TypeSpec,
    Decl, GenDecl, FuncDecl, File, unparen)
from et_lexer import TokenKind, Token, Lexer


# ==========================
# Parser
# ==========================

@dataclass
class ParseError(Exception):
    message: str
    token: Optional[Token] = None
    filename: Optional[str] = None


@dataclass
class _RangeClause:
    """Header of a range loop, produced while parsing a `for` statement."""
    key: Optional[Expr]
    value: Optional[Expr]
    tok: Optional[str]
    x: Expr
    span: Span


_BINARY_PRECEDENCE = {
    TokenKind.LOR: 1,
    TokenKind.LAND: 2,
    TokenKind.EQL: 3, TokenKind.NEQ: 3, TokenKind.LSS: 3, TokenKind.LEQ: 3, TokenKind.GTR: 3, TokenKind.GEQ: 3,
    TokenKind.ADD: 4, TokenKind.SUB: 4, TokenKind.OR: 4, TokenKind.XOR: 4,
    TokenKind.MUL: 5, TokenKind.QUO: 5, TokenKind.REM: 5, TokenKind.SHL: 5, TokenKind.SHR: 5, TokenKind.AND: 5,
    TokenKind.AND_NOT: 5,
}

_UNARY_OPS = (TokenKind.ADD, TokenKind.SUB, TokenKind.NOT, TokenKind.XOR, TokenKind.AND, TokenKind.TILDE)

_LITERALS = (TokenKind.INT, TokenKind.FLOAT, TokenKind.IMAG, TokenKind.CHAR, TokenKind.STRING)

# Tokens that can start a type.
_TYPE_START = (TokenKind.IDENT, TokenKind.LBRACK, TokenKind.STRUCT, TokenKind.MUL, TokenKind.FUNC,
               TokenKind.INTERFACE, TokenKind.MAP, TokenKind.CHAN, TokenKind.LPAREN, TokenKind.ARROW)


class Parser:
    def __init__(self, tokens: List[Token], filename: Optional[str] = None) -> None:
        self.tokens = tokens
        self.index = 0
        self.filename = filename
        # < 0: in control clause, >= 0: in expression
        self.expr_lev = 0

    # --- token utilities ---

    def _peek(self, offset: int = 0) -> Token:
        idx = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def _last(self) -> Token:
        return self.tokens[self.index - 1 if self.index > 0 else 0]

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self.index += 1
        return tok

    def _check(self, kind: TokenKind) -> bool:
        return self._peek().kind is kind

    def _match(self, *kinds: TokenKind) -> bool:
        if self._peek().kind in kinds:
            self._advance()
            return True
        return False

    def _expect(self, kind: TokenKind, msg: str) -> Token:
        if not self._check(kind):
            raise ParseError(f"{msg}, got {self._peek()} instead", self._peek(), self.filename)
        return self._advance()

    def _expect_semi(self, msg: str = "[PAR-0020] expected ';' or newline") -> None:
        # A semicolon may be omitted before a closing ")" or "}".
        if self._check(TokenKind.RPAREN) or self._check(TokenKind.RBRACE):
            return
        self._expect(TokenKind.SEMICOLON, msg)

    def _error(self, message: str) -> ParseError:
        return ParseError(message, self._peek(), self.filename)

    def _span_start(self) -> Span:
        here = self._peek()
        return Span(here.line, here.column, here.line, here.column)

    def _extend_span(self, start: Span) -> Span:
        here = self._last()
        return Span(
            start.start_line,
            start.start_column,
            here.line,
            here.column + len(here.text),
        )

    def _ident(self, msg: str) -> Ident:
        start = self._span_start()
        tok = self._expect(TokenKind.IDENT, msg)
        return Ident(tok.text, span=self._extend_span(start))

    # --- file ---

    def parse_file(self, filename: Optional[str] = None) -> File:
        if filename is not None:
            self.filename = filename
        start = self._span_start()
        self._expect(TokenKind.PACKAGE, "[PAR-0010] expected 'package' clause")
        name = self._ident("[PAR-0011] expected package name")
        self._expect_semi()

        imports: List[ImportSpec] = []
        decls: List[Decl] = []
        while self._check(TokenKind.IMPORT):
            decl = self._parse_gen_decl()
            imports.extend(spec for spec in decl.specs if isinstance(spec, ImportSpec))
            decls.append(decl)
            self._expect_semi()

        while not self._at_end():
            if self._check(TokenKind.FUNC):
                decls.append(self._parse_func_decl())
            elif self._peek().kind in (TokenKind.VAR, TokenKind.CONST, TokenKind.TYPE):
                decls.append(self._parse_gen_decl())
            elif self._check(TokenKind.IMPORT):
                raise self._error("[PAR-0012] imports must appear before other declarations")
            else:
                raise self._error(f"[PAR-0030] expected declaration, got {self._peek()}")
            if not self._at_end():
                self._expect_semi()

        file = File(name, imports, decls, span=self._extend_span(start))
        file.filename = self.filename
        return file

    # --- declarations ---

    def _parse_gen_decl(self) -> GenDecl:
        start = self._span_start()
        keyword = self._advance()
        parse_spec = {
            TokenKind.IMPORT: self._parse_import_spec,
            TokenKind.CONST: self._parse_value_spec,
            TokenKind.VAR: self._parse_value_spec,
            TokenKind.TYPE: self._parse_type_spec,
        }[keyword.kind]

        specs: List[Spec] = []
        if self._match(TokenKind.LPAREN):
            while not self._check(TokenKind.RPAREN):
                if self._at_end():
                    raise self._error(f"[PAR-0040] unterminated '{keyword.text}' group")
                specs.append(parse_spec())
                self._expect_semi()
            self._expect(TokenKind.RPAREN, "[PAR-0041] expected ')'")
        else:
            specs.append(parse_spec())
        return GenDecl(keyword.text, specs, span=self._extend_span(start))

    def _parse_import_spec(self) -> ImportSpec:
        start = self._span_start()
        name: Optional[Ident] = None
        if self._check(TokenKind.IDENT):
            name = self._ident("[PAR-0050] expected import name")
        elif self._check(TokenKind.PERIOD):
            tok = self._advance()
            name = Ident(".", span=Span(tok.line, tok.column, tok.line, tok.column + 1))
        path_tok = self._expect(TokenKind.STRING, "[PAR-0051] expected import path")
        return ImportSpec(name, path_tok.text[1:-1], span=self._extend_span(start))

    def _parse_value_spec(self) -> ValueSpec:
        start = self._span_start()
        names = [self._ident("[PAR-0060] expected identifier")]
        while self._match(TokenKind.COMMA):
            names.append(self._ident("[PAR-0060] expected identifier"))
        typ: Optional[Expr] = None
        if not self._check(TokenKind.ASSIGN) and not self._check(TokenKind.SEMICOLON) \
                and not self._check(TokenKind.RPAREN):
            typ = self._parse_type()
        values: List[Expr] = []
        if self._match(TokenKind.ASSIGN):
            values = self._parse_expr_list()
        return ValueSpec(names, typ, values, span=self._extend_span(start))

    def _parse_type_spec(self) -> TypeSpec:
        start = self._span_start()
        name = self._ident("[PAR-0070] expected type name")
        type_params: Optional[FieldList] = None
        if self._check(TokenKind.LBRACK) and self._peek(1).kind is TokenKind.IDENT \
                and self._peek(2).kind is not TokenKind.RBRACK:
            type_params = self._parse_type_params()
        assign = self._match(TokenKind.ASSIGN)
        typ = self._parse_type()
        return TypeSpec(name, type_params, assign, typ, span=self._extend_span(start))

    def _parse_type_params(self) -> FieldList:
        start = self._span_start()
        self._expect(TokenKind.LBRACK, "[PAR-0080] expected '['")
        fields: List[Field] = []
        names: List[Ident] = []
        while not self._check(TokenKind.RBRACK):
            field_start = self._span_start()
            names.append(self._ident("[PAR-0081] expected type parameter name"))
            if self._match(TokenKind.COMMA):
                continue
            constraint = self._parse_constraint()
            fields.append(Field(names, constraint, span=self._extend_span(field_start)))
            names = []
            if not self._match(TokenKind.COMMA):
                break
        if names:
            raise self._error("[PAR-0082] type parameter list is missing a constraint")
        self._expect(TokenKind.RBRACK, "[PAR-0083] expected ']' after type parameters")
        return FieldList(fields, span=self._extend_span(start))

    def _parse_constraint(self) -> Expr:
        start = self._span_start()
        expr = self._parse_constraint_term()
        while self._match(TokenKind.OR):
            right = self._parse_constraint_term()
            expr = BinaryExpr("|", expr, right, span=self._extend_span(start))
        return expr

    def _parse_constraint_term(self) -> Expr:
        start = self._span_start()
        if self._match(TokenKind.TILDE):
            return UnaryExpr("~", self._parse_type(), span=self._extend_span(start))
        return self._parse_type()

    def _parse_func_decl(self) -> FuncDecl:
        start = self._span_start()
        self._expect(TokenKind.FUNC, "[PAR-0090] expected 'func'")
        recv: Optional[FieldList] = None
        if self._check(TokenKind.LPAREN):
            recv = self._parse_parameters()
        name = self._ident("[PAR-0091] expected function name")
        type_params: Optional[FieldList] = None
        if self._check(TokenKind.LBRACK):
            type_params = self._parse_type_params()
        sig_start = self._span_start()
        params, results = self._parse_signature()
        ftype = FuncType(type_params, params, results, span=self._extend_span(sig_start))
        body: Optional[BlockStmt] = None
        if self._check(TokenKind.LBRACE):
            saved = self.expr_lev
            self.expr_lev = 0
            body = self._parse_block()
            self.expr_lev = saved
        return FuncDecl(recv, name, ftype, body, span=self._extend_span(start))

    def _parse_signature(self) -> Tuple[FieldList, Optional[FieldList]]:
        params = self._parse_parameters()
        results: Optional[FieldList] = None
        if self._check(TokenKind.LPAREN):
            results = self._parse_parameters()
        elif self._peek().kind in _TYPE_START:
            start = self._span_start()
            typ = self._parse_type()
            results = FieldList([Field([], typ, span=self._extend_span(start))], span=self._extend_span(start))
        return params, results

    def _parse_parameters(self) -> FieldList:
        """
        Parse a parenthesized parameter list.

        Entries are either all unnamed types ("(int, error)") or named groups
        ("(a, b int, c string)"); names are only known after the full list
        has been seen.
        """
        start = self._span_start()
        self._expect(TokenKind.LPAREN, "[PAR-0100] expected '('")
        entries: List[Tuple[Expr, Optional[Expr], Span]] = []
        while not self._check(TokenKind.RPAREN):
            entry_start = self._span_start()
            if self._check(TokenKind.ELLIPSIS):
                entries.append((self._parse_variadic(), None, self._extend_span(entry_start)))
            else:
                first = self._parse_type()
                typ: Optional[Expr] = None
                if not self._check(TokenKind.COMMA) and not self._check(TokenKind.RPAREN):
                    if self._check(TokenKind.ELLIPSIS):
                        typ = self._parse_variadic()
                    else:
                        typ = self._parse_type()
                entries.append((first, typ, self._extend_span(entry_start)))
            if not self._match(TokenKind.COMMA):
                break
        self._expect(TokenKind.RPAREN, "[PAR-0101] expected ')' after parameters")

        fields: List[Field] = []
        if any(typ is not None for _, typ, _ in entries):
            pending: List[Ident] = []
            for first, typ, span in entries:
                if not isinstance(first, Ident):
                    raise ParseError("[PAR-0102] expected parameter name", self._last(), self.filename)
                pending.append(first)
                if typ is not None:
                    fields.append(Field(pending, typ, span=span))
                    pending = []
            if pending:
                raise ParseError("[PAR-0103] mixed named and unnamed parameters", self._last(), self.filename)
        else:
            fields = [Field([], first, span=span) for first, _, span in entries]
        return FieldList(fields, span=self._extend_span(start))

    def _parse_variadic(self) -> Ellipsis:
        start = self._span_start()
        self._expect(TokenKind.ELLIPSIS, "[PAR-0104] expected '...'")
        return Ellipsis(self._parse_type(), span=self._extend_span(start))

    # --- types ---

    def _parse_type(self) -> Expr:
        start = self._span_start()
        tok = self._peek()

        if tok.kind is TokenKind.IDENT:
            return self._parse_type_name()

        if tok.kind is TokenKind.LBRACK:
            self._advance()
            length: Optional[Expr] = None
            if self._check(TokenKind.ELLIPSIS):
                ell_tok = self._advance()
                length = Ellipsis(None, span=Span(ell_tok.line, ell_tok.column, ell_tok.line, ell_tok.column + 3))
            elif not self._check(TokenKind.RBRACK):
                saved = self.expr_lev
                self.expr_lev += 1
                length = self._parse_expr()
                self.expr_lev = saved
            self._expect(TokenKind.RBRACK, "[PAR-0110] expected ']' in array type")
            elt = self._parse_type()
            return ArrayType(length, elt, span=self._extend_span(start))

        if tok.kind is TokenKind.STRUCT:
            return self._parse_struct_type()

        if tok.kind is TokenKind.MUL:
            self._advance()
            return StarExpr(self._parse_type(), span=self._extend_span(start))

        if tok.kind is TokenKind.FUNC:
            self._advance()
            params, results = self._parse_signature()
            return FuncType(None, params, results, span=self._extend_span(start))

        if tok.kind is TokenKind.INTERFACE:
            return self._parse_interface_type()

        if tok.kind is TokenKind.MAP:
            self._advance()
            self._expect(TokenKind.LBRACK, "[PAR-0111] expected '[' after 'map'")
            key = self._parse_type()
            self._expect(TokenKind.RBRACK, "[PAR-0112] expected ']' after map key type")
            value = self._parse_type()
            return MapType(key, value, span=self._extend_span(start))

        if tok.kind is TokenKind.CHAN:
            self._advance()
            direction = "both"
            if self._match(TokenKind.ARROW):
                direction = "send"
            return ChanType(direction, self._parse_type(), span=self._extend_span(start))

        if tok.kind is TokenKind.ARROW and self._peek(1).kind is TokenKind.CHAN:
            self._advance()
            self._advance()
            return ChanType("recv", self._parse_type(), span=self._extend_span(start))

        if tok.kind is TokenKind.LPAREN:
            self._advance()
            inner = self._parse_type()
            self._expect(TokenKind.RPAREN, "[PAR-0113] expected ')' after type")
            return ParenExpr(inner, span=self._extend_span(start))

        raise self._error(f"[PAR-0114] expected type, got {tok}")

    def _parse_type_name(self) -> Expr:
        start = self._span_start()
        expr: Expr = self._ident("[PAR-0115] expected type name")
        if self._check(TokenKind.PERIOD):
            self._advance()
            sel = self._ident("[PAR-0116] expected identifier after '.'")
            expr = SelectorExpr(expr, sel, span=self._extend_span(start))
        if self._check(TokenKind.LBRACK) and self._is_type_instance():
            self._advance()
            args = [self._parse_type()]
            while self._match(TokenKind.COMMA):
                if self._check(TokenKind.RBRACK):
                    break
                args.append(self._parse_type())
            self._expect(TokenKind.RBRACK, "[PAR-0117] expected ']' after type arguments")
            expr = IndexExpr(expr, args, span=self._extend_span(start))
        return expr

    def _is_type_instance(self) -> bool:
        """
        Decide whether "Name[" in type context starts type arguments.

        "p [4]int" (a name followed by an array type) and "Name[T]" are only
        told apart by what follows the matching "]": another type means the
        bracket belonged to an array type.
        """
        if self._peek(1).kind is TokenKind.RBRACK:
            return False
        depth = 0
        offset = 0
        while True:
            tok = self._peek(offset)
            if tok.kind is TokenKind.EOF:
                return False
            if tok.kind in (TokenKind.LBRACK, TokenKind.LPAREN, TokenKind.LBRACE):
                depth += 1
            elif tok.kind in (TokenKind.RBRACK, TokenKind.RPAREN, TokenKind.RBRACE):
                depth -= 1
                if depth == 0:
                    break
            offset += 1
        follower = self._peek(offset + 1).kind
        return follower not in _TYPE_START or follower is TokenKind.LPAREN

    def _parse_struct_type(self) -> StructType:
        start = self._span_start()
        self._expect(TokenKind.STRUCT, "[PAR-0120] expected 'struct'")
        self._expect(TokenKind.LBRACE, "[PAR-0121] expected '{' after 'struct'")
        fields: List[Field] = []
        while not self._check(TokenKind.RBRACE):
            if self._at_end():
                raise self._error("[PAR-0122] unterminated struct type")
            fields.append(self._parse_field_decl())
            self._expect_semi()
        self._expect(TokenKind.RBRACE, "[PAR-0123] expected '}' after struct fields")
        return StructType(FieldList(fields, span=self._extend_span(start)), span=self._extend_span(start))

    def _parse_field_decl(self) -> Field:
        start = self._span_start()
        names: List[Ident] = []
        typ: Expr

        if self._check(TokenKind.MUL):
            typ = self._parse_type()  # embedded *T
        elif self._check(TokenKind.IDENT):
            follower = self._peek(1).kind
            if follower in (TokenKind.SEMICOLON, TokenKind.RBRACE, TokenKind.STRING, TokenKind.PERIOD):
                typ = self._parse_type()  # embedded T or pkg.T
            elif follower is TokenKind.LBRACK:
                first = self._parse_type_name()
                if isinstance(first, IndexExpr):
                    typ = first  # embedded generic instance
                else:
                    names.append(first)
                    typ = self._parse_type()
            else:
                names.append(self._ident("[PAR-0124] expected field name"))
                while self._match(TokenKind.COMMA):
                    names.append(self._ident("[PAR-0124] expected field name"))
                typ = self._parse_type()
        else:
            raise self._error(f"[PAR-0125] expected field declaration, got {self._peek()}")

        tag: Optional[str] = None
        if self._check(TokenKind.STRING):
            tag = self._advance().text
        return Field(names, typ, tag, span=self._extend_span(start))

    def _parse_interface_type(self) -> InterfaceType:
        start = self._span_start()
        self._expect(TokenKind.INTERFACE, "[PAR-0130] expected 'interface'")
        self._expect(TokenKind.LBRACE, "[PAR-0131] expected '{' after 'interface'")
        elems: List[Field] = []
        while not self._check(TokenKind.RBRACE):
            if self._at_end():
                raise self._error("[PAR-0132] unterminated interface type")
            elem_start = self._span_start()
            if self._check(TokenKind.IDENT) and self._peek(1).kind is TokenKind.LPAREN:
                name = self._ident("[PAR-0133] expected method name")
                sig_start = self._span_start()
                params, results = self._parse_signature()
                method_type = FuncType(None, params, results, span=self._extend_span(sig_start))
                elems.append(Field([name], method_type, span=self._extend_span(elem_start)))
            else:
                elems.append(Field([], self._parse_constraint(), span=self._extend_span(elem_start)))
            self._expect_semi()
        self._expect(TokenKind.RBRACE, "[PAR-0134] expected '}' after interface elements")
        return InterfaceType(FieldList(elems, span=self._extend_span(start)), span=self._extend_span(start))

    # --- statements ---

    def _parse_block(self) -> BlockStmt:
        start = self._span_start()
        self._expect(TokenKind.LBRACE, "[PAR-0140] expected '{'")
        stmts = self._parse_stmt_list()
        self._expect(TokenKind.RBRACE, "[PAR-0141] expected '}'")
        return BlockStmt(stmts, span=self._extend_span(start))

    def _parse_stmt_list(self) -> List[Stmt]:
        stmts: List[Stmt] = []
        while self._peek().kind not in (TokenKind.RBRACE, TokenKind.CASE, TokenKind.DEFAULT, TokenKind.EOF):
            if self._match(TokenKind.SEMICOLON):
                continue
            stmts.append(self._parse_stmt())
            if self._peek().kind not in (TokenKind.RBRACE, TokenKind.CASE, TokenKind.DEFAULT):
                self._expect_semi()
        return stmts

    def _parse_stmt(self) -> Stmt:
        start = self._span_start()
        kind = self._peek().kind

        if kind in (TokenKind.VAR, TokenKind.CONST, TokenKind.TYPE):
            return DeclStmt(self._parse_gen_decl(), span=self._extend_span(start))
        if kind is TokenKind.GO:
            self._advance()
            return GoStmt(self._parse_expr(), span=self._extend_span(start))
        if kind is TokenKind.DEFER:
            self._advance()
            return DeferStmt(self._parse_expr(), span=self._extend_span(start))
        if kind is TokenKind.RETURN:
            self._advance()
            results: List[Expr] = []
            if not self._check(TokenKind.SEMICOLON) and not self._check(TokenKind.RBRACE):
                results = self._parse_expr_list()
            return ReturnStmt(results, span=self._extend_span(start))
        if kind in (TokenKind.BREAK, TokenKind.CONTINUE, TokenKind.GOTO, TokenKind.FALLTHROUGH):
            tok = self._advance()
            label: Optional[Ident] = None
            if tok.kind is not TokenKind.FALLTHROUGH and self._check(TokenKind.IDENT):
                label = self._ident("[PAR-0150] expected label")
            return BranchStmt(tok.text, label, span=self._extend_span(start))
        if kind is TokenKind.LBRACE:
            return self._parse_block()
        if kind is TokenKind.IF:
            return self._parse_if_stmt()
        if kind is TokenKind.SWITCH:
            return self._parse_switch_stmt()
        if kind is TokenKind.SELECT:
            return self._parse_select_stmt()
        if kind is TokenKind.FOR:
            return self._parse_for_stmt()
        if kind in (TokenKind.SEMICOLON, TokenKind.RBRACE):
            return EmptyStmt(span=self._extend_span(start))

        stmt = self._parse_simple_stmt(label_ok=True)
        if isinstance(stmt, _RangeClause):
            raise self._error("[PAR-0151] 'range' outside of a 'for' clause")
        return stmt

    def _parse_simple_stmt(self, *, label_ok: bool = False, range_ok: bool = False):
        start = self._span_start()

        if range_ok and self._check(TokenKind.RANGE):
            self._advance()
            x = self._parse_expr()
            return _RangeClause(None, None, None, x, self._extend_span(start))

        lhs = self._parse_expr_list()
        tok = self._peek()

        if tok.kind in (TokenKind.DEFINE, TokenKind.ASSIGN, TokenKind.ASSIGN_OP):
            self._advance()
            if range_ok and self._check(TokenKind.RANGE) and tok.kind is not TokenKind.ASSIGN_OP:
                self._advance()
                x = self._parse_expr()
                key = lhs[0] if lhs else None
                value = lhs[1] if len(lhs) > 1 else None
                return _RangeClause(key, value, tok.text, x, self._extend_span(start))
            rhs = self._parse_expr_list()
            return AssignStmt(lhs, tok.text, rhs, span=self._extend_span(start))

        if len(lhs) > 1:
            raise self._error(f"[PAR-0152] expected ':=' or '=' or ',' after expression list, got {tok}")

        x = lhs[0]
        if tok.kind is TokenKind.COLON and label_ok and isinstance(x, Ident):
            self._advance()
            if self._check(TokenKind.RBRACE):
                return LabeledStmt(x, EmptyStmt(span=self._extend_span(start)), span=self._extend_span(start))
            return LabeledStmt(x, self._parse_stmt(), span=self._extend_span(start))
        if tok.kind is TokenKind.ARROW:
            self._advance()
            value = self._parse_expr()
            return SendStmt(x, value, span=self._extend_span(start))
        if tok.kind in (TokenKind.INC, TokenKind.DEC):
            self._advance()
            return IncDecStmt(x, tok.text, span=self._extend_span(start))
        return ExprStmt(x, span=self._extend_span(start))

    def _parse_if_stmt(self) -> IfStmt:
        start = self._span_start()
        self._expect(TokenKind.IF, "[PAR-0160] expected 'if'")
        saved = self.expr_lev
        self.expr_lev = -1
        init: Optional[Stmt] = None
        cond: Optional[Expr] = None
        if self._check(TokenKind.LBRACE):
            raise self._error("[PAR-0161] missing condition in if statement")
        stmt: Optional[Stmt] = None
        if not self._check(TokenKind.SEMICOLON):
            stmt = self._parse_simple_stmt()
        if self._match(TokenKind.SEMICOLON):
            init = stmt
            cond = self._parse_expr()
        elif isinstance(stmt, ExprStmt):
            cond = stmt.x
        else:
            raise self._error("[PAR-0162] expected condition in if statement")
        self.expr_lev = saved

        body = self._parse_block()
        else_: Optional[Stmt] = None
        if self._match(TokenKind.ELSE):
            if self._check(TokenKind.IF):
                else_ = self._parse_if_stmt()
            elif self._check(TokenKind.LBRACE):
                else_ = self._parse_block()
            else:
                raise self._error("[PAR-0163] expected 'if' or '{' after 'else'")
        return IfStmt(init, cond, body, else_, span=self._extend_span(start))

    def _parse_switch_stmt(self) -> Stmt:
        start = self._span_start()
        self._expect(TokenKind.SWITCH, "[PAR-0170] expected 'switch'")
        saved = self.expr_lev
        self.expr_lev = -1
        init: Optional[Stmt] = None
        stmt: Optional[Stmt] = None
        if not self._check(TokenKind.LBRACE):
            if not self._check(TokenKind.SEMICOLON):
                stmt = self._parse_simple_stmt()
            if self._match(TokenKind.SEMICOLON):
                init = stmt
                stmt = None
                if not self._check(TokenKind.LBRACE):
                    stmt = self._parse_simple_stmt()
        self.expr_lev = saved

        is_type_switch = _is_type_switch_guard(stmt)
        body_start = self._span_start()
        self._expect(TokenKind.LBRACE, "[PAR-0171] expected '{' after switch header")
        clauses: List[Stmt] = []
        while not self._check(TokenKind.RBRACE):
            if self._at_end():
                raise self._error("[PAR-0172] unterminated switch statement")
            clauses.append(self._parse_case_clause())
        self._expect(TokenKind.RBRACE, "[PAR-0173] expected '}' after switch body")
        body = BlockStmt(clauses, span=self._extend_span(body_start))

        if is_type_switch:
            return TypeSwitchStmt(init, stmt, body, span=self._extend_span(start))
        tag: Optional[Expr] = None
        if stmt is not None:
            if not isinstance(stmt, ExprStmt):
                raise self._error("[PAR-0174] switch expression must be an expression")
            tag = stmt.x
        return SwitchStmt(init, tag, body, span=self._extend_span(start))

    def _parse_case_clause(self) -> CaseClause:
        start = self._span_start()
        exprs: Optional[List[Expr]] = None
        if self._match(TokenKind.CASE):
            exprs = self._parse_expr_list()
        elif not self._match(TokenKind.DEFAULT):
            raise self._error(f"[PAR-0175] expected 'case' or 'default', got {self._peek()}")
        self._expect(TokenKind.COLON, "[PAR-0176] expected ':' after case")
        body = self._parse_stmt_list()
        return CaseClause(exprs, body, span=self._extend_span(start))

    def _parse_select_stmt(self) -> SelectStmt:
        start = self._span_start()
        self._expect(TokenKind.SELECT, "[PAR-0180] expected 'select'")
        body_start = self._span_start()
        self._expect(TokenKind.LBRACE, "[PAR-0181] expected '{' after 'select'")
        clauses: List[Stmt] = []
        while not self._check(TokenKind.RBRACE):
            if self._at_end():
                raise self._error("[PAR-0182] unterminated select statement")
            clause_start = self._span_start()
            comm: Optional[Stmt] = None
            if self._match(TokenKind.CASE):
                comm = self._parse_simple_stmt()
            elif not self._match(TokenKind.DEFAULT):
                raise self._error(f"[PAR-0183] expected 'case' or 'default', got {self._peek()}")
            self._expect(TokenKind.COLON, "[PAR-0184] expected ':' after select case")
            stmts = self._parse_stmt_list()
            clauses.append(CommClause(comm, stmts, span=self._extend_span(clause_start)))
        self._expect(TokenKind.RBRACE, "[PAR-0185] expected '}' after select body")
        return SelectStmt(BlockStmt(clauses, span=self._extend_span(body_start)), span=self._extend_span(start))

    def _parse_for_stmt(self) -> Stmt:
        start = self._span_start()
        self._expect(TokenKind.FOR, "[PAR-0190] expected 'for'")
        saved = self.expr_lev
        self.expr_lev = -1
        init: Optional[Stmt] = None
        cond: Optional[Expr] = None
        post: Optional[Stmt] = None
        range_clause: Optional[_RangeClause] = None

        if not self._check(TokenKind.LBRACE):
            stmt = None
            if not self._check(TokenKind.SEMICOLON):
                stmt = self._parse_simple_stmt(range_ok=True)
            if isinstance(stmt, _RangeClause):
                range_clause = stmt
            elif self._match(TokenKind.SEMICOLON):
                init = stmt
                if not self._check(TokenKind.SEMICOLON):
                    cond = self._parse_expr()
                self._expect(TokenKind.SEMICOLON, "[PAR-0191] expected ';' in for clause")
                if not self._check(TokenKind.LBRACE):
                    post = self._parse_simple_stmt()
            elif isinstance(stmt, ExprStmt):
                cond = stmt.x
            else:
                raise self._error("[PAR-0192] expected for loop condition")
        self.expr_lev = saved

        body = self._parse_block()
        if range_clause is not None:
            return RangeStmt(range_clause.key, range_clause.value, range_clause.tok, range_clause.x, body,
                             span=self._extend_span(start))
        return ForStmt(init, cond, post, body, span=self._extend_span(start))

    # --- expressions with precedence ---

    def _parse_expr_list(self) -> List[Expr]:
        exprs = [self._parse_expr()]
        while self._match(TokenKind.COMMA):
            exprs.append(self._parse_expr())
        return exprs

    def _parse_expr(self) -> Expr:
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_prec: int) -> Expr:
        start = self._span_start()
        expr = self._parse_unary_expr()
        while True:
            prec = _BINARY_PRECEDENCE.get(self._peek().kind)
            if prec is None or prec < min_prec:
                return expr
            op_tok = self._advance()
            right = self._parse_binary_expr(prec + 1)
            expr = BinaryExpr(op_tok.text, expr, right, span=self._extend_span(start))

    def _parse_unary_expr(self) -> Expr:
        start = self._span_start()
        tok = self._peek()
        if tok.kind in _UNARY_OPS:
            self._advance()
            operand = self._parse_unary_expr()
            return UnaryExpr(tok.text, operand, span=self._extend_span(start))
        if tok.kind is TokenKind.ARROW:
            if self._peek(1).kind is TokenKind.CHAN:
                return self._parse_primary_expr()
            self._advance()
            operand = self._parse_unary_expr()
            return UnaryExpr("<-", operand, span=self._extend_span(start))
        if tok.kind is TokenKind.MUL:
            self._advance()
            operand = self._parse_unary_expr()
            return StarExpr(operand, span=self._extend_span(start))
        return self._parse_primary_expr()

    def _parse_primary_expr(self) -> Expr:
        start = self._span_start()
        expr = self._parse_operand()
        while True:
            if self._match(TokenKind.PERIOD):
                if self._match(TokenKind.LPAREN):
                    typ: Optional[Expr] = None
                    if not self._match(TokenKind.TYPE):
                        typ = self._parse_type()
                    self._expect(TokenKind.RPAREN, "[PAR-0200] expected ')' after type assertion")
                    expr = TypeAssertExpr(expr, typ, span=self._extend_span(start))
                    continue
                sel = self._ident("[PAR-0201] expected selector after '.'")
                expr = SelectorExpr(expr, sel, span=self._extend_span(start))
                continue

            if self._check(TokenKind.LBRACK):
                expr = self._parse_index_or_slice(expr, start)
                continue

            if self._match(TokenKind.LPAREN):
                self.expr_lev += 1
                args: List[Expr] = []
                has_ellipsis = False
                while not self._check(TokenKind.RPAREN):
                    args.append(self._parse_expr())
                    if self._match(TokenKind.ELLIPSIS):
                        has_ellipsis = True
                    if not self._match(TokenKind.COMMA):
                        break
                self.expr_lev -= 1
                self._expect(TokenKind.RPAREN, "[PAR-0210] expected ')' after arguments")
                expr = CallExpr(expr, args, has_ellipsis, span=self._extend_span(start))
                continue

            if self._check(TokenKind.LBRACE) and self._is_literal_type(expr):
                elts = self._parse_literal_value()
                expr = CompositeLit(expr, elts, span=self._extend_span(start))
                continue

            return expr

    def _is_literal_type(self, expr: Expr) -> bool:
        t = unparen(expr)
        if isinstance(t, (Ident, IndexExpr)):
            return self.expr_lev >= 0
        if isinstance(t, SelectorExpr):
            return self.expr_lev >= 0 and isinstance(t.x, Ident)
        return isinstance(t, (ArrayType, StructType, MapType))

    def _parse_index_or_slice(self, expr: Expr, start: Span) -> Expr:
        self._expect(TokenKind.LBRACK, "[PAR-0211] expected '['")
        self.expr_lev += 1
        parts: List[Optional[Expr]] = [None]
        colons = 0
        if not self._check(TokenKind.COLON):
            parts[0] = self._parse_expr()
        indices: List[Expr] = []
        if self._check(TokenKind.COMMA):
            indices.append(parts[0])
            while self._match(TokenKind.COMMA):
                if self._check(TokenKind.RBRACK):
                    break
                indices.append(self._parse_expr())
        else:
            while self._match(TokenKind.COLON):
                colons += 1
                if colons > 2:
                    raise self._error("[PAR-0212] too many ':' in slice expression")
                if self._check(TokenKind.COLON) or self._check(TokenKind.RBRACK):
                    parts.append(None)
                else:
                    parts.append(self._parse_expr())
        self.expr_lev -= 1
        self._expect(TokenKind.RBRACK, "[PAR-0213] expected ']'")

        if indices:
            return IndexExpr(expr, indices, span=self._extend_span(start))
        if colons == 0:
            if parts[0] is None:
                raise self._error("[PAR-0214] expected index expression")
            return IndexExpr(expr, [parts[0]], span=self._extend_span(start))
        while len(parts) < 3:
            parts.append(None)
        return SliceExpr(expr, parts[0], parts[1], parts[2], span=self._extend_span(start))

    def _parse_literal_value(self) -> List[Expr]:
        self._expect(TokenKind.LBRACE, "[PAR-0220] expected '{' in composite literal")
        saved = self.expr_lev
        self.expr_lev = 0
        elts: List[Expr] = []
        while not self._check(TokenKind.RBRACE):
            elts.append(self._parse_element())
            if not self._match(TokenKind.COMMA):
                break
        self.expr_lev = saved
        self._expect(TokenKind.RBRACE, "[PAR-0221] expected '}' after composite literal elements")
        return elts

    def _parse_element(self) -> Expr:
        start = self._span_start()
        key = self._parse_element_value()
        if self._match(TokenKind.COLON):
            value = self._parse_element_value()
            return KeyValueExpr(key, value, span=self._extend_span(start))
        return key

    def _parse_element_value(self) -> Expr:
        start = self._span_start()
        if self._check(TokenKind.LBRACE):
            elts = self._parse_literal_value()
            return CompositeLit(None, elts, span=self._extend_span(start))
        return self._parse_expr()

    def _parse_operand(self) -> Expr:
        start = self._span_start()
        tok = self._peek()

        if tok.kind in _LITERALS:
            self._advance()
            return BasicLit(tok.kind.name, tok.text, span=self._extend_span(start))

        if tok.kind is TokenKind.IDENT:
            return self._ident("[PAR-0222] expected identifier")

        if tok.kind is TokenKind.LPAREN:
            self._advance()
            saved = self.expr_lev
            self.expr_lev += 1
            inner = self._parse_expr()
            self.expr_lev = saved
            self._expect(TokenKind.RPAREN, "[PAR-0223] expected ')' after expression")
            return ParenExpr(inner, span=self._extend_span(start))

        if tok.kind is TokenKind.FUNC:
            self._advance()
            params, results = self._parse_signature()
            ftype = FuncType(None, params, results, span=self._extend_span(start))
            if self._check(TokenKind.LBRACE):
                saved = self.expr_lev
                self.expr_lev = 0
                body = self._parse_block()
                self.expr_lev = saved
                return FuncLit(ftype, body, span=self._extend_span(start))
            return ftype

        if tok.kind in (TokenKind.LBRACK, TokenKind.STRUCT, TokenKind.MAP, TokenKind.CHAN, TokenKind.INTERFACE,
                        TokenKind.ARROW):
            return self._parse_type()

        raise ParseError(f"[PAR-0225] unexpected token in expression: {tok.kind.name}:'{tok.text}'", tok,
                         self.filename)


def _is_type_switch_guard(stmt: Optional[Node]) -> bool:
    if isinstance(stmt, ExprStmt):
        x = stmt.x
    elif isinstance(stmt, AssignStmt) and stmt.tok == ":=" and len(stmt.lhs) == 1 and len(stmt.rhs) == 1:
        x = stmt.rhs[0]
    else:
        return False
    return isinstance(x, TypeAssertExpr) and x.type is None


def parse_source(source: str, filename: str = "<input>") -> File:
    """Lex and parse one source file."""
    lexer = Lexer(source, filename=filename)
    parser = Parser(lexer.tokenize(), filename)
    return parser.parse_file()
