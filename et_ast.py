#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field, fields
from typing import Callable, Iterator, List, Optional


# ==========================
# AST definitions
# ==========================


@dataclass
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(eq=False)
class Node:
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)


# --- expressions ---

@dataclass(eq=False)
class Expr(Node):
    pass


@dataclass(eq=False)
class Ident(Expr):
    name: str


@dataclass(eq=False)
class BasicLit(Expr):
    kind: str  # "INT", "FLOAT", "IMAG", "CHAR", "STRING"
    value: str


@dataclass(eq=False)
class Ellipsis(Expr):
    elt: Optional[Expr] = None  # element type of a variadic parameter


@dataclass(eq=False)
class CompositeLit(Expr):
    type: Optional[Expr]  # None when elided inside an enclosing literal
    elts: List[Expr]


@dataclass(eq=False)
class KeyValueExpr(Expr):
    key: Expr
    value: Expr


@dataclass(eq=False)
class FuncLit(Expr):
    type: "FuncType"
    body: "BlockStmt"


@dataclass(eq=False)
class ParenExpr(Expr):
    x: Expr


@dataclass(eq=False)
class SelectorExpr(Expr):
    x: Expr
    sel: Ident


@dataclass(eq=False)
class IndexExpr(Expr):
    x: Expr
    indices: List[Expr]  # more than one only for generic instantiation


@dataclass(eq=False)
class SliceExpr(Expr):
    x: Expr
    low: Optional[Expr]
    high: Optional[Expr]
    max: Optional[Expr] = None


@dataclass(eq=False)
class TypeAssertExpr(Expr):
    x: Expr
    type: Optional[Expr]  # None for x.(type) in a type switch


@dataclass(eq=False)
class CallExpr(Expr):
    fun: Expr
    args: List[Expr]
    has_ellipsis: bool = False


@dataclass(eq=False)
class StarExpr(Expr):
    x: Expr


@dataclass(eq=False)
class UnaryExpr(Expr):
    op: str
    x: Expr


@dataclass(eq=False)
class BinaryExpr(Expr):
    op: str
    x: Expr
    y: Expr


# --- type expressions ---

@dataclass(eq=False)
class Field(Node):
    names: List[Ident]
    type: Expr
    tag: Optional[str] = None


@dataclass(eq=False)
class FieldList(Node):
    list: List[Field]

    def num_fields(self) -> int:
        """Number of declared entries, counting each name of a grouped field."""
        n = 0
        for f in self.list:
            n += len(f.names) if f.names else 1
        return n


@dataclass(eq=False)
class ArrayType(Expr):
    len: Optional[Expr]  # None for slices, Ellipsis for [...]T
    elt: Expr


@dataclass(eq=False)
class StructType(Expr):
    fields: FieldList


@dataclass(eq=False)
class FuncType(Expr):
    type_params: Optional[FieldList]
    params: FieldList
    results: Optional[FieldList]


@dataclass(eq=False)
class InterfaceType(Expr):
    methods: FieldList  # methods have names, embedded types and unions have none


@dataclass(eq=False)
class MapType(Expr):
    key: Expr
    value: Expr


@dataclass(eq=False)
class ChanType(Expr):
    dir: str  # "both", "send", "recv"
    value: Expr


# --- statements ---

@dataclass(eq=False)
class Stmt(Node):
    pass


@dataclass(eq=False)
class BadStmt(Stmt):
    pass


@dataclass(eq=False)
class DeclStmt(Stmt):
    decl: "GenDecl"


@dataclass(eq=False)
class EmptyStmt(Stmt):
    pass


@dataclass(eq=False)
class LabeledStmt(Stmt):
    label: Ident
    stmt: Stmt


@dataclass(eq=False)
class ExprStmt(Stmt):
    x: Expr


@dataclass(eq=False)
class SendStmt(Stmt):
    chan: Expr
    value: Expr


@dataclass(eq=False)
class IncDecStmt(Stmt):
    x: Expr
    tok: str  # "++" or "--"


@dataclass(eq=False)
class AssignStmt(Stmt):
    lhs: List[Expr]
    tok: str  # "=", ":=", "+=", ...
    rhs: List[Expr]


@dataclass(eq=False)
class GoStmt(Stmt):
    call: Expr


@dataclass(eq=False)
class DeferStmt(Stmt):
    call: Expr


@dataclass(eq=False)
class ReturnStmt(Stmt):
    results: List[Expr]


@dataclass(eq=False)
class BranchStmt(Stmt):
    tok: str  # "break", "continue", "goto", "fallthrough"
    label: Optional[Ident] = None


@dataclass(eq=False)
class BlockStmt(Stmt):
    list: List[Stmt]


@dataclass(eq=False)
class IfStmt(Stmt):
    init: Optional[Stmt]
    cond: Expr
    body: BlockStmt
    else_: Optional[Stmt] = None


@dataclass(eq=False)
class CaseClause(Stmt):
    list: Optional[List[Expr]]  # None for "default"
    body: List[Stmt]


@dataclass(eq=False)
class SwitchStmt(Stmt):
    init: Optional[Stmt]
    tag: Optional[Expr]
    body: BlockStmt


@dataclass(eq=False)
class TypeSwitchStmt(Stmt):
    init: Optional[Stmt]
    assign: Stmt  # "x := y.(type)" or "y.(type)"
    body: BlockStmt


@dataclass(eq=False)
class CommClause(Stmt):
    comm: Optional[Stmt]  # None for "default"
    body: List[Stmt]


@dataclass(eq=False)
class SelectStmt(Stmt):
    body: BlockStmt


@dataclass(eq=False)
class ForStmt(Stmt):
    init: Optional[Stmt]
    cond: Optional[Expr]
    post: Optional[Stmt]
    body: BlockStmt


@dataclass(eq=False)
class RangeStmt(Stmt):
    key: Optional[Expr]
    value: Optional[Expr]
    tok: Optional[str]  # ":=", "=" or None
    x: Expr
    body: BlockStmt


# --- declarations ---

@dataclass(eq=False)
class Spec(Node):
    pass


@dataclass(eq=False)
class ImportSpec(Spec):
    name: Optional[Ident]
    path: str


@dataclass(eq=False)
class ValueSpec(Spec):
    names: List[Ident]
    type: Optional[Expr]
    values: List[Expr]


@dataclass(eq=False)
class TypeSpec(Spec):
    name: Ident
    type_params: Optional[FieldList]
    assign: bool  # "type A = B"
    type: Expr


@dataclass(eq=False)
class Decl(Node):
    pass


@dataclass(eq=False)
class GenDecl(Decl):
    tok: str  # "import", "const", "type", "var"
    specs: List[Spec]


@dataclass(eq=False)
class FuncDecl(Decl):
    recv: Optional[FieldList]
    name: Ident
    type: FuncType
    body: Optional[BlockStmt]


@dataclass(eq=False)
class File(Node):
    package: Ident
    imports: List[ImportSpec]
    decls: List[Decl]
    filename: Optional[str] = field(default=None, repr=False, compare=False, kw_only=True)

    @property
    def is_test_file(self) -> bool:
        return bool(self.filename) and self.filename.endswith("_test.go")


# ==========================
# Traversal
# ==========================

def child_nodes(node: Node) -> Iterator[Node]:
    """Yield the direct children of `node` in source order."""
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


Visitor = Callable[[Node], Optional["Visitor"]]


def walk(visitor: Visitor, node: Node) -> None:
    """
    Depth-first traversal in the manner of a classic AST walker.

    `visitor(node)` returns the visitor to use for the children of `node`,
    or None to skip them.
    """
    child_visitor = visitor(node)
    if child_visitor is None:
        return
    for child in child_nodes(node):
        walk(child_visitor, child)


def inspect(node: Node, fn: Callable[[Node], bool]) -> None:
    """Pre-order traversal; children are skipped when `fn` returns False."""
    if not fn(node):
        return
    for child in child_nodes(node):
        inspect(child, fn)


def unparen(expr: Expr) -> Expr:
    while isinstance(expr, ParenExpr):
        expr = expr.x
    return expr


def format_expr(expr: Optional[Node]) -> str:
    """Render an expression back to compact Go source form."""
    if expr is None:
        return ""
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, BasicLit):
        return expr.value
    if isinstance(expr, Ellipsis):
        return "..." + format_expr(expr.elt)
    if isinstance(expr, CompositeLit):
        return f"{format_expr(expr.type)}{{{', '.join(format_expr(e) for e in expr.elts)}}}"
    if isinstance(expr, KeyValueExpr):
        return f"{format_expr(expr.key)}: {format_expr(expr.value)}"
    if isinstance(expr, FuncLit):
        return f"{format_expr(expr.type)} {{...}}"
    if isinstance(expr, ParenExpr):
        return f"({format_expr(expr.x)})"
    if isinstance(expr, SelectorExpr):
        return f"{format_expr(expr.x)}.{expr.sel.name}"
    if isinstance(expr, IndexExpr):
        return f"{format_expr(expr.x)}[{', '.join(format_expr(i) for i in expr.indices)}]"
    if isinstance(expr, SliceExpr):
        parts = [format_expr(expr.low), format_expr(expr.high)]
        if expr.max is not None:
            parts.append(format_expr(expr.max))
        return f"{format_expr(expr.x)}[{':'.join(parts)}]"
    if isinstance(expr, TypeAssertExpr):
        return f"{format_expr(expr.x)}.({format_expr(expr.type) if expr.type is not None else 'type'})"
    if isinstance(expr, CallExpr):
        args = ", ".join(format_expr(a) for a in expr.args)
        if expr.has_ellipsis:
            args += "..."
        return f"{format_expr(expr.fun)}({args})"
    if isinstance(expr, StarExpr):
        return "*" + format_expr(expr.x)
    if isinstance(expr, UnaryExpr):
        return expr.op + format_expr(expr.x)
    if isinstance(expr, BinaryExpr):
        return f"{format_expr(expr.x)} {expr.op} {format_expr(expr.y)}"
    if isinstance(expr, ArrayType):
        return f"[{format_expr(expr.len)}]{format_expr(expr.elt)}"
    if isinstance(expr, StructType):
        return "struct{" + "; ".join(_format_field(f) for f in expr.fields.list) + "}"
    if isinstance(expr, FuncType):
        params = ", ".join(_format_field(f) for f in expr.params.list)
        text = f"func({params})"
        if expr.results is not None and expr.results.list:
            results = ", ".join(_format_field(f) for f in expr.results.list)
            if len(expr.results.list) == 1 and not expr.results.list[0].names:
                text += " " + results
            else:
                text += f" ({results})"
        return text
    if isinstance(expr, InterfaceType):
        return "interface{" + "; ".join(_format_field(f) for f in expr.methods.list) + "}"
    if isinstance(expr, MapType):
        return f"map[{format_expr(expr.key)}]{format_expr(expr.value)}"
    if isinstance(expr, ChanType):
        prefix = {"send": "chan<- ", "recv": "<-chan "}.get(expr.dir, "chan ")
        return prefix + format_expr(expr.value)
    return f"<{type(expr).__name__}>"


def _format_field(f: Field) -> str:
    if f.names:
        return f"{', '.join(n.name for n in f.names)} {format_expr(f.type)}"
    return format_expr(f.type)
