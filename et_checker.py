#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from et_ast import (
    Node, Expr, Ident, BasicLit, Ellipsis, CompositeLit, KeyValueExpr, FuncLit, ParenExpr, SelectorExpr, IndexExpr,
    SliceExpr, TypeAssertExpr, CallExpr, StarExpr, UnaryExpr, BinaryExpr, Field, FieldList, ArrayType, StructType,
    FuncType, InterfaceType, MapType, ChanType, Stmt, BadStmt, DeclStmt, EmptyStmt, LabeledStmt, ExprStmt, SendStmt,
    IncDecStmt, AssignStmt, GoStmt, DeferStmt, ReturnStmt, BranchStmt, BlockStmt, IfStmt, CaseClause, SwitchStmt,
    TypeSwitchStmt, CommClause, SelectStmt, ForStmt, RangeStmt, ImportSpec, ValueSpec, TypeSpec, GenDecl, FuncDecl,
    File, format_expr, unparen)
from et_diagnostics import Diagnostic, diag_from_node
from et_symbols import (
    Object, TypeName, Var, Const, Func, PkgName, Builtin, Nil, Scope, Package, lookup_field_or_method)
from et_types import (
    Type, Basic, Named, Alias, Pointer, Slice, Array, Map, Chan, Struct, Interface, Tuple, Signature, TypeParam,
    INVALID, UNTYPED_BOOL, UNTYPED_INT, UNTYPED_RUNE, UNTYPED_FLOAT, UNTYPED_COMPLEX, UNTYPED_STRING, UNTYPED_NIL,
    default_type, get_basic, instantiate_named, subst, under, unalias)


# ==========================
# Type information records
# ==========================

class Mode(Enum):
    INVALID = auto()
    NOVALUE = auto()
    BUILTIN = auto()
    TYPEEXPR = auto()
    CONSTANT = auto()
    VARIABLE = auto()
    MAPINDEX = auto()
    VALUE = auto()
    COMMAOK = auto()


_VALUE_MODES = (Mode.CONSTANT, Mode.VARIABLE, Mode.MAPINDEX, Mode.VALUE, Mode.COMMAOK)


@dataclass
class TypeAndValue:
    mode: Mode
    type: Type

    @property
    def is_type(self) -> bool:
        return self.mode is Mode.TYPEEXPR

    @property
    def is_value(self) -> bool:
        return self.mode in _VALUE_MODES

    @property
    def is_nil(self) -> bool:
        return self.mode is Mode.VALUE and self.type is UNTYPED_NIL

    @property
    def addressable(self) -> bool:
        return self.mode is Mode.VARIABLE


class SelectionKind(Enum):
    FIELD_VAL = auto()
    METHOD_VAL = auto()
    METHOD_EXPR = auto()


@dataclass
class Selection:
    kind: SelectionKind
    recv: Type
    obj: Object
    index: List[int]
    indirect: bool


@dataclass
class TypesInfo:
    """
    Results of type checking one package, keyed by AST node identity.

    types      : every checked expression (including type expressions)
    defs       : identifiers that declare an object
    uses       : identifiers that refer to an object
    selections : selector expressions denoting fields and methods
    """
    types: Dict[Expr, TypeAndValue] = field(default_factory=dict)
    defs: Dict[Ident, Optional[Object]] = field(default_factory=dict)
    uses: Dict[Ident, Object] = field(default_factory=dict)
    selections: Dict[SelectorExpr, Selection] = field(default_factory=dict)

    def type_of(self, expr: Expr) -> Optional[Type]:
        tv = self.types.get(expr)
        if tv is not None:
            return tv.type
        if isinstance(expr, Ident):
            obj = self.object_of(expr)
            if obj is not None:
                return obj.type
        return None

    def object_of(self, ident: Ident) -> Optional[Object]:
        obj = self.defs.get(ident)
        if obj is not None:
            return obj
        return self.uses.get(ident)


_INVALID_TV = TypeAndValue(Mode.INVALID, INVALID)

_COMPARISON_OPS = ("==", "!=", "<", "<=", ">", ">=")

_UNTYPED_RANK = {
    "untyped int": 1,
    "untyped rune": 2,
    "untyped float": 3,
    "untyped complex": 4,
}

_LITERAL_TYPES = {
    "INT": UNTYPED_INT,
    "FLOAT": UNTYPED_FLOAT,
    "IMAG": UNTYPED_COMPLEX,
    "CHAR": UNTYPED_RUNE,
    "STRING": UNTYPED_STRING,
}


@dataclass
class _DeclInfo:
    kind: str  # "const", "var", "func"
    node: Node  # ValueSpec or FuncDecl
    file: File
    scope: Scope
    index: int = 0
    iota: int = 0
    type_expr: Optional[Expr] = None  # const groups: inherited type
    values: List[Expr] = field(default_factory=list)  # const groups: inherited values
    objs: List[Object] = field(default_factory=list)  # var specs: all names
    done: bool = False


# ==========================
# Checker
# ==========================

Importer = Callable[[str], Optional[Package]]


class Checker:
    """
    Lenient type checker for one package.

    Package-level declarations are resolved lazily so that declaration order
    does not matter. User errors never raise; they become CHK diagnostics and
    the invalid type.
    """

    def __init__(self, pkg: Package, files: List[File], importer: Importer,
                 info: Optional[TypesInfo] = None) -> None:
        self.pkg = pkg
        self.files = files
        self.importer = importer
        self.info = info if info is not None else TypesInfo()
        self.diagnostics: List[Diagnostic] = []

        self._decls: Dict[Object, _DeclInfo] = {}
        self._in_progress: set = set()
        self._objects: List[Object] = []  # package-level objects in source order
        self._funcs: List[Func] = []  # functions and methods with bodies to check
        self._func_scopes: Dict[Func, Scope] = {}
        self._delayed: List[Callable[[], None]] = []
        self._file: Optional[File] = None
        self._iota: Optional[int] = None
        self._result_sig: Optional[Signature] = None
        self._func_depth = 0

    # --- entry point ---

    def check(self) -> TypesInfo:
        self._collect_objects()
        self._package_objects()
        self._process_delayed()
        for fn in self._funcs:
            self._check_func_body(fn)
        self._process_delayed()
        return self.info

    # --- diagnostics ---

    def _error(self, message: str, node: Optional[Node]) -> None:
        self.diagnostics.append(
            diag_from_node(
                "error",
                message,
                module_name=self.pkg.path,
                filename=self._file.filename if self._file is not None else None,
                node=node,
            )
        )

    def _record(self, e: Expr, mode: Mode, typ: Optional[Type]) -> TypeAndValue:
        tv = TypeAndValue(mode, typ if typ is not None else INVALID)
        self.info.types[e] = tv
        return tv

    def _declare(self, scope: Scope, ident: Optional[Ident], obj: Object) -> None:
        existing = scope.insert(obj)
        if existing is not None:
            self._error(f"[CHK-0040] {obj.name} redeclared in this block", ident)
        if ident is not None:
            self.info.defs[ident] = obj

    # --- collection ---

    def _collect_objects(self) -> None:
        methods = []
        for file in self.files:
            self._file = file
            fscope = Scope(self.pkg.scope, "file")
            for spec in file.imports:
                self._declare_import(spec, fscope)

            for decl in file.decls:
                if isinstance(decl, GenDecl):
                    if decl.tok == "const":
                        self._collect_consts(decl, file, fscope)
                    elif decl.tok == "var":
                        for spec in decl.specs:
                            objs: List[Object] = []
                            info = _DeclInfo("var", spec, file, fscope, objs=objs)
                            for name in spec.names:
                                obj = Var(name.name, self.pkg, node=spec)
                                objs.append(obj)
                                self._decls[obj] = info
                                self._declare(self.pkg.scope, name, obj)
                                self._objects.append(obj)
                    elif decl.tok == "type":
                        for spec in decl.specs:
                            obj = self._declare_type(spec, self.pkg.scope, file, fscope)
                            self._objects.append(obj)
                elif isinstance(decl, FuncDecl):
                    if decl.recv is not None:
                        methods.append((decl, file, fscope))
                        continue
                    fn = Func(decl.name.name, self.pkg, node=decl)
                    self._decls[fn] = _DeclInfo("func", decl, file, fscope)
                    if decl.name.name in ("init", "_"):
                        self.info.defs[decl.name] = fn
                    else:
                        self._declare(self.pkg.scope, decl.name, fn)
                    self._objects.append(fn)
                    self._funcs.append(fn)

        for decl, file, fscope in methods:
            self._file = file
            self._collect_method(decl, file, fscope)
        self._file = None

    def _declare_import(self, spec: ImportSpec, fscope: Scope) -> None:
        imported = self.importer(spec.path)
        if imported is None:
            self._error(f"[CHK-0050] could not import {spec.path}", spec)
            imported = Package(spec.path, spec.path.rsplit("/", 1)[-1], fake=True)
        if all(p is not imported for p in self.pkg.imports):
            self.pkg.imports.append(imported)

        name = spec.name.name if spec.name is not None else imported.name
        if name == "_":
            return
        if name == ".":
            for obj in imported.scope:
                if obj.exported():
                    fscope.insert(obj)
            return
        pkgname = PkgName(name, self.pkg, imported=imported, node=spec)
        self._declare(fscope, spec.name, pkgname)

    def _collect_consts(self, decl: GenDecl, file: File, fscope: Scope) -> None:
        type_expr: Optional[Expr] = None
        values: List[Expr] = []
        for iota, spec in enumerate(decl.specs):
            if spec.values:
                type_expr, values = spec.type, spec.values
            for i, name in enumerate(spec.names):
                obj = Const(name.name, self.pkg, node=spec)
                self._decls[obj] = _DeclInfo("const", spec, file, fscope, index=i, iota=iota, type_expr=type_expr,
                                             values=values)
                self._declare(self.pkg.scope, name, obj)
                self._objects.append(obj)

    def _declare_type(self, spec: TypeSpec, scope: Scope, file: Optional[File],
                      lookup: Optional[Scope] = None) -> TypeName:
        obj = TypeName(spec.name.name, self.pkg, node=spec)
        env = lookup if lookup is not None else scope
        if spec.assign:
            alias = Alias(obj)
            obj.type = alias
            alias.resolver = self._alias_resolver(alias, spec, env, file)
        else:
            named = Named(obj)
            obj.type = named
            tscope = env
            if spec.type_params is not None:
                tscope = Scope(env, "type")
                named.type_params = self._declare_type_params(spec.type_params, tscope)
            named.resolver = self._named_resolver(named, spec, tscope, file)
        self._declare(scope, spec.name, obj)
        return obj

    def _named_resolver(self, named: Named, spec: TypeSpec, scope: Scope, file: Optional[File]):
        def resolve() -> None:
            saved = self._file
            self._file = file or saved
            try:
                if spec.type_params is not None:
                    self._bind_constraints(spec.type_params, named.type_params, scope)
                named.underlying_ = self._type_expr(spec.type, scope)
            finally:
                self._file = saved
        return resolve

    def _alias_resolver(self, alias: Alias, spec: TypeSpec, scope: Scope, file: Optional[File]):
        def resolve() -> None:
            saved = self._file
            self._file = file or saved
            try:
                alias.rhs = self._type_expr(spec.type, scope)
            finally:
                self._file = saved
        return resolve

    def _declare_type_params(self, fl: FieldList, scope: Scope) -> List[TypeParam]:
        tps: List[TypeParam] = []
        for f in fl.list:
            for name in f.names:
                obj = TypeName(name.name, self.pkg, node=f)
                tp = TypeParam(obj, len(tps))
                obj.type = tp
                self._declare(scope, name, obj)
                tps.append(tp)
        return tps

    def _bind_constraints(self, fl: FieldList, tps: List[TypeParam], scope: Scope) -> None:
        i = 0
        for f in fl.list:
            constraint = self._constraint(f.type, scope)
            for _ in f.names:
                if i < len(tps):
                    tps[i].constraint = constraint
                i += 1

    def _constraint(self, e: Expr, scope: Scope) -> Type:
        if isinstance(e, BinaryExpr) and e.op == "|" or isinstance(e, UnaryExpr) and e.op == "~":
            return Interface(embeddeds=self._constraint_terms(e, scope))
        return self._type_expr(e, scope)

    def _constraint_terms(self, e: Expr, scope: Scope) -> List[Type]:
        if isinstance(e, BinaryExpr) and e.op == "|":
            return self._constraint_terms(e.x, scope) + self._constraint_terms(e.y, scope)
        if isinstance(e, UnaryExpr) and e.op == "~":
            return [self._type_expr(e.x, scope)]
        return [self._type_expr(e, scope)]

    def _collect_method(self, decl: FuncDecl, file: File, fscope: Scope) -> None:
        fn = Func(decl.name.name, self.pkg, node=decl)
        self.info.defs[decl.name] = fn
        self._decls[fn] = _DeclInfo("func", decl, file, fscope)
        self._funcs.append(fn)

        base = self._receiver_base(decl)
        named = None
        if isinstance(base, Ident):
            obj = self.pkg.scope.lookup(base.name)
            if isinstance(obj, TypeName):
                named = unalias(obj.type)
        if isinstance(named, Named):
            if decl.name.name != "_":
                if named.method(decl.name.name) is not None:
                    self._error(f"[CHK-0040] method {named.obj.name}.{decl.name.name} already declared", decl.name)
                else:
                    named.methods.append(fn)
        else:
            self._error(f"[CHK-0030] invalid receiver type {format_expr(base)}", decl.recv)

    @staticmethod
    def _receiver_base(decl: FuncDecl) -> Optional[Expr]:
        if decl.recv is None or not decl.recv.list:
            return None
        base = unparen(decl.recv.list[0].type)
        if isinstance(base, StarExpr):
            base = unparen(base.x)
        if isinstance(base, IndexExpr):
            base = base.x
        return base

    # --- package-level resolution ---

    def _package_objects(self) -> None:
        for obj in self._objects:
            if isinstance(obj, TypeName):
                t = obj.type
                if isinstance(t, Named):
                    t.underlying()
                elif isinstance(t, Alias):
                    t.actual()
            else:
                self._obj_type(obj)
        for fn in self._funcs:
            self._obj_type(fn)

    def _obj_type(self, obj: Object) -> Type:
        info = self._decls.get(obj)
        if info is None or info.done:
            return obj.type if obj.type is not None else INVALID
        if obj in self._in_progress:
            # Initialization cycle; leave the object untyped for now.
            return obj.type if obj.type is not None else INVALID

        self._in_progress.add(obj)
        saved_file, saved_iota = self._file, self._iota
        self._file = info.file
        try:
            if info.kind == "func":
                self._resolve_func(obj, info)
            elif info.kind == "const":
                self._resolve_const(obj, info)
            else:
                self._resolve_var_spec(info)
        finally:
            self._file, self._iota = saved_file, saved_iota
            self._in_progress.discard(obj)
            info.done = True
        return obj.type if obj.type is not None else INVALID

    def _resolve_const(self, obj: Object, info: _DeclInfo) -> None:
        self._iota = info.iota
        typ: Optional[Type] = None
        if info.type_expr is not None:
            typ = self._type_expr(info.type_expr, info.scope)
        if info.index < len(info.values):
            tv = self._expr(info.values[info.index], info.scope, typ)
            if typ is None:
                typ = tv.type
        obj.type = typ if typ is not None else INVALID

    def _resolve_var_spec(self, info: _DeclInfo) -> None:
        spec = info.node
        for obj in info.objs:
            self._decls[obj].done = True
        self._value_spec(spec, info.scope, info.objs)

    def _value_spec(self, spec: ValueSpec, scope: Scope, objs: List[Object]) -> None:
        typ: Optional[Type] = None
        if spec.type is not None:
            typ = self._type_expr(spec.type, scope)
            for obj in objs:
                obj.type = typ

        if not spec.values:
            if typ is None:
                for obj in objs:
                    obj.type = INVALID
            return

        if len(spec.values) == len(objs):
            for obj, value in zip(objs, spec.values):
                tv = self._expr(value, scope, typ)
                if typ is None:
                    obj.type = default_type(tv.type)
        elif len(spec.values) == 1:
            tv = self._expr(spec.values[0], scope)
            types = self._unpack(tv, len(objs), spec.values[0])
            if typ is None:
                for obj, t in zip(objs, types):
                    obj.type = default_type(t)
        else:
            self._error(f"[CHK-0030] assignment mismatch: {len(objs)} variables but {len(spec.values)} values", spec)
            for value in spec.values:
                self._expr(value, scope, typ)
            if typ is None:
                for obj in objs:
                    obj.type = INVALID

    def _unpack(self, tv: TypeAndValue, n: int, node: Node) -> List[Type]:
        if isinstance(tv.type, Tuple):
            types = [v.type for v in tv.type.vars]
            if len(types) == n:
                return types
        elif n == 2 and tv.mode in (Mode.COMMAOK, Mode.MAPINDEX):
            return [tv.type, UNTYPED_BOOL]
        elif n == 1:
            return [tv.type]
        if tv.mode is not Mode.INVALID:
            self._error(f"[CHK-0030] assignment mismatch: {n} variables but {format_expr(node)} "
                        f"does not return {n} values", node)
        return [INVALID] * n

    def _resolve_func(self, fn: Func, info: _DeclInfo) -> None:
        decl: FuncDecl = info.node
        fscope = Scope(info.scope, "func")
        recv_var: Optional[Var] = None

        if decl.recv is not None and decl.recv.list:
            recv_field = decl.recv.list[0]
            recv_type = self._receiver_type(recv_field.type, fscope)
            name = recv_field.names[0] if recv_field.names else None
            recv_var = Var(name.name if name is not None else "", self.pkg, recv_type, node=recv_field)
            if name is not None:
                self._declare(fscope, name, recv_var)

        tps: List[TypeParam] = []
        if decl.type.type_params is not None:
            tps = self._declare_type_params(decl.type.type_params, fscope)
            self._bind_constraints(decl.type.type_params, tps, fscope)

        sig = self._signature(decl.type, fscope, declare=True)
        sig.recv = recv_var
        sig.type_params = tps
        fn.type = sig
        self._record(decl.type, Mode.TYPEEXPR, sig)
        self._func_scopes[fn] = fscope

    def _receiver_type(self, e: Expr, fscope: Scope) -> Type:
        base = unparen(e)
        star = isinstance(base, StarExpr)
        if star:
            base = unparen(base.x)
        if isinstance(base, IndexExpr) and isinstance(base.x, Ident):
            obj = self.pkg.scope.lookup(base.x.name)
            named = unalias(obj.type) if isinstance(obj, TypeName) else None
            if not isinstance(named, Named):
                return INVALID
            self.info.uses[base.x] = obj
            self._record(base.x, Mode.TYPEEXPR, named)
            for ident, tp in zip(base.indices, named.type_params):
                if isinstance(ident, Ident):
                    self._declare(fscope, ident, TypeName(ident.name, self.pkg, tp, node=ident))
            t: Type = named
            self._record(base, Mode.TYPEEXPR, t)
            if star:
                t = Pointer(named)
                self._record(unparen(e), Mode.TYPEEXPR, t)
            return t
        return self._type_expr(e, fscope)

    # --- function bodies ---

    def _check_func_body(self, fn: Func) -> None:
        decl: FuncDecl = fn.node
        if decl.body is None:
            return
        info = self._decls[fn]
        saved = self._file
        self._file = info.file
        try:
            sig = fn.signature
            fscope = self._func_scopes.get(fn)
            if sig is None or fscope is None:
                return
            self._func_body(sig, decl.body, fscope)
        finally:
            self._file = saved

    def _func_body(self, sig: Signature, body: BlockStmt, fscope: Scope) -> None:
        saved_sig = self._result_sig
        self._result_sig = sig
        self._func_depth += 1
        try:
            self._stmt_list(body.list, fscope)
        finally:
            self._func_depth -= 1
            self._result_sig = saved_sig

    def _process_delayed(self) -> None:
        while self._delayed:
            action = self._delayed.pop(0)
            action()

    # --- types ---

    def _type_expr(self, e: Expr, scope: Scope) -> Type:
        tv = self._expr(e, scope)
        if tv.mode is Mode.TYPEEXPR:
            return tv.type
        if tv.mode is not Mode.INVALID:
            self._error(f"[CHK-0030] {format_expr(e)} is not a type", e)
        return INVALID

    def _signature(self, ftype: FuncType, fscope: Scope, *, declare: bool) -> Signature:
        params, variadic = self._field_vars(ftype.params, fscope, declare=declare)
        results: List[Var] = []
        if ftype.results is not None:
            results, _ = self._field_vars(ftype.results, fscope, declare=declare)
        return Signature(Tuple(params), Tuple(results), variadic)

    def _field_vars(self, fl: FieldList, scope: Scope, *, declare: bool):
        result: List[Var] = []
        variadic = False
        for f in fl.list:
            if isinstance(f.type, Ellipsis):
                variadic = True
                elem = self._type_expr(f.type.elt, scope) if f.type.elt is not None else INVALID
                t: Type = Slice(elem)
                self._record(f.type, Mode.TYPEEXPR, t)
            else:
                t = self._type_expr(f.type, scope)
            if f.names:
                for name in f.names:
                    v = Var(name.name, self.pkg, t, node=f)
                    if declare:
                        self._declare(scope, name, v)
                    else:
                        self.info.defs[name] = v
                    result.append(v)
            else:
                result.append(Var("", self.pkg, t, node=f))
        return result, variadic

    def _struct_type(self, e: StructType, scope: Scope) -> Struct:
        st = Struct()
        for f in e.fields.list:
            t = self._type_expr(f.type, scope)
            if f.names:
                for name in f.names:
                    v = Var(name.name, self.pkg, t, is_field=True, node=f)
                    self.info.defs[name] = v
                    st.fields.append(v)
                    st.tags.append(f.tag)
            else:
                base = unparen(f.type)
                if isinstance(base, StarExpr):
                    base = unparen(base.x)
                if isinstance(base, IndexExpr):
                    base = base.x
                if isinstance(base, SelectorExpr):
                    base = base.sel
                name = base.name if isinstance(base, Ident) else "_"
                st.fields.append(Var(name, self.pkg, t, is_field=True, embedded=True, node=f))
                st.tags.append(f.tag)
        return st

    def _interface_type(self, e: InterfaceType, scope: Scope) -> Interface:
        iface = Interface()
        for f in e.methods.list:
            if f.names and isinstance(f.type, FuncType):
                sig = self._signature(f.type, Scope(scope, "func"), declare=False)
                self._record(f.type, Mode.TYPEEXPR, sig)
                sig.recv = Var("", self.pkg, iface)
                for name in f.names:
                    m = Func(name.name, self.pkg, sig, node=f)
                    self.info.defs[name] = m
                    iface.methods.append(m)
            else:
                c = self._constraint(f.type, scope)
                if isinstance(c, Interface) and isinstance(f.type, (BinaryExpr, UnaryExpr)):
                    iface.embeddeds.extend(c.embeddeds)
                else:
                    iface.embeddeds.append(c)
        return iface

    def _array_length(self, e: Optional[Expr], scope: Scope) -> Optional[int]:
        if e is None:
            return None
        self._expr(e, scope)
        if isinstance(e, BasicLit) and e.kind == "INT":
            try:
                return int(e.value.replace("_", ""), 0)
            except ValueError:
                return None
        return None

    # --- statements ---

    def _stmt_list(self, stmts: List[Stmt], scope: Scope) -> None:
        for s in stmts:
            self._stmt(s, scope)

    def _stmt(self, s: Stmt, scope: Scope) -> None:
        if isinstance(s, (EmptyStmt, BadStmt, BranchStmt)):
            return

        if isinstance(s, DeclStmt):
            self._decl_stmt(s.decl, scope)
        elif isinstance(s, LabeledStmt):
            self._stmt(s.stmt, scope)
        elif isinstance(s, ExprStmt):
            self._expr(s.x, scope)
        elif isinstance(s, SendStmt):
            ch = self._expr(s.chan, scope)
            u = under(ch.type)
            self._expr(s.value, scope, u.elem if isinstance(u, Chan) else None)
        elif isinstance(s, IncDecStmt):
            self._expr(s.x, scope)
        elif isinstance(s, AssignStmt):
            self._assign(s, scope)
        elif isinstance(s, (GoStmt, DeferStmt)):
            self._expr(s.call, scope)
        elif isinstance(s, ReturnStmt):
            self._return(s, scope)
        elif isinstance(s, BlockStmt):
            self._stmt_list(s.list, Scope(scope))
        elif isinstance(s, IfStmt):
            inner = Scope(scope)
            if s.init is not None:
                self._stmt(s.init, inner)
            self._expr(s.cond, inner)
            self._stmt_list(s.body.list, Scope(inner))
            if s.else_ is not None:
                self._stmt(s.else_, inner)
        elif isinstance(s, SwitchStmt):
            inner = Scope(scope)
            if s.init is not None:
                self._stmt(s.init, inner)
            tag_type: Optional[Type] = None
            if s.tag is not None:
                tag_type = self._expr(s.tag, inner).type
            for clause in s.body.list:
                if isinstance(clause, CaseClause):
                    for e in clause.list or []:
                        self._expr(e, inner, tag_type)
                    self._stmt_list(clause.body, Scope(inner))
        elif isinstance(s, TypeSwitchStmt):
            self._type_switch(s, scope)
        elif isinstance(s, SelectStmt):
            for clause in s.body.list:
                if isinstance(clause, CommClause):
                    inner = Scope(scope)
                    if clause.comm is not None:
                        self._stmt(clause.comm, inner)
                    self._stmt_list(clause.body, inner)
        elif isinstance(s, ForStmt):
            inner = Scope(scope)
            if s.init is not None:
                self._stmt(s.init, inner)
            if s.cond is not None:
                self._expr(s.cond, inner)
            if s.post is not None:
                self._stmt(s.post, inner)
            self._stmt_list(s.body.list, Scope(inner))
        elif isinstance(s, RangeStmt):
            self._range(s, scope)
        elif isinstance(s, CaseClause):
            self._stmt_list(s.body, Scope(scope))

    def _decl_stmt(self, decl: GenDecl, scope: Scope) -> None:
        if decl.tok == "var":
            for spec in decl.specs:
                objs = [Var(name.name, self.pkg, node=spec) for name in spec.names]
                self._value_spec(spec, scope, objs)
                for name, obj in zip(spec.names, objs):
                    self._declare(scope, name, obj)
        elif decl.tok == "const":
            saved = self._iota
            type_expr: Optional[Expr] = None
            values: List[Expr] = []
            for iota, spec in enumerate(decl.specs):
                if spec.values:
                    type_expr, values = spec.type, spec.values
                self._iota = iota
                typ = self._type_expr(type_expr, scope) if type_expr is not None else None
                objs = []
                for i, name in enumerate(spec.names):
                    t = typ
                    if i < len(values):
                        tv = self._expr(values[i], scope, typ)
                        if t is None:
                            t = tv.type
                    objs.append(Const(name.name, self.pkg, t if t is not None else INVALID, node=spec))
                for name, obj in zip(spec.names, objs):
                    self._declare(scope, name, obj)
            self._iota = saved
        elif decl.tok == "type":
            for spec in decl.specs:
                obj = self._declare_type(spec, scope, self._file)
                t = obj.type
                if isinstance(t, Named):
                    t.underlying()
                elif isinstance(t, Alias):
                    t.actual()

    def _assign(self, s: AssignStmt, scope: Scope) -> None:
        if s.tok == ":=":
            if len(s.lhs) == len(s.rhs):
                types = [default_type(self._expr(r, scope).type) for r in s.rhs]
            elif len(s.rhs) == 1:
                tv = self._expr(s.rhs[0], scope)
                types = self._unpack(tv, len(s.lhs), s.rhs[0])
            else:
                self._error(f"[CHK-0030] assignment mismatch: {len(s.lhs)} variables but {len(s.rhs)} values", s)
                for r in s.rhs:
                    self._expr(r, scope)
                types = [INVALID] * len(s.lhs)

            new_vars = []
            for lhs, t in zip(s.lhs, types):
                if not isinstance(lhs, Ident):
                    self._error(f"[CHK-0030] non-name {format_expr(lhs)} on left side of :=", lhs)
                    continue
                if lhs.name == "_":
                    continue
                existing = scope.lookup(lhs.name)
                if existing is not None:
                    self.info.uses[lhs] = existing
                    self._record(lhs, Mode.VARIABLE, existing.type)
                else:
                    new_vars.append((lhs, Var(lhs.name, self.pkg, default_type(t), node=s)))
            for ident, var in new_vars:
                self._declare(scope, ident, var)
            return

        lhs_types: List[Optional[Type]] = []
        for lhs in s.lhs:
            if isinstance(lhs, Ident) and lhs.name == "_":
                lhs_types.append(None)
                continue
            lhs_types.append(self._expr(lhs, scope).type)
        if len(s.lhs) == len(s.rhs):
            for r, t in zip(s.rhs, lhs_types):
                self._expr(r, scope, t)
        else:
            for r in s.rhs:
                self._expr(r, scope)

    def _return(self, s: ReturnStmt, scope: Scope) -> None:
        hints: List[Optional[Type]] = [None] * len(s.results)
        sig = self._result_sig
        if sig is not None and len(sig.results) == len(s.results):
            hints = [v.type for v in sig.results.vars]
        for r, hint in zip(s.results, hints):
            self._expr(r, scope, hint)

    def _type_switch(self, s: TypeSwitchStmt, scope: Scope) -> None:
        inner = Scope(scope)
        if s.init is not None:
            self._stmt(s.init, inner)

        symbol: Optional[Ident] = None
        guard: Optional[Expr] = None
        if isinstance(s.assign, AssignStmt) and s.assign.rhs:
            if s.assign.lhs and isinstance(s.assign.lhs[0], Ident):
                symbol = s.assign.lhs[0]
            guard = s.assign.rhs[0]
        elif isinstance(s.assign, ExprStmt):
            guard = s.assign.x

        x_type: Type = INVALID
        if isinstance(guard, TypeAssertExpr):
            x_type = self._expr(guard.x, inner).type
        elif guard is not None:
            self._expr(guard, inner)

        for clause in s.body.list:
            if not isinstance(clause, CaseClause):
                continue
            case_types: List[Type] = []
            for e in clause.list or []:
                if isinstance(e, Ident) and e.name == "nil":
                    tv = self._expr(e, inner)
                    case_types.append(tv.type)
                    continue
                case_types.append(self._type_expr(e, inner))
            clause_scope = Scope(inner)
            if symbol is not None and symbol.name != "_":
                t = case_types[0] if len(case_types) == 1 and case_types[0] is not UNTYPED_NIL else x_type
                clause_scope.insert(Var(symbol.name, self.pkg, t, node=clause))
            self._stmt_list(clause.body, clause_scope)

    def _range(self, s: RangeStmt, scope: Scope) -> None:
        inner = Scope(scope)
        x = self._expr(s.x, inner)
        u = under(x.type)
        key: Type = INVALID
        value: Type = INVALID
        if isinstance(u, Pointer) and isinstance(under(u.elem), Array):
            u = under(u.elem)
        if isinstance(u, (Slice, Array)):
            key, value = get_basic("int"), u.elem
        elif isinstance(u, Basic) and u.is_string:
            key, value = get_basic("int"), get_basic("int32")
        elif isinstance(u, Basic) and u.is_integer:
            key = default_type(x.type)
        elif isinstance(u, Map):
            key, value = u.key, u.elem
        elif isinstance(u, Chan):
            key = u.elem
        elif isinstance(u, Signature) and len(u.params) == 1:
            yield_sig = under(u.params.vars[0].type)
            if isinstance(yield_sig, Signature):
                yield_types = [v.type for v in yield_sig.params.vars]
                if yield_types:
                    key = yield_types[0]
                if len(yield_types) > 1:
                    value = yield_types[1]

        if s.tok == ":=":
            for e, t in ((s.key, key), (s.value, value)):
                if isinstance(e, Ident) and e.name != "_":
                    self._declare(inner, e, Var(e.name, self.pkg, t, node=s))
        else:
            for e in (s.key, s.value):
                if e is not None and not (isinstance(e, Ident) and e.name == "_"):
                    self._expr(e, inner)
        self._stmt_list(s.body.list, Scope(inner))

    # --- expressions ---

    def _expr(self, e: Expr, scope: Scope, hint: Optional[Type] = None) -> TypeAndValue:
        if isinstance(e, Ident):
            return self._ident(e, scope)
        if isinstance(e, BasicLit):
            return self._record(e, Mode.CONSTANT, _LITERAL_TYPES.get(e.kind, INVALID))
        if isinstance(e, CompositeLit):
            return self._composite_lit(e, scope, hint)
        if isinstance(e, FuncLit):
            return self._func_lit(e, scope)
        if isinstance(e, ParenExpr):
            tv = self._expr(e.x, scope, hint)
            return self._record(e, tv.mode, tv.type)
        if isinstance(e, SelectorExpr):
            return self._selector(e, scope)
        if isinstance(e, IndexExpr):
            return self._index(e, scope)
        if isinstance(e, SliceExpr):
            return self._slice(e, scope)
        if isinstance(e, TypeAssertExpr):
            self._expr(e.x, scope)
            if e.type is None:
                self._error("[CHK-0030] use of .(type) outside type switch", e)
                return self._record(e, Mode.INVALID, INVALID)
            return self._record(e, Mode.COMMAOK, self._type_expr(e.type, scope))
        if isinstance(e, CallExpr):
            return self._call(e, scope, hint)
        if isinstance(e, StarExpr):
            return self._star(e, scope)
        if isinstance(e, UnaryExpr):
            return self._unary(e, scope, hint)
        if isinstance(e, BinaryExpr):
            return self._binary(e, scope)
        if isinstance(e, KeyValueExpr):
            self._error("[CHK-0030] unexpected key:value expression", e)
            return _INVALID_TV
        if isinstance(e, ArrayType):
            elem = self._type_expr(e.elt, scope)
            if e.len is None:
                return self._record(e, Mode.TYPEEXPR, Slice(elem))
            if isinstance(e.len, Ellipsis):
                self._error("[CHK-0030] invalid use of [...] array outside a composite literal", e)
                return self._record(e, Mode.TYPEEXPR, Array(None, elem))
            return self._record(e, Mode.TYPEEXPR, Array(self._array_length(e.len, scope), elem))
        if isinstance(e, StructType):
            return self._record(e, Mode.TYPEEXPR, self._struct_type(e, scope))
        if isinstance(e, FuncType):
            sig = self._signature(e, Scope(scope, "func"), declare=False)
            return self._record(e, Mode.TYPEEXPR, sig)
        if isinstance(e, InterfaceType):
            return self._record(e, Mode.TYPEEXPR, self._interface_type(e, scope))
        if isinstance(e, MapType):
            key = self._type_expr(e.key, scope)
            value = self._type_expr(e.value, scope)
            return self._record(e, Mode.TYPEEXPR, Map(key, value))
        if isinstance(e, ChanType):
            return self._record(e, Mode.TYPEEXPR, Chan(e.dir, self._type_expr(e.value, scope)))
        if isinstance(e, Ellipsis):
            elem = self._type_expr(e.elt, scope) if e.elt is not None else INVALID
            return self._record(e, Mode.TYPEEXPR, Slice(elem))

        self._error(f"[CHK-0030] unexpected expression {type(e).__name__}", e)
        return _INVALID_TV

    def _ident(self, e: Ident, scope: Scope) -> TypeAndValue:
        if e.name == "_":
            self._error("[CHK-0030] cannot use _ as value", e)
            return _INVALID_TV
        _, obj = scope.lookup_parent(e.name)
        if obj is None:
            self._error(f"[CHK-0010] undefined: {e.name}", e)
            return self._record(e, Mode.INVALID, INVALID)
        self.info.uses[e] = obj

        if isinstance(obj, PkgName):
            obj.used = True
            self._error(f"[CHK-0030] use of package {e.name} without selector", e)
            return _INVALID_TV
        return self._object_tv(e, obj)

    def _object_tv(self, e: Expr, obj: Object) -> TypeAndValue:
        if isinstance(obj, TypeName):
            return self._record(e, Mode.TYPEEXPR, obj.type)
        if isinstance(obj, Const):
            if obj.name == "iota" and obj.pkg is None:
                if self._iota is None:
                    self._error("[CHK-0030] cannot use iota outside constant declaration", e)
                return self._record(e, Mode.CONSTANT, UNTYPED_INT)
            return self._record(e, Mode.CONSTANT, self._obj_type(obj))
        if isinstance(obj, Var):
            return self._record(e, Mode.VARIABLE, self._obj_type(obj))
        if isinstance(obj, Func):
            return self._record(e, Mode.VALUE, self._obj_type(obj))
        if isinstance(obj, Builtin):
            return self._record(e, Mode.BUILTIN, INVALID)
        if isinstance(obj, Nil):
            return self._record(e, Mode.VALUE, UNTYPED_NIL)
        return self._record(e, Mode.INVALID, INVALID)

    def _composite_lit(self, e: CompositeLit, scope: Scope, hint: Optional[Type]) -> TypeAndValue:
        if e.type is not None:
            if isinstance(e.type, ArrayType) and isinstance(e.type.len, Ellipsis):
                elem = self._type_expr(e.type.elt, scope)
                typ: Type = Array(len(e.elts), elem)
                self._record(e.type, Mode.TYPEEXPR, typ)
            else:
                typ = self._type_expr(e.type, scope)
        elif hint is not None:
            typ = hint
        else:
            self._error("[CHK-0030] invalid composite literal type: missing type", e)
            typ = INVALID

        base = typ
        u = under(typ)
        if isinstance(u, Pointer):
            # Elided "&T" inside an enclosing literal.
            base = u.elem
            u = under(base)

        if isinstance(u, Struct):
            for i, elt in enumerate(e.elts):
                if isinstance(elt, KeyValueExpr):
                    fld = None
                    if isinstance(elt.key, Ident):
                        fld = next((f for f in u.fields if f.name == elt.key.name), None)
                    if fld is not None:
                        self.info.uses[elt.key] = fld
                    else:
                        self._error(f"[CHK-0020] unknown field {format_expr(elt.key)} in struct literal", elt.key)
                    self._expr(elt.value, scope, fld.type if fld is not None else None)
                else:
                    self._expr(elt, scope, u.fields[i].type if i < len(u.fields) else None)
        elif isinstance(u, (Slice, Array, Map)):
            for elt in e.elts:
                if isinstance(elt, KeyValueExpr):
                    self._expr(elt.key, scope, u.key if isinstance(u, Map) else None)
                    self._expr(elt.value, scope, u.elem)
                else:
                    self._expr(elt, scope, u.elem)
        else:
            if typ is not INVALID:
                self._error(f"[CHK-0030] invalid composite literal type {format_expr(e.type)}", e)
            for elt in e.elts:
                if isinstance(elt, KeyValueExpr):
                    self._expr(elt.value, scope)
                else:
                    self._expr(elt, scope)
        return self._record(e, Mode.VALUE, typ)

    def _func_lit(self, e: FuncLit, scope: Scope) -> TypeAndValue:
        fscope = Scope(scope, "func")
        sig = self._signature(e.type, fscope, declare=True)
        self._record(e.type, Mode.TYPEEXPR, sig)
        if self._func_depth > 0:
            self._func_body(sig, e.body, fscope)
        else:
            file = self._file

            def check_later() -> None:
                saved = self._file
                self._file = file
                try:
                    self._func_body(sig, e.body, fscope)
                finally:
                    self._file = saved

            self._delayed.append(check_later)
        return self._record(e, Mode.VALUE, sig)

    def _selector(self, e: SelectorExpr, scope: Scope) -> TypeAndValue:
        name = e.sel.name

        if isinstance(e.x, Ident):
            _, obj = scope.lookup_parent(e.x.name)
            if isinstance(obj, PkgName):
                obj.used = True
                self.info.uses[e.x] = obj
                member = obj.imported.scope.lookup(name) if obj.imported is not None else None
                if member is None or not member.exported():
                    if obj.imported is None or not obj.imported.fake:
                        self._error(f"[CHK-0010] undefined: {e.x.name}.{name}", e.sel)
                    return self._record(e, Mode.INVALID, INVALID)
                self.info.uses[e.sel] = member
                tv = self._object_tv(e.sel, member)
                return self._record(e, tv.mode, tv.type)

        x = self._expr(e.x, scope)
        if x.mode is Mode.INVALID:
            return self._record(e, Mode.INVALID, INVALID)

        if x.mode is Mode.TYPEEXPR:
            obj, index, indirect = lookup_field_or_method(x.type, False, name)
            if obj is None and indirect:
                obj, index, indirect = lookup_field_or_method(x.type, True, name)
            if not isinstance(obj, Func):
                self._error(f"[CHK-0020] {format_expr(e)} undefined (type has no method {name})", e.sel)
                return self._record(e, Mode.INVALID, INVALID)
            self.info.uses[e.sel] = obj
            self.info.selections[e] = Selection(SelectionKind.METHOD_EXPR, x.type, obj, index, indirect)
            sig = self._method_signature(obj, x.type)
            recv = Var("", self.pkg, x.type)
            expr_sig = Signature(Tuple([recv] + list(sig.params.vars)), sig.results, sig.variadic)
            return self._record(e, Mode.VALUE, expr_sig)

        if x.mode is Mode.NOVALUE or x.mode is Mode.BUILTIN:
            self._error(f"[CHK-0030] {format_expr(e.x)} is not a value", e.x)
            return self._record(e, Mode.INVALID, INVALID)

        obj, index, indirect = lookup_field_or_method(x.type, x.mode is Mode.VARIABLE, name)
        if obj is None and indirect:
            # Pointer method on a non-addressable value; keep going leniently.
            obj, index, indirect = lookup_field_or_method(x.type, True, name)
        if obj is None:
            self._error(f"[CHK-0020] {format_expr(e)} undefined (type has no field or method {name})", e.sel)
            return self._record(e, Mode.INVALID, INVALID)

        self.info.uses[e.sel] = obj
        if isinstance(obj, Var):
            self.info.selections[e] = Selection(SelectionKind.FIELD_VAL, x.type, obj, index, indirect)
            mode = Mode.VARIABLE if x.mode is Mode.VARIABLE or indirect else Mode.VALUE
            return self._record(e, mode, obj.type)

        self.info.selections[e] = Selection(SelectionKind.METHOD_VAL, x.type, obj, index, indirect)
        sig = self._method_signature(obj, x.type)
        return self._record(e, Mode.VALUE, Signature(sig.params, sig.results, sig.variadic, None,
                                                     list(sig.type_params)))

    def _method_signature(self, fn: Func, recv_type: Type) -> Signature:
        sig = self._obj_type(fn)
        if not isinstance(sig, Signature):
            return Signature(Tuple([]), Tuple([]))
        base = unalias(recv_type)
        if isinstance(base, Pointer):
            base = unalias(base.elem)
        if isinstance(base, Named) and base.type_args:
            mapping = dict(zip(base.origin().type_params, base.type_args))
            return subst(sig, mapping)
        return sig

    def _index(self, e: IndexExpr, scope: Scope) -> TypeAndValue:
        x = self._expr(e.x, scope)

        if x.mode is Mode.TYPEEXPR:
            named = unalias(x.type)
            args = [self._type_expr(i, scope) for i in e.indices]
            if isinstance(named, Named) and named.type_params:
                return self._record(e, Mode.TYPEEXPR, instantiate_named(named, args))
            self._error(f"[CHK-0030] {format_expr(e.x)} is not a generic type", e)
            return self._record(e, Mode.INVALID, INVALID)

        sig = under(x.type)
        if isinstance(sig, Signature) and sig.type_params:
            args = [self._type_expr(i, scope) for i in e.indices]
            mapping = dict(zip(sig.type_params, args))
            return self._record(e, Mode.VALUE, subst(sig, mapping))

        u = under(x.type)
        if isinstance(u, Pointer) and isinstance(under(u.elem), Array):
            u = under(u.elem)
        key_hint = u.key if isinstance(u, Map) else None
        for i in e.indices:
            self._expr(i, scope, key_hint)
        if x.mode is Mode.INVALID:
            return self._record(e, Mode.INVALID, INVALID)
        if isinstance(u, Basic) and u.is_string:
            return self._record(e, Mode.VALUE, get_basic("uint8"))
        if isinstance(u, Slice):
            return self._record(e, Mode.VARIABLE, u.elem)
        if isinstance(u, Array):
            return self._record(e, Mode.VARIABLE if x.mode is Mode.VARIABLE else Mode.VALUE, u.elem)
        if isinstance(u, Map):
            return self._record(e, Mode.MAPINDEX, u.elem)
        self._error(f"[CHK-0030] cannot index {format_expr(e.x)}", e)
        return self._record(e, Mode.INVALID, INVALID)

    def _slice(self, e: SliceExpr, scope: Scope) -> TypeAndValue:
        x = self._expr(e.x, scope)
        for part in (e.low, e.high, e.max):
            if part is not None:
                self._expr(part, scope)
        u = under(x.type)
        if isinstance(u, Basic) and u.is_string:
            return self._record(e, Mode.VALUE, x.type if not u.is_untyped else get_basic("string"))
        if isinstance(u, Slice):
            return self._record(e, Mode.VALUE, x.type)
        if isinstance(u, Pointer) and isinstance(under(u.elem), Array):
            return self._record(e, Mode.VALUE, Slice(under(u.elem).elem))
        if isinstance(u, Array):
            return self._record(e, Mode.VALUE, Slice(u.elem))
        if x.mode is not Mode.INVALID:
            self._error(f"[CHK-0030] cannot slice {format_expr(e.x)}", e)
        return self._record(e, Mode.INVALID, INVALID)

    def _star(self, e: StarExpr, scope: Scope) -> TypeAndValue:
        x = self._expr(e.x, scope)
        if x.mode is Mode.TYPEEXPR:
            return self._record(e, Mode.TYPEEXPR, Pointer(x.type))
        if x.mode is Mode.INVALID:
            return self._record(e, Mode.INVALID, INVALID)
        u = under(x.type)
        if isinstance(u, Pointer):
            return self._record(e, Mode.VARIABLE, u.elem)
        if x.type is UNTYPED_NIL:
            self._error("[CHK-0030] invalid indirect of nil", e)
        else:
            self._error(f"[CHK-0030] invalid indirect of {format_expr(e.x)}", e)
        return self._record(e, Mode.INVALID, INVALID)

    def _unary(self, e: UnaryExpr, scope: Scope, hint: Optional[Type]) -> TypeAndValue:
        if e.op == "&":
            inner_hint = None
            if hint is not None and isinstance(under(hint), Pointer):
                inner_hint = under(hint).elem
            x = self._expr(e.x, scope, inner_hint)
            if x.mode is Mode.INVALID:
                return self._record(e, Mode.INVALID, INVALID)
            return self._record(e, Mode.VALUE, Pointer(x.type))
        x = self._expr(e.x, scope)
        if x.mode is Mode.INVALID:
            return self._record(e, Mode.INVALID, INVALID)
        if e.op == "<-":
            u = under(x.type)
            return self._record(e, Mode.COMMAOK, u.elem if isinstance(u, Chan) else INVALID)
        if e.op == "~":
            self._error("[CHK-0030] invalid use of ~ outside a type constraint", e)
            return self._record(e, Mode.INVALID, INVALID)
        mode = Mode.CONSTANT if x.mode is Mode.CONSTANT else Mode.VALUE
        return self._record(e, mode, x.type)

    def _binary(self, e: BinaryExpr, scope: Scope) -> TypeAndValue:
        x = self._expr(e.x, scope)
        y = self._expr(e.y, scope)
        if x.mode is Mode.INVALID or y.mode is Mode.INVALID:
            return self._record(e, Mode.INVALID, INVALID)
        mode = Mode.CONSTANT if x.mode is Mode.CONSTANT and y.mode is Mode.CONSTANT else Mode.VALUE
        if e.op in _COMPARISON_OPS:
            return self._record(e, mode, UNTYPED_BOOL)
        if e.op in ("<<", ">>", "&&", "||"):
            return self._record(e, mode, x.type)
        return self._record(e, mode, _binary_result(x.type, y.type))

    def _call(self, e: CallExpr, scope: Scope, hint: Optional[Type]) -> TypeAndValue:
        fun = self._expr(e.fun, scope)

        if fun.mode is Mode.TYPEEXPR:
            # Conversion T(x).
            for arg in e.args:
                self._expr(arg, scope, fun.type)
            if len(e.args) != 1:
                self._error(f"[CHK-0030] wrong argument count in conversion to {format_expr(e.fun)}", e)
            return self._record(e, Mode.VALUE, fun.type)

        if fun.mode is Mode.BUILTIN:
            return self._builtin_call(e, scope, hint)

        sig = under(fun.type)
        if not isinstance(sig, Signature):
            for arg in e.args:
                self._expr(arg, scope)
            if fun.mode is not Mode.INVALID:
                self._error(f"[CHK-0030] invalid operation: cannot call non-function {format_expr(e.fun)}", e)
            return self._record(e, Mode.INVALID, INVALID)

        if sig.type_params:
            arg_types = [default_type(self._expr(arg, scope).type) for arg in e.args]
            mapping: Dict[TypeParam, Type] = {}
            for i, at in enumerate(arg_types):
                pt = _param_type(sig, i)
                if pt is not None:
                    _unify(pt, at, mapping, sig.type_params)
            sig = subst(sig, mapping)
        else:
            for i, arg in enumerate(e.args):
                self._expr(arg, scope, _param_type(sig, i))

        n = len(sig.results)
        if n == 0:
            return self._record(e, Mode.NOVALUE, Tuple([]))
        if n == 1:
            return self._record(e, Mode.VALUE, sig.results.vars[0].type)
        return self._record(e, Mode.VALUE, sig.results)

    def _builtin_call(self, e: CallExpr, scope: Scope, hint: Optional[Type]) -> TypeAndValue:
        name = unparen(e.fun).name if isinstance(unparen(e.fun), Ident) else ""

        if name in ("new", "make"):
            if not e.args:
                self._error(f"[CHK-0030] not enough arguments for {name}", e)
                return self._record(e, Mode.INVALID, INVALID)
            t = self._type_expr(e.args[0], scope)
            for arg in e.args[1:]:
                self._expr(arg, scope)
            return self._record(e, Mode.VALUE, Pointer(t) if name == "new" else t)

        arg_tvs = [self._expr(arg, scope) for arg in e.args]
        if name in ("len", "cap", "copy"):
            return self._record(e, Mode.VALUE, get_basic("int"))
        if name in ("append", "min", "max"):
            t = arg_tvs[0].type if arg_tvs else INVALID
            return self._record(e, Mode.VALUE, t)
        if name == "recover":
            return self._record(e, Mode.VALUE, Interface())
        if name in ("real", "imag"):
            return self._record(e, Mode.VALUE, get_basic("float64"))
        if name == "complex":
            return self._record(e, Mode.VALUE, get_basic("complex128"))
        return self._record(e, Mode.NOVALUE, Tuple([]))


# --- helpers ---

def _binary_result(x: Type, y: Type) -> Type:
    xu = isinstance(x, Basic) and x.is_untyped
    yu = isinstance(y, Basic) and y.is_untyped
    if xu and not yu:
        return y
    if yu and not xu:
        return x
    if xu and yu:
        return x if _UNTYPED_RANK.get(x.name, 0) >= _UNTYPED_RANK.get(y.name, 0) else y
    return x


def _param_type(sig: Signature, i: int) -> Optional[Type]:
    params = sig.params.vars
    if not params:
        return None
    if sig.variadic and i >= len(params) - 1:
        last = under(params[-1].type)
        return last.elem if isinstance(last, Slice) else None
    if i < len(params):
        return params[i].type
    return None


def _unify(p: Type, a: Type, mapping: Dict[TypeParam, Type], tparams: List[TypeParam]) -> None:
    """Bind type parameters in `p` by structurally matching argument type `a`."""
    p = unalias(p)
    a = unalias(a)
    if a is None or a is INVALID or a is UNTYPED_NIL:
        return
    if isinstance(p, TypeParam):
        if p not in mapping and any(tp is p for tp in tparams):
            mapping[p] = a
        return
    if isinstance(p, (Pointer, Slice)) and type(a) is type(p):
        _unify(p.elem, a.elem, mapping, tparams)
    elif isinstance(p, Array) and isinstance(a, Array):
        _unify(p.elem, a.elem, mapping, tparams)
    elif isinstance(p, Map) and isinstance(a, Map):
        _unify(p.key, a.key, mapping, tparams)
        _unify(p.elem, a.elem, mapping, tparams)
    elif isinstance(p, Chan) and isinstance(a, Chan):
        _unify(p.elem, a.elem, mapping, tparams)
    elif isinstance(p, Named) and isinstance(a, Named) and p.origin() is a.origin():
        for pa, aa in zip(p.type_args, a.type_args):
            _unify(pa, aa, mapping, tparams)
    elif isinstance(p, Signature) and isinstance(a, Signature):
        for pv, av in zip(p.params.vars, a.params.vars):
            _unify(pv.type, av.type, mapping, tparams)
        for pv, av in zip(p.results.vars, a.results.vars):
            _unify(pv.type, av.type, mapping, tparams)


def check_package(pkg: Package, files: List[File], importer: Importer):
    """Type-check `files` as package `pkg`; returns (info, diagnostics)."""
    checker = Checker(pkg, files, importer)
    info = checker.check()
    return info, checker.diagnostics
