"""
Evidence collection for one package.

Scans type and variable declarations, applies overrides, and optionally
looks at how error types are used in function bodies and how their other
methods are declared. The collected flags are resolved per type; decisions
for types of this package are exported to the fact store.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from et_ast import (
    AssignStmt, CallExpr, CaseClause, CompositeLit, Expr, File, FuncDecl, FuncLit, GenDecl, Node, ReturnStmt,
    SendStmt, TypeAssertExpr, TypeSpec, TypeSwitchStmt, UnaryExpr, ValueSpec, inspect, unparen, walk)
from et_compilation import PackageUnit
from et_context import AnalysisContext, Heuristic
from et_errortypes import ErrorType, PropertyMap
from et_evidence import OVERRIDE_MASK, ErrorProperty, determined_type, property_for
from et_facts import FactStore, transitive_imports
from et_logger import log_debug, log_error, log_stage, log_warning
from et_overrides import OverrideTable
from et_symbols import TypeName as TypeObject
from et_types import Interface, Named, Pointer, Struct, Type, format_type, is_interface, unalias, under
from et_typeutil import (
    has_error_method, has_error_result, has_error_sig, has_pointer_receiver, is_errors_as, lookup_field_or_method,
    relative_to, type_name_of, type_switch_expr)

P = ErrorProperty


@dataclass
class DetectResult:
    """
    Decisions visible to the verifier of one package.

    - types: imported facts merged with this package's decisions (local wins)
    - exported: decisions exported for types declared in this package
    - properties: the raw evidence, kept for debugging and tests
    """
    types: Dict[TypeObject, ErrorType] = field(default_factory=dict)
    exported: Dict[TypeObject, ErrorType] = field(default_factory=dict)
    properties: Optional[PropertyMap] = None

    def decision_of(self, tn: TypeObject) -> ErrorType:
        return self.types.get(tn, ErrorType.UNDECIDED)


class _DetectPass:
    def __init__(self, unit: PackageUnit, facts: FactStore, context: AnalysisContext) -> None:
        self.unit = unit
        self.pkg = unit.types
        self.info = unit.info
        self.facts = facts
        self.context = context
        self.props: PropertyMap[ErrorProperty] = PropertyMap(determined_type)
        self._file: Optional[File] = None

    # --- iteration ---

    def _files(self) -> Iterator[File]:
        for f in self.unit.files:
            self._file = f
            yield f
        self._file = None

    def all_type_decls(self) -> Iterator[TypeSpec]:
        """Type specs at package level and inside function bodies."""
        for f in self._files():
            specs: List[TypeSpec] = []

            def collect(node: Node) -> bool:
                if isinstance(node, TypeSpec):
                    specs.append(node)
                return True

            inspect(f, collect)
            yield from specs

    def all_var_decls(self) -> Iterator[ValueSpec]:
        for f in self._files():
            for decl in f.decls:
                if isinstance(decl, GenDecl) and decl.tok == "var":
                    yield from decl.specs

    def all_func_decls(self) -> Iterator[FuncDecl]:
        for f in self._files():
            for decl in f.decls:
                if isinstance(decl, FuncDecl):
                    yield decl

    def log_internal(self, node: Optional[Node], message: str) -> None:
        """Report a failure that should not happen on well-typed input."""
        where = ""
        if self._file is not None and node is not None and node.span is not None:
            where = f" at {self._file.filename}:{node.span.start_line}:{node.span.start_column}"
        log_error(self.context, f"Internal error: {message}{where}")

    # --- type declarations ---

    def process_type_decls(self) -> None:
        for spec in self.all_type_decls():
            tn = self.info.defs.get(spec.name)
            if not isinstance(tn, TypeObject):
                self.log_internal(spec.name, f"Not a type name: {spec.name.name}")
                continue

            obj, _, indirect = lookup_field_or_method(tn.type, True, "Error")
            if obj is None or not has_error_sig(getattr(obj, "signature", None)):
                continue  # no Error() string method

            _, ptr_recv = has_pointer_receiver(obj.signature)

            u = under(tn.type)
            if isinstance(u, Interface):
                continue
            pointer = isinstance(u, Pointer)
            nonstruct = not pointer and not isinstance(u, Struct)

            if ptr_recv and not indirect:
                prop = P.POINTER_RECEIVER
            elif pointer:
                prop = P.POINTER_DEF
            elif nonstruct:
                prop = P.NON_STRUCT
            else:
                prop = P.NONE

            self.props.add_type_property(tn, prop)

    # --- variable declarations ---

    def process_var_specs(self) -> None:
        for spec in self.all_var_decls():
            if spec.type is None:
                self.find_sentinel_errors(spec)
            else:
                self.find_error_assertions(spec)

    def find_sentinel_errors(self, spec: ValueSpec) -> None:
        """`var ErrNotFound = &NotFoundError{}`"""
        for i, ident in enumerate(spec.names):
            if i >= len(spec.values):
                break
            if not (ident.name.startswith("Err") or ident.name.startswith("err")):
                continue
            tv = self.info.types.get(spec.values[i])
            if tv is None or not has_error_method(tv.type):
                continue
            self.record_error_property(tv.type)

    def find_error_assertions(self, spec: ValueSpec) -> None:
        """`var _ error = (*PathError)(nil)`"""
        tv = self.info.types.get(spec.type)
        if tv is None or not has_error_method(tv.type):
            return
        for i, value in enumerate(spec.values):
            vtv = self.info.types.get(value)
            if vtv is None or not vtv.is_value:
                name = spec.names[i].name if i < len(spec.names) else ""
                self.log_internal(value, f"can't get type from value {name}")
                continue
            self.record_error_property(vtv.type)

    def record_error_property(self, typ: Type) -> None:
        if is_interface(typ):
            return
        tn, is_ptr, ok = type_name_of(typ)
        if not ok:
            return  # anonymous struct or nil
        # Types of other packages recorded here act as local overrides.
        self.props.add_type_property(tn, property_for(is_ptr, P.POINTER_VAR, P.VALUE_VAR))

    # --- overrides ---

    def process_overrides(self, overrides: OverrideTable) -> None:
        path = self.pkg.path
        for name, usage in sorted(overrides.for_package(path).items()):
            tn = self.pkg.scope.lookup(name)
            if not isinstance(tn, TypeObject):
                if not self.unit.has_test_files():  # may be declared in a test file we did not load
                    log_warning(self.context, f'Can\'t find override "{name}" in package {path}')
                continue

            if usage is ErrorType.POINTER:
                if not has_error_method(Pointer(tn.type)):
                    log_warning(self.context, f'Pointer override "*{name}" does not implement the error interface')
                    continue
                prop = P.POINTER_OVERRIDE
            elif usage is ErrorType.VALUE:
                if not has_error_method(tn.type):
                    log_warning(self.context, f'Value override "{name}" does not implement the error interface')
                    continue
                prop = P.VALUE_OVERRIDE
            elif usage is ErrorType.SUPPRESS:
                prop = P.SUPPRESS_OVERRIDE
            else:
                continue

            old = self.props.add_type_property(tn, prop)
            if not (old & OVERRIDE_MASK) and determined_type(old) is usage:
                log_warning(self.context, f"Redundant override: {name} ({old.describe()})")

    # --- usage heuristic ---

    def process_usage(self) -> None:
        for decl in self.all_func_decls():
            if decl.body is None:
                continue
            walk(_UsageVisitor(self, has_error_result(self.info, decl.type.results)), decl.body)

    def walk_exprs(self, exprs: List[Expr]) -> None:
        visitor = _AssignVisitor(self)
        for e in exprs:
            walk(visitor, e)

    def walk_func_lit(self, lit: FuncLit) -> None:
        walk(_UsageVisitor(self, has_error_result(self.info, lit.type.results)), lit.body)

    def handle_call_expr(self, call: CallExpr) -> None:
        _, _, index = is_errors_as(self.info, call)
        if index < 0:
            self.walk_exprs(call.args)
            if isinstance(call.fun, FuncLit):
                # Immediately invoked function literal.
                self.walk_func_lit(call.fun)
            return

        if index >= len(call.args):
            return  # called with the results of a multi-valued call
        tv = self.info.types.get(call.args[index])
        if tv is None:
            return
        ptr = under(tv.type)
        if not isinstance(ptr, Pointer):
            return
        tn, is_ptr, ok = type_name_of(ptr.elem)
        if not ok:
            return
        self.add_type_property_in_current_package(tn, property_for(is_ptr, P.POINTER_TARGET, P.VALUE_TARGET))

    def handle_type_assert(self, n: TypeAssertExpr) -> None:
        if n.type is None:
            return  # type switch guard
        xtv = self.info.types.get(n.x)
        if xtv is None or not has_error_method(xtv.type):
            return  # only assertions on errors
        tv = self.info.types.get(n.type)
        if tv is None or not tv.is_type:
            self.log_internal(n.type, "Expected type in assertion")
            return
        tn, is_ptr, ok = type_name_of(tv.type)
        if not ok:
            return
        self.add_type_property_in_current_package(tn, property_for(is_ptr, P.POINTER_ASSERT, P.VALUE_ASSERT))

    def handle_type_switch(self, n: TypeSwitchStmt) -> None:
        expr = type_switch_expr(n)
        if expr is None:
            self.log_internal(n, "Cannot analyze type switch: unable to determine switch expression")
            return
        xtv = self.info.types.get(expr)
        if xtv is None or not has_error_method(xtv.type):
            return

        for clause in n.body.list:
            if not isinstance(clause, CaseClause):
                self.log_internal(clause, "Expected a case clause in type switch")
                continue
            for case_expr in clause.list or []:
                tv = self.info.types.get(case_expr)
                if tv is not None and tv.is_nil:
                    continue
                if tv is None or not tv.is_type:
                    self.log_internal(case_expr, "Expected a type in case clause")
                    continue
                tn, is_ptr, ok = type_name_of(tv.type)
                if not ok:
                    continue
                self.add_type_property_in_current_package(tn, property_for(is_ptr, P.POINTER_ASSERT, P.VALUE_ASSERT))

    def handle_cast(self, typ: Type) -> None:
        tn, is_ptr, ok = type_name_of(typ)
        if not ok:
            return
        self.add_type_property_in_current_package(tn, property_for(is_ptr, P.POINTER_CAST, P.VALUE_CAST))

    def handle_composite_lit(self, n: CompositeLit, is_addr_of: bool) -> None:
        if n.type is None:
            return  # elided type inside an enclosing literal
        tv = self.info.types.get(n.type)
        if tv is None or not tv.is_type:
            self.log_internal(n.type, "Expected type in composite literal")
            return
        tn, is_ptr, ok = type_name_of(tv.type)
        if not ok:
            return
        if is_ptr:
            self.log_internal(n, f"Composite literal of a pointer type '{format_type(tn.type)}'")
            return
        self.add_type_property_in_current_package(tn, property_for(is_addr_of, P.POINTER_LITERAL, P.VALUE_LITERAL))

    def add_type_property_in_current_package(self, tn: TypeObject, prop: ErrorProperty) -> None:
        """Record usage evidence for a known error type declared in this package."""
        if tn.pkg is not self.pkg:
            return
        old, ok = self.props.get_type_property(tn)
        if not ok:
            return
        if not (old & prop):
            self.props.set_type_property(tn, old | prop)

    # --- receiver heuristic ---

    def process_receivers(self) -> None:
        for tn in self.props:
            prop, _ = self.props.get_type_property(tn)
            if determined_type(prop) is not ErrorType.UNDECIDED or tn.pkg is not self.pkg:
                continue
            named = tn.type
            if not isinstance(named, Named):
                continue
            ptr, pure = _pure_receivers(named)
            if not pure:
                continue
            self.props.add_type_property(tn, property_for(ptr, P.POINTER_RECEIVERS, P.VALUE_RECEIVERS))

    # --- aliases ---

    def process_aliases(self) -> None:
        for alias in self.props:
            if not alias.is_alias:
                continue
            named = unalias(alias.type)
            if not isinstance(named, Named):
                continue  # alias to an unnamed type embedding an error
            orig = named.obj
            if orig.pkg is None:
                continue

            if orig.pkg is self.pkg:
                old, ok = self.props.get_type_property(orig)
                if not ok:
                    continue
                prop = old & ~OVERRIDE_MASK
            else:
                decision = self.facts.import_fact(orig)
                if decision is None:
                    continue
                if decision is ErrorType.POINTER:
                    prop = P.POINTER_ALIAS
                elif decision is ErrorType.VALUE:
                    prop = P.VALUE_ALIAS
                else:
                    prop = P.NONE

            self.props.add_type_property(alias, prop)

    # --- results ---

    def log_results(self) -> None:
        qualifier = relative_to(self.pkg)
        for tn, prop in self.props.all_sorted():
            decision = determined_type(prop)
            extra = ""
            mismatch = _determined_type_check(tn, decision)
            if mismatch:
                extra = f" !!! {mismatch} !!!"
            log_debug(self.context,
                      f"{self.pkg.path} {format_type(tn.type, qualifier)}: {decision} ({prop.describe()}){extra}")

    def create_result(self) -> DetectResult:
        result = DetectResult(properties=self.props)
        result.types = self.facts.facts_of(transitive_imports(self.pkg))
        for tn, decision in self.props.all_determined():
            if tn.pkg is self.pkg:
                self.facts.export_fact(self.pkg.path, tn, decision)
                result.exported[tn] = decision
            result.types[tn] = decision
        return result


class _UsageVisitor:
    """Walks statements; `last_result` is the error result index of the enclosing function."""

    def __init__(self, p: _DetectPass, last_result: int) -> None:
        self.p = p
        self.last_result = last_result

    def __call__(self, node: Node):
        if isinstance(node, AssignStmt):
            self.p.walk_exprs(node.rhs)
            return None
        if isinstance(node, ValueSpec):
            self.p.walk_exprs(node.values)
            return None
        if isinstance(node, ReturnStmt):
            self.handle_return(node)
            return None
        if isinstance(node, SendStmt):
            walk(_AssignVisitor(self.p), node.value)
            return None
        if isinstance(node, FuncLit):
            self.p.walk_func_lit(node)
            return None
        if isinstance(node, CallExpr):
            self.p.handle_call_expr(node)
            return None
        if isinstance(node, TypeSwitchStmt):
            self.p.handle_type_switch(node)
            return self
        if isinstance(node, Expr):
            return None
        return self

    def handle_return(self, ret: ReturnStmt) -> None:
        self.p.walk_exprs(ret.results)

        if self.last_result < 0 or self.last_result >= len(ret.results):
            return
        res = ret.results[self.last_result]
        tv = self.p.info.types.get(res)
        if tv is None or not tv.is_value:
            self.p.log_internal(res, "Expected value in return")
            if tv is None:
                return
        if tv.is_nil:
            return
        tn, is_ptr, ok = type_name_of(tv.type)
        if not ok:
            return
        self.p.add_type_property_in_current_package(tn, property_for(is_ptr, P.POINTER_RETURN, P.VALUE_RETURN))


class _AssignVisitor:
    """Walks expressions in value contexts: literals, assertions, conversions, calls."""

    def __init__(self, p: _DetectPass) -> None:
        self.p = p

    def __call__(self, node: Node):
        if isinstance(node, UnaryExpr):
            if node.op != "&":
                return self
            lit = unparen(node.x)
            if not isinstance(lit, CompositeLit):
                return self
            self.p.handle_composite_lit(lit, True)
            return None
        if isinstance(node, CompositeLit):
            self.p.handle_composite_lit(node, False)
            return None
        if isinstance(node, TypeAssertExpr):
            self.p.handle_type_assert(node)
            return None
        if isinstance(node, CallExpr):
            tv = self.p.info.types.get(node.fun)
            if tv is not None and tv.is_type:
                self.p.handle_cast(tv.type)
                return None
            self.p.handle_call_expr(node)
            return None
        if isinstance(node, FuncLit):
            self.p.walk_func_lit(node)
            return None
        return self


def _pure_receivers(named: Named):
    """
    Returns `(ptr, ok)`: ok when the type has methods and all share one
    receiver kind, ptr when that kind is pointer.
    """
    methods = named.methods
    if not methods:
        return False, False
    _, ptr0 = has_pointer_receiver(methods[0].signature)
    for m in methods[1:]:
        _, ptr = has_pointer_receiver(m.signature)
        if ptr != ptr0:
            return False, False
    return ptr0, True


def _determined_type_check(tn: TypeObject, decision: ErrorType) -> str:
    """Describe why `decision` is impossible for `tn`, or return ""."""
    if decision is ErrorType.POINTER:
        if not has_error_method(Pointer(tn.type)):
            return "missing pointer error method"
    elif decision is ErrorType.VALUE:
        if not has_error_method(tn.type):
            return "missing value error method"
    elif decision is ErrorType.UNDECIDED:
        if not has_error_method(tn.type):
            return "missing value error method"
        if not has_error_method(Pointer(tn.type)):
            return "missing pointer error method"
    return ""


def detect_package(
        unit: PackageUnit,
        facts: FactStore,
        overrides: Optional[OverrideTable] = None,
        context: Optional[AnalysisContext] = None,
) -> DetectResult:
    """
    Collect evidence for the types of `unit` and resolve their decisions.

    Decisions of types declared in `unit` are exported to `facts`; the
    caller marks the package complete afterwards.
    """
    context = context or AnalysisContext.default()
    log_stage(context, "Detecting error types in", unit.path)
    p = _DetectPass(unit, facts, context)

    p.process_type_decls()
    p.process_var_specs()
    p.process_overrides(overrides or OverrideTable())

    if context.heuristics & Heuristic.USAGE and p.props.has_undetermined_errors():
        p.process_usage()

    if context.heuristics & Heuristic.RECEIVERS and p.props.has_undetermined_errors():
        p.process_receivers()

    p.process_aliases()

    if context.debug:
        p.log_results()

    return p.create_result()
