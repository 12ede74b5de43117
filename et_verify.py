#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Iterator, List, Optional

from et_ast import (
    BlockStmt, CallExpr, CaseClause, File, FuncDecl, FuncLit, Node, ReturnStmt, TypeAssertExpr, TypeSwitchStmt,
    inspect)
from et_compilation import PackageUnit
from et_context import AnalysisContext
from et_detect import DetectResult
from et_diagnostics import Diagnostic, diag_from_node
from et_errortypes import ErrorType, PropertyMap, TypeName
from et_logger import log_stage
from et_report import (
    SiteKind, UsageSite, category_of, internal_error, malformed_target, non_error_target, should_be_pointer,
    should_be_value, style_violation, undetermined_usage)
from et_symbols import TypeName as TypeObject
from et_types import Interface, Named, Pointer, Type, is_interface, unalias, under
from et_typeutil import has_error_method, has_error_result, is_errors_as, type_name_of, type_switch_expr


class Usage(IntFlag):
    NONE = 0

    POINTER_EXPECTED = 1 << 0
    VALUE_EXPECTED = 1 << 1
    SUPPRESS_EXPECTED = 1 << 2

    POINTER_OBSERVED = 1 << 3
    VALUE_OBSERVED = 1 << 4

    def determined_type(self) -> ErrorType:
        """
        A consistent observed use that differs from the expected one.

        Pointer-only or value-only use yields that kind, mixed use yields
        SUPPRESS; UNDECIDED when the observation matches the expectation.
        """
        expected = self & EXPECTED_MASK
        observed = self & OBSERVED_MASK
        if observed == Usage.POINTER_OBSERVED:
            if expected != Usage.POINTER_EXPECTED:
                return ErrorType.POINTER
        elif observed == Usage.VALUE_OBSERVED:
            if expected != Usage.VALUE_EXPECTED:
                return ErrorType.VALUE
        elif observed == OBSERVED_MASK:
            if expected != Usage.SUPPRESS_EXPECTED:
                return ErrorType.SUPPRESS
        return ErrorType.UNDECIDED


EXPECTED_MASK = Usage.POINTER_EXPECTED | Usage.VALUE_EXPECTED | Usage.SUPPRESS_EXPECTED
OBSERVED_MASK = Usage.POINTER_OBSERVED | Usage.VALUE_OBSERVED

_EXPECTED_OF = {
    ErrorType.POINTER: Usage.POINTER_EXPECTED,
    ErrorType.VALUE: Usage.VALUE_EXPECTED,
    ErrorType.SUPPRESS: Usage.SUPPRESS_EXPECTED,
}


@dataclass
class VerifyResult:
    """
    Observed use of error types in one package, for override suggestions.

    - pointers / values: types consistently used one way that differs from
      their decision
    - inconsistent: types used both ways
    """
    pointers: List[TypeName] = field(default_factory=list)
    values: List[TypeName] = field(default_factory=list)
    inconsistent: List[TypeName] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def all_returns(body: BlockStmt) -> Iterator[ReturnStmt]:
    """Return statements of the function owning `body`, not of nested literals."""
    found: List[ReturnStmt] = []

    def visit(node: Node) -> bool:
        if isinstance(node, FuncLit):
            return False
        if isinstance(node, ReturnStmt):
            found.append(node)
        return True

    inspect(body, visit)
    return iter(found)


class _VerifyPass:
    def __init__(self, unit: PackageUnit, context: AnalysisContext) -> None:
        self.unit = unit
        self.pkg = unit.types
        self.info = unit.info
        self.context = context
        self.usages: PropertyMap[Usage] = PropertyMap(Usage.determined_type)
        self.diagnostics: List[Diagnostic] = []
        self._file: Optional[File] = None

    def report(self, node: Node, message: str) -> None:
        self.diagnostics.append(
            diag_from_node(
                "error",
                message,
                module_name=self.unit.path,
                filename=self._file.filename if self._file is not None else None,
                node=node,
                category=category_of(message),
            )
        )

    def report_internal(self, node: Node, message: str) -> None:
        self.report(node, internal_error(message))

    # --- expectations ---

    def process_detected_types(self, detected: DetectResult) -> None:
        for tn, decision in detected.types.items():
            usage = _EXPECTED_OF.get(decision)
            if usage is not None:
                self.usages.set_type_property(tn, usage)

    def record_and_lookup(self, tn: TypeObject, is_ptr: bool) -> Usage:
        """Record the observed use of `tn` and return its expected use."""
        observed = Usage.POINTER_OBSERVED if is_ptr else Usage.VALUE_OBSERVED
        return self.usages.add_type_property(tn, observed) & EXPECTED_MASK

    def check_error_usage(self, t: Optional[Type], site: UsageSite) -> None:
        """Compare a pointer or value use of a named error type with its decision."""
        if t is None or is_interface(t):
            return

        tn, is_ptr, ok = type_name_of(t)
        if not ok:
            return  # anonymous types cannot be configured
        if tn.is_alias:
            target = unalias(tn.type)
            if isinstance(target, Named):
                tn = target.obj  # aliases share the identity of their target
        if tn.pkg is None or tn.parent is not tn.pkg.scope:
            return  # local type, e.g. embedding an error

        expected = self.record_and_lookup(tn, is_ptr)

        if expected == Usage.POINTER_EXPECTED:
            if not is_ptr:
                self.report(site.expr, should_be_pointer(site, tn))
        elif expected == Usage.VALUE_EXPECTED:
            if is_ptr:
                self.report(site.expr, should_be_value(site, tn))
        elif expected == Usage.SUPPRESS_EXPECTED:
            pass
        elif expected == Usage.NONE:
            self.report(site.expr, undetermined_usage(site, tn, is_ptr))
        else:
            self.report_internal(site.expr, f"Misconfigured type in usage map: {tn.name}")

    # --- traversal ---

    def process_files(self) -> None:
        for f in self.unit.files:
            self._file = f
            inspect(f, self.visit)
        self._file = None

    def visit(self, node: Node) -> bool:
        if isinstance(node, CallExpr):
            self.handle_errors_as(node)
        elif isinstance(node, FuncDecl):
            if node.body is not None:
                last_result = has_error_result(self.info, node.type.results)
                if last_result >= 0:
                    self.handle_returns(node.body, last_result)
        elif isinstance(node, FuncLit):
            last_result = has_error_result(self.info, node.type.results)
            if last_result >= 0:
                self.handle_returns(node.body, last_result)
        elif isinstance(node, TypeAssertExpr):
            self.handle_type_assert(node)
        elif isinstance(node, TypeSwitchStmt):
            self.handle_type_switch(node)
        return True

    def handle_returns(self, body: BlockStmt, last_result: int) -> None:
        for ret in all_returns(body):
            if len(ret.results) <= last_result:
                continue  # bare return or a multi-valued call
            res = ret.results[last_result]
            tv = self.info.types.get(res)
            if tv is None or not tv.is_value:
                self.report_internal(res, "Expected value in return")
                continue
            if tv.is_nil:
                continue
            self.check_error_usage(tv.type, UsageSite(SiteKind.RETURN, res, self.pkg))

    def handle_type_assert(self, n: TypeAssertExpr) -> None:
        if n.type is None:
            return  # type switch guard
        xtv = self.info.types.get(n.x)
        if xtv is None or not has_error_method(xtv.type):
            return  # only assertions on errors

        tv = self.info.types.get(n.type)
        if tv is None or not tv.is_type:
            self.report_internal(n.type, "Expected type in assertion")
            return
        self.check_error_usage(tv.type, UsageSite(SiteKind.ASSERT, n.type, self.pkg))

    def handle_type_switch(self, n: TypeSwitchStmt) -> None:
        expr = type_switch_expr(n)
        if expr is None:
            self.report_internal(n, "Cannot analyze type switch: unable to determine switch expression")
            return

        xtv = self.info.types.get(expr)
        if xtv is None or not has_error_method(xtv.type):
            return

        for clause in n.body.list:
            if not isinstance(clause, CaseClause):
                self.report_internal(clause, "Expected a case clause in type switch")
                continue
            for case_expr in clause.list or []:
                tv = self.info.types.get(case_expr)
                if tv is not None and tv.is_nil:
                    continue
                if tv is None or not tv.is_type:
                    self.report_internal(case_expr, "Expected a type in case clause")
                    continue
                self.check_error_usage(tv.type, UsageSite(SiteKind.SWITCH_CASE, case_expr, self.pkg))

    def handle_errors_as(self, n: CallExpr) -> None:
        if not n.args:
            return

        fun, target_expr, index = is_errors_as(self.info, n)
        if fun is None:
            return

        if target_expr is not None:
            tv = self.info.types.get(target_expr)
            if tv is None or not tv.is_type:
                self.report_internal(target_expr, "Expected type as generic target")
                return
            site = UsageSite(SiteKind.GENERIC_AS_TARGET, target_expr, self.pkg, fun)
            self.check_error_usage(tv.type, site)
            return

        if index < 0 or index >= len(n.args):
            return  # called with the results of a multi-valued call

        target = n.args[index]
        tv = self.info.types.get(target)
        if tv is None or not tv.is_value:
            self.report_internal(target, "Expected value as target")
            return

        site = UsageSite(SiteKind.AS_TARGET, target, self.pkg, fun)
        target_type = under(tv.type)
        if isinstance(target_type, Pointer):
            elem = target_type.elem
            if is_interface(elem):
                return  # e.g. interface{ Temporary() bool }
            if not has_error_method(elem):
                self.report(target, non_error_target(site, elem))
                return
            self.check_error_usage(elem, site)
            if self.context.style_check:
                message = style_violation(site, elem)
                if message is not None:
                    self.report(target, message)
        elif isinstance(target_type, Interface):
            pass  # depends on the dynamic type
        else:
            self.report(target, malformed_target(site, tv.type))

    # --- results ---

    def calculate_result(self) -> VerifyResult:
        result = VerifyResult()
        for tn, decision in self.usages.all_determined():
            name = TypeName.of(tn)
            if decision is ErrorType.POINTER:
                result.pointers.append(name)
            elif decision is ErrorType.VALUE:
                result.values.append(name)
            elif decision is ErrorType.SUPPRESS:
                result.inconsistent.append(name)
        result.pointers.sort()
        result.values.sort()
        result.inconsistent.sort()
        result.diagnostics = sorted(self.diagnostics, key=lambda d: d.sort_key())
        return result


def verify_package(unit: PackageUnit, detected: DetectResult,
                   context: Optional[AnalysisContext] = None) -> VerifyResult:
    """Check every use of an error type in `unit` against the detected decisions."""
    context = context or AnalysisContext.default()
    log_stage(context, "Verifying error usage in", unit.path)
    p = _VerifyPass(unit, context)
    p.process_detected_types(detected)
    p.process_files()
    return p.calculate_result()
