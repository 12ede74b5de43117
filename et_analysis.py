#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from et_compilation import CompilationUnit, PackageUnit
from et_context import AnalysisContext
from et_detect import DetectResult
from et_diagnostics import Diagnostic
from et_overrides import Override
from et_suggest import calculate_suggestions
from et_verify import VerifyResult


@dataclass
class AnalysisResult:
    """
    Full analysis result for the requested packages.

    Contains:
      - compilation unit (every loaded package, stubs included)
      - analysis context (cross-cutting options)
      - per-package detection results, keyed by import path
      - per-package verification results for the requested packages
      - diagnostics of the requested packages, plus load failures
    """
    cu: Optional[CompilationUnit] = None
    context: AnalysisContext = field(default_factory=AnalysisContext.default)

    detect_results: Dict[str, DetectResult] = field(default_factory=dict)
    verify_results: Dict[str, VerifyResult] = field(default_factory=dict)

    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def roots(self) -> List[PackageUnit]:
        return self.cu.roots if self.cu is not None else []

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)

    def has_front_end_errors(self) -> bool:
        return any(d.kind == "error" and d.is_front_end for d in self.diagnostics)

    def diagnostics_by_package(self) -> Dict[str, List[Diagnostic]]:
        grouped: Dict[str, List[Diagnostic]] = {}
        for d in self.diagnostics:
            grouped.setdefault(d.module_name or "", []).append(d)
        return grouped

    def suggestions(self) -> List[Override]:
        """Override suggestions aggregated over the verified packages."""
        return calculate_suggestions(self.verify_results[path] for path in sorted(self.verify_results))
