#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from et_ast import Span

_DEFAULT_CODE = "ICE-9999"


@dataclass(frozen=True)
class ICELocation:
    filename: Optional[str]
    span: Optional[Span]

    def render(self) -> str:
        """`file:line:col`, `file`, or empty when there is no file."""
        if not self.filename:
            return ""
        if self.span is None:
            return self.filename
        return f"{self.filename}:{self.span.start_line}:{self.span.start_column}"


class InternalAnalyzerError(RuntimeError):
    """
    A bug in the analyzer or a broken pipeline invariant, e.g. a fact read
    before its package finished. Problems in the analyzed code are
    Diagnostics instead.
    """

    def __init__(self, message: str, loc: ICELocation | None = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    @property
    def coded_message(self) -> str:
        if "[ICE-" in self.message:
            return self.message
        return f"[{_DEFAULT_CODE}] {self.message}"

    def format(self) -> str:
        where = self.loc.render() if self.loc is not None else ""
        head = f"{where}: " if where else ""
        return f"{head}internal analyzer error: {self.coded_message}"


class MissingFactError(InternalAnalyzerError):
    """A decision was requested from a package that has not finished detection."""

    def __init__(self, package: str, type_name: str):
        super().__init__(f"[ICE-0100] no fact for {type_name}: package {package} has not completed")
        self.package = package
        self.type_name = type_name
