#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from et_analysis import AnalysisResult
from et_context import AnalysisContext, LogLevel, format_heuristics, parse_heuristics
from et_diagnostics import Diagnostic
from et_driver import ErrorTypeDriver
from et_internal_error import InternalAnalyzerError
from et_logger import log_error, log_info
from et_overrides import OverrideFileError, OverrideTable, load_overrides, write_overrides
from et_paths import SourceSearchPaths

__version__ = "0.1.0"

ANALYZER_NAME = "errortype"


class SnippetPrinter:
    """Prints diagnostics as a header line plus the offending source lines."""

    def __init__(self, context: Optional[AnalysisContext], lines_of_context: int = -1) -> None:
        self.context = context
        self.lines_of_context = lines_of_context
        self._files: Dict[str, Optional[List[str]]] = {}

    def source_lines(self, path: str) -> Optional[List[str]]:
        if path not in self._files:
            try:
                self._files[path] = Path(path).read_text(encoding="utf-8").splitlines()
            except OSError:
                self._files[path] = None  # e.g. library stubs
        return self._files[path]

    def print(self, diag: Diagnostic) -> None:
        log_error(self.context, diag.format())
        if self.lines_of_context < 0 or not diag.filename or diag.line is None:
            return
        lines = self.source_lines(diag.filename)
        if lines is None or not 0 < diag.line <= len(lines):
            return

        first = max(1, diag.line - self.lines_of_context)
        last = min(len(lines), diag.line + self.lines_of_context)
        width = max(5, len(str(last)))

        for number in range(first, last + 1):
            log_error(self.context, f"{number:>{width}} | {lines[number - 1]}")
            if number == diag.line and diag.column is not None:
                log_error(self.context, " " * width + " | " + _caret_marks(diag, lines[number - 1]))


def _caret_marks(diag: Diagnostic, src_line: str) -> str:
    """Spaces up to the diagnostic column, then one caret per spanned column."""
    start = max(1, diag.column)
    if diag.end_line is None or diag.end_column is None:
        end = start
    elif diag.end_line == diag.line:
        end = max(start, diag.end_column)
    else:
        end = len(src_line) + 1
    return " " * (start - 1) + "^" * max(1, end - start)


def print_diagnostics(result: AnalysisResult, context: AnalysisContext, lines_of_context: int = -1) -> None:
    printer = SnippetPrinter(context, lines_of_context)
    for diag in result.diagnostics:
        printer.print(diag)


def print_json(result: AnalysisResult) -> None:
    """Diagnostics keyed by package path, then by analyzer name."""
    document: Dict[str, Dict[str, List[dict]]] = {}
    for package, diags in result.diagnostics_by_package().items():
        document[package] = {ANALYZER_NAME: [d.to_json() for d in diags]}
    print(json.dumps(document, indent="\t"))


def _split_roots(value: str) -> List[str]:
    separator = ";" if os.name == "nt" else ":"
    return [p for p in value.split(separator) if p]


def build_search_paths(context: AnalysisContext, args: argparse.Namespace) -> SourceSearchPaths:
    """System roots from -S or $ERRORTYPE_SYSTEM, project roots from -P or the working directory."""
    sys_roots = args.sys_root or _split_roots(os.getenv("ERRORTYPE_SYSTEM", ""))
    project_roots = args.project_root or ["."]

    sp = SourceSearchPaths()
    for root in sys_roots:
        sp.add_system_root(root)
    for root in project_roots:
        sp.add_project_root(root)

    for label, roots in (("System", sp.system_roots), ("Project", sp.project_roots)):
        listed = ",".join(f"'{p}'" for p in roots)
        log_info(context, f"{label} root(s): {listed or '<none>'}")
    return sp


def build_analysis_context(args: argparse.Namespace) -> AnalysisContext:
    """Build an AnalysisContext from command-line arguments; raises ValueError on bad heuristics."""
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3 or args.debug:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.WARNING

    return AnalysisContext(
        heuristics=parse_heuristics(args.heuristics),
        style_check=args.stylecheck,
        debug=args.debug,
        include_tests=args.test,
        jobs=max(1, args.jobs),
        log_rich_format=getattr(args, 'log', False),
        log_level=log_level,
    )


def write_suggestions(name: str, result: AnalysisResult, context: AnalysisContext) -> int:
    """Append override suggestions to `name` ("-" for stdout)."""
    suggestions = result.suggestions()
    if not suggestions:
        return 0

    if name == "-":
        write_overrides(sys.stdout, suggestions)
        return 0
    try:
        with open(name, "a", encoding="utf-8") as out:
            write_overrides(out, suggestions)
    except OSError as e:
        log_error(context, f"can't write suggestion file: {e}")
        return 2
    log_info(context, f"Wrote {len(suggestions)} suggestion(s) to {name}")
    return 0


def run(args: argparse.Namespace) -> int:
    context = build_analysis_context(args)
    log_info(context, f"Heuristics: {format_heuristics(context.heuristics)}")
    search_paths = build_search_paths(context, args)

    overrides = OverrideTable()
    if args.overrides:
        try:
            overrides.add(load_overrides(args.overrides))
        except OverrideFileError as e:
            log_error(context, str(e))
            return 2
        log_info(context, f"Loaded {len(overrides)} override(s) from {args.overrides}")

    driver = ErrorTypeDriver(search_paths=search_paths, context=context, overrides=overrides)
    try:
        result = driver.analyze(args.patterns or ["./..."])
    except InternalAnalyzerError as e:
        log_error(context, e.format())
        return 2

    if args.json:
        print_json(result)
    else:
        print_diagnostics(result, context, args.context_lines)

    if result.has_front_end_errors():
        return 1

    if args.suggest:
        rc = write_suggestions(args.suggest, result, context)
        if rc:
            return rc

    return 1 if result.diagnostics else 0


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        prog=ANALYZER_NAME,
        description="Check that error types are used consistently as pointers or values",
    )
    parser.add_argument("patterns", nargs="*", help="Packages to analyze (default: ./...)")

    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")
    parser.add_argument(
        "-P", "--project-root",
        action="append",
        default=[],
        help="Add a project source root (can be passed multiple times; default: .)",
    )
    parser.add_argument(
        "-S", "--sys-root",
        action="append",
        default=[],
        help="Add a system source root (can be passed multiple times; default: $ERRORTYPE_SYSTEM as colon-separated paths)",
    )

    parser.add_argument("--overrides", metavar="FILE",
                        help="Read pointer / value / suppress overrides from this YAML file")
    parser.add_argument("--heuristics", default="usage,receivers", metavar="LIST",
                        help="Comma separated list of heuristics: usage, receivers or off (default: usage,receivers)")
    parser.add_argument("--stylecheck", action=argparse.BooleanOptionalAction, default=True,
                        help="Check that errors.As targets are the address of a variable")
    parser.add_argument("--debug", action="store_true",
                        help="Log the evidence collected for every error type")
    parser.add_argument("--test", action=argparse.BooleanOptionalAction, default=True,
                        help="Also analyze _test.go files")
    parser.add_argument("-j", "--jobs", type=int, default=1,
                        help="Analyze independent packages on this many threads")

    parser.add_argument("--json", action="store_true", help="Emit JSON output")
    parser.add_argument("-c", type=int, default=-1, dest="context_lines", metavar="N",
                        help="Display offending line with this many lines of context")
    parser.add_argument("--suggest", metavar="FILE",
                        help="Append override suggestions to this file, - for standard output")

    args = parser.parse_args(argv)

    try:
        parse_heuristics(args.heuristics)
    except ValueError as e:
        parser.error(str(e))

    rc = run(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
