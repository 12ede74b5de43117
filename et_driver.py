#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from et_analysis import AnalysisResult
from et_ast import File
from et_checker import check_package
from et_compilation import CompilationUnit, PackageUnit
from et_context import AnalysisContext
from et_detect import detect_package
from et_diagnostics import Diagnostic, diag_from_token
from et_facts import FactStore
from et_lexer import Lexer, LexerError
from et_logger import log_debug, log_info, log_stage
from et_overrides import OverrideTable
from et_parser import ParseError, Parser
from et_paths import SourceSearchPaths
from et_stdlib import stub_filename, stub_source
from et_symbols import Package
from et_verify import verify_package


class ImportCycleError(Exception):
    """Raised when a cyclic import is detected."""
    pass


class ErrorTypeDriver:
    """
    Pipeline driver:
      - expand patterns to import paths
      - read, tokenize and parse every file of a package
      - resolve imports recursively using SourceSearchPaths
      - type-check, detect and verify packages in dependency order

    Entry points:
      - analyze(patterns): the full pipeline.
      - load_package(path): load one package and, recursively, its imports.
      - build_compilation_unit(paths): build the closed set of packages for
        the given roots.
    """

    def __init__(
        self,
        search_paths: SourceSearchPaths | None = None,
        context: AnalysisContext | None = None,
        overrides: OverrideTable | None = None,
    ):
        self.search_paths = search_paths or SourceSearchPaths()
        self.context = context or AnalysisContext.default()
        self.overrides = overrides or OverrideTable()
        self.facts = FactStore()
        # Packages successfully loaded (by import path).
        self.package_cache: Dict[str, PackageUnit] = {}
        # Packages currently being loaded (for cycle detection).
        self._loading: Set[str] = set()

    # --- Public API ---

    def analyze(self, patterns: Iterable[str]) -> AnalysisResult:
        """
        High-level pipeline:

          1. Expand patterns and load the requested packages with their
             imports. Load failures become DRV / LEX / PAR diagnostics and
             drop the affected root.
          2. Type-check every package after its imports.
          3. Detect error types and publish decisions (all packages).
          4. Verify the requested packages.

        Returns an AnalysisResult; diagnostics are those of the requested
        packages, sorted by position within each package.
        """
        patterns = list(patterns)
        log_info(self.context, f"Starting analysis for {', '.join(patterns) or '<nothing>'}")
        result = AnalysisResult(context=self.context)

        log_stage(self.context, "Expanding package patterns")
        import_paths: List[str] = []
        for pattern in patterns:
            expanded = self.search_paths.expand_pattern(pattern)
            if not expanded:
                result.diagnostics.append(
                    Diagnostic(kind="error", message=f"[DRV-0010] pattern '{pattern}' matched no packages")
                )
            for path in expanded:
                if path not in import_paths:
                    import_paths.append(path)

        # 1. Load
        log_stage(self.context, "Building compilation unit")
        roots: List[PackageUnit] = []
        for path in import_paths:
            diag = self._try_load(path)
            if diag is not None:
                result.diagnostics.append(diag)
                continue
            roots.append(self.package_cache[path])

        cu = self.build_compilation_unit(unit.path for unit in roots)
        result.cu = cu
        log_debug(self.context, f"Compilation unit contains {len(cu.packages)} package(s): "
                                f"{', '.join(sorted(cu.packages))}")

        # 2-4. Per dependency wave
        root_paths = {unit.path for unit in roots}
        for wave in cu.waves():
            log_debug(self.context, f"Processing wave of {len(wave)} package(s)")
            if self.context.jobs > 1 and len(wave) > 1:
                with ThreadPoolExecutor(max_workers=self.context.jobs) as executor:
                    list(executor.map(lambda u: self._process_unit(u, cu, result, u.path in root_paths), wave))
            else:
                for unit in wave:
                    self._process_unit(unit, cu, result, unit.path in root_paths)

        # 5. Collect root diagnostics
        for unit in roots:
            result.diagnostics.extend(sorted(unit.diagnostics, key=lambda d: d.sort_key()))
            verified = result.verify_results.get(unit.path)
            if verified is not None:
                result.diagnostics.extend(verified.diagnostics)

        log_info(self.context, f"Analysis complete: {len(result.diagnostics)} total diagnostic(s), "
                               f"{len([d for d in result.diagnostics if d.kind == 'error'])} error(s)")
        return result

    def build_compilation_unit(self, import_paths: Iterable[str]) -> CompilationUnit:
        """
        Load the given packages (if not already loaded), walk their imports,
        and return a CompilationUnit containing exactly the transitive closure
        of packages reachable from them.

        Any unrelated packages already in package_cache are ignored.
        """
        roots = [self.load_package(path) for path in import_paths]

        collected: Dict[str, PackageUnit] = {}

        def visit(unit: PackageUnit) -> None:
            if unit.path in collected:
                return
            collected[unit.path] = unit
            for imp in unit.imports:
                visit(self.load_package(imp))

        for root in roots:
            visit(root)
        return CompilationUnit(roots=roots, packages=collected)

    def load_package(self, import_path: str) -> PackageUnit:
        """
        Load a package by its import path using search paths + cache, and
        recursively load all imported packages.

        Example:
            driver.load_package("example.com/app/store")
        """
        # IMPORTANT: check for cycles *before* checking the cache.
        if import_path in self._loading:
            raise ImportCycleError(f"Cyclic import detected involving '{import_path}'")

        # If already fully loaded, reuse it.
        if import_path in self.package_cache:
            return self.package_cache[import_path]

        log_debug(self.context, f"Loading package '{import_path}'")
        self._loading.add(import_path)
        try:
            try:
                directory = self.search_paths.resolve(import_path)
            except FileNotFoundError:
                if not self.search_paths.has_stub(import_path):
                    raise
                unit = self._load_stub(import_path)
            else:
                log_debug(self.context, f"Resolved '{import_path}' to {directory}")
                unit = self._load_directory(import_path, directory)

            # Store in cache before resolving imports so that non-cyclic
            # mutual references can reuse it once loading finishes.
            self.package_cache[import_path] = unit

            try:
                for imp in unit.imports:
                    self.load_package(imp)
            except Exception:
                del self.package_cache[import_path]
                raise

            return unit
        finally:
            self._loading.remove(import_path)

    # --- Internal helpers ---

    def _try_load(self, import_path: str) -> Optional[Diagnostic]:
        """Load a root package, converting load failures to a diagnostic."""
        try:
            self.load_package(import_path)
        except FileNotFoundError as e:
            return Diagnostic(kind="error", message=f"[DRV-0010] {str(e)}", module_name=import_path)
        except ValueError as e:
            # package name mismatch or similar
            return Diagnostic(kind="error", message=f"[DRV-0020] {str(e)}", module_name=import_path)
        except ImportCycleError as e:
            return Diagnostic(kind="error", message=f"[DRV-0030] {str(e)}", module_name=import_path)
        except LexerError as e:
            # syntax error during lexing
            return Diagnostic(
                kind="error",
                message=e.message,
                module_name=import_path,
                filename=e.filename,
                line=e.line,
                column=e.column,
            )
        except ParseError as e:
            # syntax error during parsing
            return diag_from_token(
                kind="error",
                message=e.message,
                token=e.token,
                module_name=import_path,
                filename=e.filename,
            )
        return None

    def _load_directory(self, import_path: str, directory: Path) -> PackageUnit:
        sources = sorted(p for p in directory.iterdir() if p.suffix == ".go" and p.is_file())
        regular = [p for p in sources if not p.name.endswith("_test.go")]
        tests = [p for p in sources if p.name.endswith("_test.go")]
        if not self.context.include_tests:
            tests = []

        files: List[File] = []
        for path in regular + tests:
            text = path.read_text(encoding="utf-8")
            files.append(self._parse_source(text, file_path=str(path)))
        if not files:
            raise FileNotFoundError(f"No buildable source files for '{import_path}' in {directory}")

        names = {f.package.name for f in files if not f.is_test_file}
        if not names:
            names = {f.package.name for f in files}
        if len(names) > 1:
            raise ValueError(
                f"Package name mismatch: directory {directory} declares packages {', '.join(sorted(names))}"
            )
        name = names.pop()

        # External test packages ("package x_test") are separate units; skip them.
        skipped = [f for f in files if f.is_test_file and f.package.name != name]
        for f in skipped:
            if f.package.name != name + "_test":
                raise ValueError(
                    f"Package name mismatch: file {f.filename} declares 'package {f.package.name}' "
                    f"but the package is '{name}'"
                )
            log_debug(self.context, f"Skipping external test file {f.filename}")
        files = [f for f in files if f not in skipped]

        return PackageUnit(
            path=import_path,
            name=name,
            files=files,
            imports=_imports_of(files),
            directory=str(directory),
        )

    def _load_stub(self, import_path: str) -> PackageUnit:
        log_debug(self.context, f"Using built-in declarations for '{import_path}'")
        file = self._parse_source(stub_source(import_path), file_path=stub_filename(import_path))
        return PackageUnit(
            path=import_path,
            name=file.package.name,
            files=[file],
            imports=_imports_of([file]),
            is_stub=True,
        )

    def _parse_source(self, text: str, file_path: str) -> File:
        log_debug(self.context, f"Lexing {file_path}")
        lexer = Lexer(text, filename=file_path)
        tokens = lexer.tokenize()
        log_debug(self.context, f"Lexed {len(tokens)} token(s) from {file_path}")

        log_debug(self.context, f"Parsing {file_path}")
        parser = Parser(tokens, file_path)
        file = parser.parse_file(filename=file_path)
        log_debug(self.context, f"Parsed package '{file.package.name}' from {file_path}")
        return file

    def _process_unit(self, unit: PackageUnit, cu: CompilationUnit, result: AnalysisResult, verify: bool) -> None:
        """Type-check, detect and (for requested packages) verify one package."""
        self._check_unit(unit, cu)

        if not unit.usable:
            log_info(self.context, f"Skipping package '{unit.path}': front-end errors")
            self.facts.mark_complete(unit.path)
            return

        detected = detect_package(unit, self.facts, self.overrides, self.context)
        self.facts.mark_complete(unit.path)
        result.detect_results[unit.path] = detected

        if verify and not unit.is_stub:
            result.verify_results[unit.path] = verify_package(unit, detected, self.context)

    def _check_unit(self, unit: PackageUnit, cu: CompilationUnit) -> None:
        log_stage(self.context, "Type-checking", unit.path)

        def importer(path: str) -> Optional[Package]:
            dep = cu.packages.get(path)
            if dep is None:
                return None
            return dep.types

        pkg = Package(unit.path, unit.name)
        info, diagnostics = check_package(pkg, unit.files, importer)
        unit.types = pkg
        unit.info = info
        unit.diagnostics.extend(diagnostics)
        log_debug(self.context, f"Type checking '{unit.path}' produced {len(diagnostics)} diagnostic(s)")


def _imports_of(files: List[File]) -> List[str]:
    imports: List[str] = []
    for f in files:
        for spec in f.imports:
            if spec.path not in imports:
                imports.append(spec.path)
    return imports
