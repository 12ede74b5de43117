#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import sys
from pathlib import Path
from textwrap import dedent

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from et_checker import check_package
from et_context import AnalysisContext
from et_driver import ErrorTypeDriver
from et_overrides import OverrideTable
from et_parser import parse_source
from et_paths import SourceSearchPaths
from et_symbols import Package


@pytest.fixture
def temp_project(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def write_go_file(temp_project: Path):
    """Write one Go source file below the project root.

    Usage:
        write_go_file("example.com/a", "a.go", '''
            package a
        ''')
    """

    def _write(import_path: str, filename: str, content: str) -> Path:
        file_path = temp_project.joinpath(*import_path.split("/"), filename)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dedent(content))
        return file_path

    return _write


@pytest.fixture
def write_go_file_to():
    """Write Go source to a specific root directory (separate system/project roots)."""

    def _write(root: Path, import_path: str, filename: str, content: str) -> Path:
        file_path = root.joinpath(*import_path.split("/"), filename)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dedent(content))
        return file_path

    return _write


@pytest.fixture
def write_go_package(write_go_file):
    """Write a single-file package; the file is named after the last path element."""

    def _write(import_path: str, content: str) -> Path:
        return write_go_file(import_path, import_path.rsplit("/", 1)[-1] + ".go", content)

    return _write


@pytest.fixture
def search_paths(temp_project: Path) -> SourceSearchPaths:
    paths = SourceSearchPaths()
    paths.add_project_root(temp_project)
    return paths


@pytest.fixture
def analyze_packages(temp_project: Path):
    """Run the full pipeline over packages written below the project root.

    Usage:
        def test_something(write_go_package, analyze_packages):
            write_go_package("example.com/a", '''
                package a
            ''')
            result = analyze_packages("example.com/a")
            assert not result.has_errors()
    """

    def _analyze(*patterns: str, overrides=None, context: AnalysisContext | None = None):
        paths = SourceSearchPaths()
        paths.add_project_root(temp_project)
        driver = ErrorTypeDriver(
            search_paths=paths,
            context=context or AnalysisContext.default(),
            overrides=OverrideTable(overrides or ()),
        )
        return driver.analyze(list(patterns) or ["./..."])

    return _analyze


@pytest.fixture
def check_source():
    """Parse and type-check a single self-contained file.

    Returns (file, pkg, info, diagnostics).
    """

    def _check(src: str, path: str = "example.com/p"):
        file = parse_source(dedent(src), filename="p.go")
        pkg = Package(path, file.package.name)
        info, diagnostics = check_package(pkg, [file], lambda _path: None)
        return file, pkg, info, diagnostics

    return _check


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "RET-0010" or "[RET-0010]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)


def codes_of(diagnostics) -> list:
    return [d.code for d in diagnostics]
