#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from conftest import codes_of, has_error_code
from et_context import AnalysisContext
from et_driver import ErrorTypeDriver, ImportCycleError
from et_paths import SourceSearchPaths


def test_load_package_resolves_imports_recursively(write_go_package, search_paths):
    write_go_package("example.com/app", """
        package app

        import (
            "errors"
            "example.com/app/store"
        )

        var ErrApp = errors.New("app")
        var _ = store.ErrStore
    """)
    write_go_package("example.com/app/store", """
        package store

        import "fmt"

        var ErrStore = fmt.Errorf("store")
    """)

    driver = ErrorTypeDriver(search_paths=search_paths)
    unit = driver.load_package("example.com/app")

    assert unit.name == "app"
    assert unit.imports == ["errors", "example.com/app/store"]
    assert set(driver.package_cache) >= {"example.com/app", "example.com/app/store", "errors", "fmt"}
    assert driver.package_cache["errors"].is_stub
    assert not driver.package_cache["example.com/app/store"].is_stub


def test_compilation_unit_is_the_transitive_closure(write_go_package, search_paths):
    write_go_package("example.com/a", """
        package a

        import "example.com/b"

        var _ = b.X
    """)
    write_go_package("example.com/b", """
        package b

        import "example.com/c"

        var X = c.Y
    """)
    write_go_package("example.com/c", """
        package c

        var Y = 1
    """)
    write_go_package("example.com/unrelated", """
        package unrelated
    """)

    driver = ErrorTypeDriver(search_paths=search_paths)
    driver.load_package("example.com/unrelated")
    cu = driver.build_compilation_unit(["example.com/a"])

    assert [u.path for u in cu.roots] == ["example.com/a"]
    assert set(cu.packages) == {"example.com/a", "example.com/b", "example.com/c"}
    assert "example.com/unrelated" not in cu
    assert [u.path for u in cu.topological_order()] == ["example.com/c", "example.com/b", "example.com/a"]
    assert [[u.path for u in wave] for wave in cu.waves()] == [
        ["example.com/c"], ["example.com/b"], ["example.com/a"],
    ]


def test_independent_packages_share_a_wave(write_go_package, search_paths):
    write_go_package("example.com/a", """
        package a

        import (
            "example.com/b"
            "example.com/c"
        )

        var _, _ = b.X, c.Y
    """)
    write_go_package("example.com/b", "package b\n\nvar X = 1\n")
    write_go_package("example.com/c", "package c\n\nvar Y = 1\n")

    driver = ErrorTypeDriver(search_paths=search_paths)
    waves = driver.build_compilation_unit(["example.com/a"]).waves()

    assert [[u.path for u in wave] for wave in waves] == [
        ["example.com/b", "example.com/c"], ["example.com/a"],
    ]


def test_import_cycle_is_detected(write_go_package, search_paths):
    write_go_package("example.com/a", """
        package a

        import "example.com/b"

        var X = b.Y
    """)
    write_go_package("example.com/b", """
        package b

        import "example.com/a"

        var Y = a.X
    """)

    driver = ErrorTypeDriver(search_paths=search_paths)
    with pytest.raises(ImportCycleError):
        driver.load_package("example.com/a")
    assert "example.com/a" not in driver.package_cache
    assert "example.com/b" not in driver.package_cache


def test_import_cycle_becomes_a_diagnostic(write_go_package, analyze_packages):
    write_go_package("example.com/a", 'package a\n\nimport "example.com/b"\n\nvar X = b.Y\n')
    write_go_package("example.com/b", 'package b\n\nimport "example.com/a"\n\nvar Y = a.X\n')

    result = analyze_packages("example.com/a")

    assert codes_of(result.diagnostics) == ["DRV-0030"]
    assert result.diagnostics[0].module_name == "example.com/a"
    assert result.has_front_end_errors()


def test_missing_package_and_empty_pattern(temp_project, analyze_packages):
    (temp_project / "example.com" / "empty").mkdir(parents=True)

    result = analyze_packages("example.com/missing", "example.com/empty/...")

    assert codes_of(result.diagnostics) == ["DRV-0010", "DRV-0010"]
    assert "'example.com/empty/...' matched no packages" in result.diagnostics[0].message
    assert "Package 'example.com/missing' not found" in result.diagnostics[1].message


def test_missing_import_is_reported_on_the_root(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "example.com/nowhere"

        var _ = nowhere.X
    """)
    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["DRV-0010"]
    assert "example.com/nowhere" in result.diagnostics[0].message


def test_package_name_mismatch(write_go_file, analyze_packages):
    write_go_file("example.com/a", "a.go", "package a\n")
    write_go_file("example.com/a", "b.go", "package b\n")

    result = analyze_packages("example.com/a")

    assert codes_of(result.diagnostics) == ["DRV-0020"]
    assert "declares packages a, b" in result.diagnostics[0].message


def test_test_files(write_go_file, search_paths):
    write_go_file("example.com/a", "a.go", "package a\n")
    write_go_file("example.com/a", "a_internal_test.go", "package a\n")
    write_go_file("example.com/a", "a_external_test.go", "package a_test\n")

    unit = ErrorTypeDriver(search_paths=search_paths).load_package("example.com/a")
    assert [f.filename.rsplit("/", 1)[-1] for f in unit.files] == ["a.go", "a_internal_test.go"]
    assert unit.has_test_files()

    no_tests = ErrorTypeDriver(search_paths=search_paths, context=AnalysisContext(include_tests=False))
    unit = no_tests.load_package("example.com/a")
    assert [f.filename.rsplit("/", 1)[-1] for f in unit.files] == ["a.go"]


def test_foreign_test_package_name_is_rejected(write_go_file, analyze_packages):
    write_go_file("example.com/a", "a.go", "package a\n")
    write_go_file("example.com/a", "a_test.go", "package other\n")

    result = analyze_packages("example.com/a")
    assert codes_of(result.diagnostics) == ["DRV-0020"]
    assert "declares 'package other'" in result.diagnostics[0].message


def test_system_roots_take_priority(tmp_path, write_go_file_to):
    sys_root = tmp_path / "system"
    proj_root = tmp_path / "project"
    write_go_file_to(sys_root, "example.com/lib", "lib.go", "package lib\n")
    write_go_file_to(proj_root, "example.com/lib", "lib.go", "package lib\n")

    paths = SourceSearchPaths()
    paths.add_system_root(sys_root)
    paths.add_project_root(proj_root)
    unit = ErrorTypeDriver(search_paths=paths).load_package("example.com/lib")

    assert unit.directory == str(sys_root / "example.com" / "lib")


def test_project_package_shadows_library_stub(write_go_package, analyze_packages):
    write_go_package("errors", """
        package errors

        type Shadow struct{}

        func (*Shadow) Error() string { return "" }
    """)
    write_go_package("example.com/a", """
        package a

        import "errors"

        var _ error = &errors.Shadow{}
    """)

    result = analyze_packages("example.com/a")
    assert result.diagnostics == []
    assert not result.cu.packages["errors"].is_stub


def test_lexer_error_becomes_diagnostic(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        var s = "unterminated
    """)
    result = analyze_packages("example.com/a")

    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].code.startswith("LEX-")
    assert result.diagnostics[0].line == 4
    assert result.has_front_end_errors()


def test_parse_error_becomes_diagnostic(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        func f( {
    """)
    result = analyze_packages("example.com/a")

    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].code.startswith("PAR-")
    assert result.diagnostics[0].filename.endswith("a.go")


def test_type_errors_skip_detection(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func fail() error { return missing }
    """)
    result = analyze_packages("example.com/a")

    assert has_error_code(result.diagnostics, "CHK-0010")
    assert "example.com/a" not in result.detect_results
    assert "example.com/a" not in result.verify_results


def test_broken_dependency_leaves_types_undecided(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        var _ = missing
    """)
    write_go_package("example.com/b", """
        package b

        import "example.com/a"

        func fail() error { return a.A{} }
    """)
    result = analyze_packages("example.com/b")

    assert codes_of(result.diagnostics) == ["UND-0010"]
    assert "example.com/a" not in result.detect_results
    assert "example.com/b" in result.verify_results
