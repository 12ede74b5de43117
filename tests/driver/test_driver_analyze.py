#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import codes_of
from et_context import AnalysisContext


def _write_tree(write_go_package, count: int) -> None:
    write_go_package("example.com/base", """
        package base

        type E struct{}

        func (*E) Error() string { return "" }
    """)
    for i in range(count):
        write_go_package(f"example.com/p{i}", f"""
            package p{i}

            import "example.com/base"

            func fail() error {{ return base.E{{}} }}
        """)


def test_default_pattern_analyzes_every_package(write_go_package, analyze_packages):
    _write_tree(write_go_package, 3)

    result = analyze_packages()

    assert sorted(result.verify_results) == ["example.com/base", "example.com/p0", "example.com/p1",
                                             "example.com/p2"]
    assert codes_of(result.diagnostics) == ["RET-0011"] * 3
    assert [d.module_name for d in result.diagnostics] == ["example.com/p0", "example.com/p1", "example.com/p2"]
    assert [r.path for r in result.roots] == ["example.com/base", "example.com/p0", "example.com/p1",
                                              "example.com/p2"]


def test_parallel_run_matches_sequential(write_go_package, analyze_packages):
    _write_tree(write_go_package, 6)

    sequential = analyze_packages()
    parallel = analyze_packages(context=AnalysisContext(jobs=4))

    assert [d.format() for d in parallel.diagnostics] == [d.format() for d in sequential.diagnostics]
    assert parallel.suggestions() == sequential.suggestions()


def test_library_decisions_reach_dependents(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import (
            "io/fs"
            "strconv"
        )

        func open() error { return fs.PathError{} }

        func parse() error { return &strconv.NumError{} }
    """)
    result = analyze_packages("example.com/a")

    assert codes_of(result.diagnostics) == ["RET-0011"]
    assert "io/fs" in result.detect_results
    assert "io/fs" not in result.verify_results


def test_diagnostics_sorted_by_position(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        import "errors"

        type P struct{}

        func (*P) Error() string { return "" }

        func second(err error) bool {
            _, ok := err.(P)
            return ok
        }

        func first() error { return P{} }

        func third(err error) bool {
            var p P
            return errors.As(err, &p)
        }
    """)
    result = analyze_packages("example.com/a")

    lines = [d.line for d in result.diagnostics]
    assert lines == sorted(lines)
    assert codes_of(result.diagnostics) == ["AST-0011", "RET-0011", "ARG-0010"]
