#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from et_errortypes import ErrorType, TypeName
from et_overrides import Override
from et_suggest import calculate_suggestions
from et_verify import VerifyResult

A = TypeName("example.com/a", "A")
B = TypeName("example.com/a", "B")
C = TypeName("example.com/c", "C")
D = TypeName("example.com/b", "D")


def test_consistent_use_across_packages():
    first = VerifyResult(pointers=[A], values=[D])
    second = VerifyResult(pointers=[A])

    assert calculate_suggestions([first, second]) == [
        Override(A, ErrorType.POINTER),
        Override(D, ErrorType.VALUE),
    ]


def test_conflicting_use_is_inconsistent():
    first = VerifyResult(pointers=[B])
    second = VerifyResult(values=[B])
    third = VerifyResult(inconsistent=[C], pointers=[A])

    assert calculate_suggestions([first, second, third]) == [
        Override(A, ErrorType.POINTER),
        Override(B, ErrorType.UNDECIDED),
        Override(C, ErrorType.UNDECIDED),
    ]


def test_no_results_no_suggestions():
    assert calculate_suggestions([]) == []
    assert calculate_suggestions([VerifyResult()]) == []


def test_suggestions_from_analysis(write_go_package, analyze_packages):
    write_go_package("example.com/a", """
        package a

        type A struct{}

        func (*A) Error() string { return "" }

        func fail() error { return A{} }
    """)
    write_go_package("example.com/b", """
        package b

        type V struct{}

        func (V) Error() string { return "" }

        var ErrV = V{}

        func fail() error { return &V{} }
    """)
    result = analyze_packages("./...")

    assert result.suggestions() == [
        Override(A, ErrorType.VALUE),
        Override(TypeName("example.com/b", "V"), ErrorType.POINTER),
    ]
