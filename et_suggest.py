#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from enum import IntFlag
from typing import Dict, Iterable, List

from et_errortypes import ErrorType, TypeName
from et_overrides import Override
from et_verify import VerifyResult


class _Seen(IntFlag):
    INCONSISTENT = 1
    POINTER = 2
    VALUE = 4


def calculate_suggestions(results: Iterable[VerifyResult]) -> List[Override]:
    """
    Combine the observed use of every verified package into overrides.

    A type seen only as a pointer is suggested as a pointer error, only as
    a value as a value error; anything else is reported as inconsistent
    (ErrorType.UNDECIDED).
    """
    combined: Dict[TypeName, _Seen] = {}
    for result in results:
        for name in result.pointers:
            combined[name] = combined.get(name, _Seen(0)) | _Seen.POINTER
        for name in result.values:
            combined[name] = combined.get(name, _Seen(0)) | _Seen.VALUE
        for name in result.inconsistent:
            combined[name] = combined.get(name, _Seen(0)) | _Seen.INCONSISTENT

    suggestions: List[Override] = []
    for name, seen in combined.items():
        if seen == _Seen.POINTER:
            suggestions.append(Override(name, ErrorType.POINTER))
        elif seen == _Seen.VALUE:
            suggestions.append(Override(name, ErrorType.VALUE))
        else:
            suggestions.append(Override(name, ErrorType.UNDECIDED))
    return sorted(suggestions)
