"""
Evidence flags and the decision resolver.

Each flag records one observation about how a type implementing error is
declared or used. Flags only accumulate; `determined_type` turns a flag set
into an ErrorType by walking the evidence categories from strongest to
weakest.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from enum import IntFlag
from typing import List, Tuple

from et_errortypes import ErrorType


class ErrorProperty(IntFlag):
    NONE = 0

    # Error() has a pointer receiver: the type can only be used as a pointer.
    POINTER_RECEIVER = 1 << 0

    # User overrides.
    SUPPRESS_OVERRIDE = 1 << 1
    POINTER_OVERRIDE = 1 << 2
    VALUE_OVERRIDE = 1 << 3

    # `var _ error = &T{}` assertions and `var ErrX = T{}` sentinels.
    POINTER_VAR = 1 << 4
    VALUE_VAR = 1 << 5

    # Aliases of imported error types.
    POINTER_ALIAS = 1 << 6
    VALUE_ALIAS = 1 << 7

    # `return &T{}` / `return T{}` in the error result.
    POINTER_RETURN = 1 << 8
    VALUE_RETURN = 1 << 9

    # `err.(*T)` / `err.(T)`.
    POINTER_ASSERT = 1 << 10
    VALUE_ASSERT = 1 << 11

    # `var target *T; errors.As(err, &target)`.
    POINTER_TARGET = 1 << 12
    VALUE_TARGET = 1 << 13

    # `&T{}` / `T{}`.
    POINTER_LITERAL = 1 << 14
    VALUE_LITERAL = 1 << 15

    # `(*T)(v)` / `T(v)`.
    POINTER_CAST = 1 << 16
    VALUE_CAST = 1 << 17

    # All other methods share one receiver kind (weak).
    POINTER_RECEIVERS = 1 << 18
    VALUE_RECEIVERS = 1 << 19

    # `type T *S`: the named type itself is used like a value.
    POINTER_DEF = 1 << 20

    # Underlying type is neither a struct nor a pointer. Informational.
    NON_STRUCT = 1 << 21

    def describe(self) -> str:
        """Comma separated flag names, "None" for the empty set."""
        if self == ErrorProperty.NONE:
            return "None"
        return ", ".join(_camel(flag.name) for flag in ErrorProperty if flag and flag in self)


OVERRIDE_MASK = ErrorProperty.POINTER_OVERRIDE | ErrorProperty.VALUE_OVERRIDE | ErrorProperty.SUPPRESS_OVERRIDE

# Evidence categories, strongest first. The first category with exactly one
# side set decides.
PROPERTY_PAIRS: List[Tuple[ErrorProperty, ErrorProperty]] = [
    (ErrorProperty.POINTER_OVERRIDE, ErrorProperty.VALUE_OVERRIDE),
    (ErrorProperty.POINTER_VAR, ErrorProperty.VALUE_VAR),
    (ErrorProperty.POINTER_ALIAS, ErrorProperty.VALUE_ALIAS),
    (ErrorProperty.POINTER_RETURN, ErrorProperty.VALUE_RETURN),
    (ErrorProperty.POINTER_ASSERT, ErrorProperty.VALUE_ASSERT),
    (ErrorProperty.POINTER_TARGET, ErrorProperty.VALUE_TARGET),
    (ErrorProperty.POINTER_LITERAL, ErrorProperty.VALUE_LITERAL),
    (ErrorProperty.POINTER_CAST, ErrorProperty.VALUE_CAST),
    (ErrorProperty.POINTER_RECEIVERS, ErrorProperty.VALUE_RECEIVERS),
]


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def determined_type(props: ErrorProperty) -> ErrorType:
    """
    Resolve a flag set to a decision.

    Suppression wins over everything, a pointer receiver over every other
    category. Within a category, contradicting flags cancel out and the
    next category is consulted.
    """
    if props & ErrorProperty.SUPPRESS_OVERRIDE:
        return ErrorType.SUPPRESS

    if props & ErrorProperty.POINTER_RECEIVER:
        return ErrorType.POINTER

    for pointer_prop, value_prop in PROPERTY_PAIRS:
        side = props & (pointer_prop | value_prop)
        if side == pointer_prop:
            return ErrorType.POINTER
        if side == value_prop:
            return ErrorType.VALUE

    if props & ErrorProperty.POINTER_DEF:
        return ErrorType.VALUE

    return ErrorType.UNDECIDED


def property_for(is_ptr: bool, pointer_prop: ErrorProperty, value_prop: ErrorProperty) -> ErrorProperty:
    return pointer_prop if is_ptr else value_prop
