"""
Analysis context for cross-cutting options.

This module defines the AnalysisContext dataclass which holds options that
affect several stages of the analysis (evidence collection, verification,
logging).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag


class LogLevel(IntEnum):
    """Hierarchical logging levels for the analyzer."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Detailed diagnostic information (-vvv)


class Heuristic(IntFlag):
    """Optional evidence scans, run only while some type is still undecided."""
    OFF = 0
    USAGE = 1
    RECEIVERS = 2


_HEURISTIC_NAMES = {
    "usage": Heuristic.USAGE,
    "receivers": Heuristic.RECEIVERS,
}


def parse_heuristics(text: str, previous: Heuristic = Heuristic.USAGE | Heuristic.RECEIVERS) -> Heuristic:
    """
    Parse a comma separated heuristic list such as "usage,receivers".

    Blank entries are ignored; a list with only blank entries keeps
    `previous`. "off" cannot be combined with other names.
    """
    result = Heuristic.OFF
    seen_any = False
    seen_off = False
    for part in text.split(","):
        name = part.strip()
        if not name:
            continue
        if name == "off":
            seen_off = True
            continue
        flag = _HEURISTIC_NAMES.get(name)
        if flag is None:
            raise ValueError(f"unknown heuristic: {part.strip()}")
        result |= flag
        seen_any = True
    if seen_off:
        if seen_any:
            raise ValueError("heuristic 'off' can not be combined with other heuristics")
        return Heuristic.OFF
    if not seen_any:
        return previous
    return result


def format_heuristics(heuristics: Heuristic) -> str:
    if heuristics == Heuristic.OFF:
        return "off"
    return ",".join(name for name, flag in _HEURISTIC_NAMES.items() if heuristics & flag)


@dataclass
class AnalysisContext:
    """
    Holds cross-cutting options that affect multiple analysis stages.

    Attributes:
        heuristics:         Optional evidence scans (usage sites, method receivers).
        style_check:        If True, report "as"-style targets that are not `&variable`.
        debug:              If True, log every resolved type with its evidence flags.
        include_tests:      If True, also load `_test.go` files of each package.
        jobs:               Worker threads for independent packages.
        log_rich_format:    If True, emit logs in rich format: timestamps and level.
        log_level:          Current logging level.
    """
    heuristics: Heuristic = field(default=Heuristic.USAGE | Heuristic.RECEIVERS)
    style_check: bool = True
    debug: bool = False
    include_tests: bool = True
    jobs: int = 1
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING

    @staticmethod
    def default() -> 'AnalysisContext':
        """Create an AnalysisContext with default settings."""
        return AnalysisContext(log_level=LogLevel.WARNING)
