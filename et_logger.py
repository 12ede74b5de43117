"""
Logging for the analyzer.

Messages go to standard error and are filtered by the AnalysisContext
log level. Packages may be analyzed on worker threads, so every line is
written under a lock.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import threading
import time
from typing import Optional

from et_context import AnalysisContext, LogLevel

_lock = threading.Lock()

_LEVEL_TAGS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def _emit(line: str) -> None:
    with _lock:
        print(line, file=sys.stderr)


def _rich_prefix(log_level: LogLevel) -> str:
    tag = _LEVEL_TAGS.get(log_level)
    if tag is None:
        return ""
    return f"{time.strftime('%Y-%m-%d %H:%M:%S', time.localtime())} [{tag}] "


def log(context: Optional[AnalysisContext], log_level: LogLevel, message: str) -> None:
    """
    Write `message` if the context admits `log_level`.

    Without a context the message is always written, unadorned.
    """
    if context is None:
        _emit(message)
        return
    if context.log_level < log_level:
        return
    prefix = _rich_prefix(log_level) if context.log_rich_format else ""
    _emit(prefix + message)


def log_error(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[AnalysisContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: Optional[AnalysisContext], stage: str, package: Optional[str] = None) -> None:
    """Announce a pipeline stage, optionally for one package (INFO level)."""
    log(context, LogLevel.INFO, f"{stage} package '{package}'" if package else f"{stage}...")
