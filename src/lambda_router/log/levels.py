"""Log levels of the per-request logger and their stdlib equivalents."""
from __future__ import annotations

import logging
import sys
from typing import Literal

LogLevel = Literal["trace", "debug", "info", "warn", "error", "fatal", "silent"]

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# A message is logged when its priority >= the logger's level priority.
PRIORITIES: dict[str, int] = {
    "trace": 10,
    "debug": 20,
    "info": 30,
    "warn": 40,
    "error": 50,
    "fatal": 60,
    "silent": sys.maxsize,
}

STDLIB_LEVELS: dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def is_debug_or_more_verbose(level: str) -> bool:
    return PRIORITIES[level] <= PRIORITIES["debug"]


def validate_level(level: str) -> LogLevel:
    if level not in PRIORITIES:
        raise ValueError(f"Unknown log level {level!r}; expected one of {', '.join(PRIORITIES)}")
    return level  # type: ignore[return-value]
