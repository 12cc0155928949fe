"""Per-request structured logger: one JSON object per line."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Protocol, runtime_checkable

from lambda_router.log.levels import (
    PRIORITIES,
    STDLIB_LEVELS,
    LogLevel,
    is_debug_or_more_verbose,
    validate_level,
)

REQUEST_LOGGER_NAME = "lambda_router.request"


@runtime_checkable
class Logger(Protocol):
    """Logger attached to every request as `req.log`. Plug in your own via Application(logger_factory=...)."""

    def trace(self, msg: str, data: Any = None) -> None:
        ...

    def debug(self, msg: str, data: Any = None) -> None:
        ...

    def info(self, msg: str, data: Any = None) -> None:
        ...

    def warn(self, msg: str, data: Any = None) -> None:
        ...

    def error(self, msg: str, data: Any = None) -> None:
        ...

    def fatal(self, msg: str, data: Any = None) -> None:
        ...

    def get_level(self) -> LogLevel:
        ...

    def set_level(self, level: LogLevel) -> None:
        ...


class ConsoleLogger:
    """
    Filters by its own level, then writes a JSON line through the stdlib
    `lambda_router.request` logger:

        {"level": "info", "msg": "...", "data": {...}}

    Debug and more verbose lines also carry `int` (event source), `remaining`
    (ms until the function times out) and `timer` (ms since the invocation started).
    """

    def __init__(
        self,
        *,
        interface: str,
        get_time_until_fn_timeout: Callable[[], int],
        level: LogLevel = "info",
        fn_start_time: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._level = validate_level(level)
        self._interface = interface
        self._get_time_until_fn_timeout = get_time_until_fn_timeout
        self._fn_start_time = time.time() * 1000 if fn_start_time is None else fn_start_time
        self._logger = logger or logging.getLogger(REQUEST_LOGGER_NAME)

    def trace(self, msg: str, data: Any = None) -> None:
        self._log("trace", msg, data)

    def debug(self, msg: str, data: Any = None) -> None:
        self._log("debug", msg, data)

    def info(self, msg: str, data: Any = None) -> None:
        self._log("info", msg, data)

    def warn(self, msg: str, data: Any = None) -> None:
        self._log("warn", msg, data)

    def error(self, msg: str, data: Any = None) -> None:
        self._log("error", msg, data)

    def fatal(self, msg: str, data: Any = None) -> None:
        self._log("fatal", msg, data)

    def get_level(self) -> LogLevel:
        return self._level

    def set_level(self, level: LogLevel) -> None:
        self._level = validate_level(level)

    def _should_log(self, level: str) -> bool:
        return PRIORITIES[level] >= PRIORITIES[self._level]

    def _log(self, level: str, msg: str, data: Any) -> None:
        if level == "silent" or not self._should_log(level):
            return
        line = json.dumps(self._make_log_object(level, msg, data), default=str)
        self._logger.log(STDLIB_LEVELS[level], line)

    def _make_log_object(self, level: str, msg: str, data: Any) -> dict[str, Any]:
        obj: dict[str, Any] = {"level": level, "msg": msg}
        if data is not None:
            obj["data"] = data
        if is_debug_or_more_verbose(level):
            obj["int"] = self._interface
            obj["remaining"] = self._get_time_until_fn_timeout()
            obj["timer"] = self._time_since_fn_start()
        return obj

    def _time_since_fn_start(self) -> int:
        return int(time.time() * 1000 - self._fn_start_time)
