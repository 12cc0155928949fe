"""Application settings: a named key/value store, optionally loaded from env."""
from __future__ import annotations

import os
from typing import Any, Iterator

TRUST_PROXY = "trust proxy"
CASE_SENSITIVE_ROUTING = "case sensitive routing"
JSONP_CALLBACK_NAME = "jsonp callback name"
LOG_LEVEL = "log level"

ENV_PREFIX = "LAMBDA_ROUTER_"

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _coerce(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return value


class Settings:
    """
    Named settings read by the framework and by user code.

    Names used by lambda_router:
      * `trust proxy` (default False): trust X-Forwarded-* headers.
      * `case sensitive routing` (default False): mirrored into the router.
      * `jsonp callback name` (default "callback"): query parameter for `Response.jsonp`.
      * `log level` (default "info"): level of the per-request logger.
    Any other name may be stored and read freely.
    """

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **defaults: Any) -> Settings:
        """
        Load settings from os.environ. LAMBDA_ROUTER_TRUST_PROXY=true -> {"trust proxy": True}.
        Keyword defaults use underscores in place of spaces.
        """
        values = {k.replace("_", " "): v for k, v in defaults.items()}
        for key, value in os.environ.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower().replace("_", " ")
                values[name] = _coerce(value)
        return cls(values)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def is_enabled(self, name: str) -> bool:
        return bool(self._values.get(name))

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)
