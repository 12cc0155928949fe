"""Query string handling: raw query reconstruction and bracket-nested parsing."""
from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import quote, unquote

from starlette.datastructures import QueryParams

QueryValue = Any  # str | list[QueryValue] | dict[str, QueryValue]

MAX_DEPTH = 5
ARRAY_LIMIT = 20

_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
_INDEXED = object()


def safe_decode(value: str) -> str:
    """Decode a query component ('+' is a space); undecodable input becomes ''."""
    try:
        return unquote(value.replace("+", " "), errors="strict")
    except UnicodeDecodeError:
        return ""


def encode_component(value: str) -> str:
    """Percent-encode everything except the characters JavaScript leaves alone."""
    return quote(value, safe="!'()*-._~")


def build_raw_query(
    multi_value: Mapping[str, list[str] | None] | None,
    single_value: Mapping[str, str | None] | None,
) -> str:
    """
    Rebuild the raw query string from the event's parameter maps.

    Values may or may not arrive encoded, so they are decoded and then
    re-encoded; keys are kept as they came. The result always starts with `&`
    (an empty string when there are no parameters).
    """
    parts: list[str] = []
    if multi_value:
        for key, values in multi_value.items():
            for value in values or []:
                parts.append(f"&{key}={encode_component(safe_decode(value))}")
    else:
        for key, value in (single_value or {}).items():
            if value is None:
                continue
            parts.append(f"&{key}={encode_component(safe_decode(value))}")
    return "".join(parts)


def parse_query(raw: str) -> dict[str, QueryValue]:
    """
    Parse a query string into nested values:
        a=1&a=2       -> {"a": ["1", "2"]}
        a[b]=1        -> {"a": {"b": "1"}}
        a[]=1&a[]=2   -> {"a": ["1", "2"]}
        a[1]=y&a[0]=x -> {"a": ["x", "y"]}
    """
    result: dict[str, QueryValue] = {}
    for key, value in QueryParams(raw).multi_items():
        if not key:
            continue
        _assign(result, _split_key(key), value)
    return _compact(result)


def _split_key(key: str) -> list[str]:
    first = key.find("[")
    if first <= 0:
        return [key]
    segments = [key[:first]]
    rest = key[first:]
    pos = 0
    for depth, m in enumerate(_SEGMENT.finditer(rest)):
        if m.start() != pos or depth >= MAX_DEPTH:
            break
        segments.append(m.group(1))
        pos = m.end()
    if pos < len(rest):
        # anything past the depth limit (or malformed) is kept as one literal key
        segments.append(rest[pos:])
    return segments


def _assign(container: dict[Any, QueryValue], segments: list[str], value: str) -> None:
    head, rest = segments[0], segments[1:]
    key: Any = head
    if head.isdigit() and int(head) <= ARRAY_LIMIT and container.get(_INDEXED):
        key = int(head)

    if not rest:
        existing = container.get(key)
        if existing is None:
            container[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            container[key] = [existing, value]
        return

    child = container.get(key)
    nxt = rest[0]
    if nxt == "":
        # `a[]=...` appends
        if child is None:
            child = container[key] = []
        elif not isinstance(child, list):
            child = container[key] = [child]
        if len(rest) == 1:
            child.append(value)
        else:
            item: dict[Any, QueryValue] = {}
            child.append(item)
            _assign(item, rest[1:], value)
        return

    if child is None:
        child = container[key] = {}
    elif isinstance(child, list):
        child = container[key] = {i: v for i, v in enumerate(child)}
        child[_INDEXED] = True
    elif not isinstance(child, dict):
        holder: dict[Any, QueryValue] = {}
        container[key] = [child, holder]
        child = holder
    if nxt.isdigit() and int(nxt) <= ARRAY_LIMIT:
        child[_INDEXED] = True
    _assign(child, rest, value)


def _compact(value: QueryValue) -> QueryValue:
    """Turn index-keyed mappings into lists and drop bookkeeping markers."""
    if isinstance(value, list):
        return [_compact(v) for v in value]
    if not isinstance(value, dict):
        return value
    indexed = value.pop(_INDEXED, False)
    keys = list(value)
    if indexed and keys and all(isinstance(k, int) for k in keys):
        return [_compact(value[k]) for k in sorted(keys)]
    return {str(k): _compact(v) for k, v in value.items()}
