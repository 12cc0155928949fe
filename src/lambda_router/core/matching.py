"""
Route path patterns compiled to regular expressions.

Supported syntax (Express 4 rules):
    /users/:id            named segment
    /users/:id?           optional named segment
    /users/:id(\\d+)      named segment with a custom pattern
    /files/*              wildcard, captured as an unnamed (integer) key
    re.compile(r"...")    raw pattern; each capture group is an unnamed key
    ["/a", "/b/:id"]      any of the above
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union
from urllib.parse import unquote

from lambda_router.core.errors import ParamDecodeError

PathPattern = Union[str, re.Pattern, list["PathPattern"], tuple["PathPattern", ...]]

_MATCHING_GROUP = re.compile(r"\((?!\?)")
_ESCAPE = re.compile(r"([/.])")
_PARAM = re.compile(r"(\\/)?(\\\.)?:(\w+)(\(.*?\))?(\*)?(\?)?")
_STAR = re.compile(r"\*")
_BAD_ESCAPE = re.compile(r"%(?![0-9a-fA-F]{2})")


@dataclass
class PathKey:
    """One capture group of a compiled pattern. Unnamed groups get integer names."""

    name: str | int
    optional: bool = False
    offset: int = 0


@dataclass
class PathMatcher:
    """Compiled pattern plus its ordered parameter keys."""

    regex: re.Pattern
    keys: list[PathKey] = field(default_factory=list)

    def test(self, path: str) -> bool:
        return self.regex.search(path) is not None

    def match(self, path: str) -> re.Match | None:
        return self.regex.search(path)


def compile_path(
    path: PathPattern,
    *,
    case_sensitive: bool = False,
    strict: bool = False,
    end: bool = True,
) -> PathMatcher:
    """
    Compile a route pattern. `strict` makes the trailing slash significant;
    `end=False` matches a prefix ending at a slash or the end of the path.
    """
    keys: list[PathKey] = []
    flags = 0 if case_sensitive else re.IGNORECASE
    if isinstance(path, re.Pattern):
        _pattern_keys(path, keys)
        return PathMatcher(path, keys)
    if isinstance(path, (list, tuple)):
        sources = [_source(p, keys, strict, end) for p in path]
        return PathMatcher(re.compile("(?:" + "|".join(sources) + ")", flags), keys)
    return PathMatcher(re.compile(_string_source(path, keys, strict, end), flags), keys)


def decode_param(value: str) -> str:
    """Strict percent-decoding of a captured path segment."""
    if _BAD_ESCAPE.search(value):
        raise ParamDecodeError(value)
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as exc:
        raise ParamDecodeError(value) from exc


def _source(path: PathPattern, keys: list[PathKey], strict: bool, end: bool) -> str:
    if isinstance(path, re.Pattern):
        _pattern_keys(path, keys)
        return path.pattern
    if isinstance(path, (list, tuple)):
        return "(?:" + "|".join(_source(p, keys, strict, end) for p in path) + ")"
    return _string_source(path, keys, strict, end)


def _pattern_keys(pattern: re.Pattern, keys: list[PathKey]) -> None:
    for name, m in enumerate(_MATCHING_GROUP.finditer(pattern.pattern)):
        keys.append(PathKey(name, False, m.start()))


def _string_source(path: str, keys: list[PathKey], strict: bool, end: bool) -> str:
    keys_offset = len(keys)
    extra_offset = 0

    if strict:
        suffix = ""
    elif path.endswith("/"):
        suffix = "?"
    else:
        suffix = "/?"

    source = "^" + path + suffix
    source = source.replace("/(", "/(?:")
    source = _ESCAPE.sub(r"\\\1", source)

    def _param(m: re.Match) -> str:
        nonlocal extra_offset
        slash = m.group(1) or ""
        fmt = m.group(2) or ""
        capture = m.group(4) or "([^\\/" + fmt + "]+?)"
        star = m.group(5)
        optional = m.group(6) or ""

        keys.append(PathKey(m.group(3), bool(optional), m.start() + extra_offset))

        result = (
            ("" if optional else slash)
            + "(?:"
            + fmt
            + (slash if optional else "")
            + capture
            + ("((?:[\\/" + fmt + "].+?)?)" if star else "")
            + ")"
            + optional
        )
        extra_offset += len(result) - len(m.group(0))
        return result

    source = _PARAM.sub(_param, source)

    def _star(m: re.Match) -> str:
        # "*" grows into "(.*)": shift the keys that sit after it
        index = m.start()
        for key in reversed(keys[keys_offset:]):
            if key.offset <= index:
                break
            key.offset += 3
        return "(.*)"

    source = _STAR.sub(_star, source)

    # Unnamed groups (wildcards, user sub-patterns) become integer keys,
    # interleaved with the named keys by position.
    i = 0
    name = 0
    for m in _MATCHING_GROUP.finditer(source):
        index = m.start()
        escapes = 0
        while index - escapes - 1 >= 0 and source[index - escapes - 1] == "\\":
            escapes += 1
        if escapes % 2 == 1:
            continue
        if keys_offset + i == len(keys) or keys[keys_offset + i].offset > index:
            keys.insert(keys_offset + i, PathKey(name, False, index))
            name += 1
        i += 1

    if end:
        source += "$"
    elif not source.endswith("/"):
        source += "(?=\\/|$)"
    return source
