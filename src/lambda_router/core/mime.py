"""File extension -> MIME type lookup for `Response.type`."""
from __future__ import annotations

import mimetypes

# Types the platform's table and Python's disagree on, or that Python lacks.
_OVERRIDES = {
    "js": "application/javascript",
    "json": "application/json",
    "md": "text/markdown",
    "woff2": "font/woff2",
}


def mime_lookup(ext: str) -> str | None:
    """Return the MIME type for `ext` (with or without a leading dot), or None."""
    if not ext:
        return None
    ext = ext[1:] if ext.startswith(".") else ext
    ext = ext.lower()
    if ext in _OVERRIDES:
        return _OVERRIDES[ext]
    mime_type, _ = mimetypes.guess_type(f"file.{ext}", strict=False)
    return mime_type
