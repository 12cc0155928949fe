"""Response that serializes to the result shape expected by API Gateway or ALB."""
from __future__ import annotations

import enum
import json
import re
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from http import HTTPStatus
from http.cookies import Morsel
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping

from starlette.datastructures import MultiDict

from lambda_router.core.config import JSONP_CALLBACK_NAME
from lambda_router.core.errors import HeadersAlreadySentError
from lambda_router.core.events import ResponseResult
from lambda_router.core.mime import mime_lookup
from lambda_router.core.query import encode_component

if TYPE_CHECKING:
    from lambda_router.core.app import Application
    from lambda_router.core.request import Request

ResponseCallback = Callable[[ResponseResult], Any]
HeaderValue = str | list[str]

_JSONP_CALLBACK = re.compile(r"^[\[\]\w$.]+$")
_NO_CACHE_EXPIRES = "Thu, 19 Nov 1981 08:52:00 GMT"
_EPOCH = datetime.fromtimestamp(0, timezone.utc)


def status_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return str(code)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _cookie_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return "j:" + _json_dumps(value)
    return _json_dumps(value)


class ResponseState(str, enum.Enum):
    PENDING = "pending"
    WRITING = "writing"
    SENT = "sent"


class Response:
    """
    Express-style response. Headers are kept in a multi-valued map until one of
    the sending methods (`end`, `send`, `json`, `jsonp`, `redirect`,
    `send_status`) hands the serialized result to the completion callback.
    """

    def __init__(self, app: Application, request: Request, callback: ResponseCallback) -> None:
        self.app = app
        self._request = request
        self._callback = callback
        self._state = ResponseState.PENDING
        self._body = ""
        self._status_code = 200
        self._status_message = "OK"
        self._headers: MultiDict = MultiDict()
        self._before_write_headers_listeners: list[Callable[[], Any]] = []
        self._after_write_listeners: list[Callable[[], Any]] = []

    @property
    def headers_sent(self) -> bool:
        return self._state is ResponseState.SENT

    def _ensure_pending(self) -> None:
        if self.headers_sent:
            raise HeadersAlreadySentError()

    def _ensure_sendable(self) -> None:
        if self._state is not ResponseState.PENDING:
            raise HeadersAlreadySentError()

    # Headers

    def set(self, name: str | Mapping[str, HeaderValue], value: HeaderValue | None = None) -> Response:
        """Replace one header (`set('Content-Type', 'text/plain')`) or several (`set({...})`)."""
        self._ensure_pending()
        headers = name if isinstance(name, Mapping) else {name: value}
        for key, val in headers.items():
            self._headers.setlist(key, list(val) if isinstance(val, (list, tuple)) else [val])
        return self

    def append(self, name: str, values: HeaderValue) -> Response:
        """Add value(s) to a header, keeping what is already there."""
        self._ensure_pending()
        for value in [values] if isinstance(values, str) else values:
            self._headers.append(name, value)
        return self

    def delete(self, name: str) -> Response:
        self._ensure_pending()
        self._headers.pop(name, None)
        return self

    def get(self, name: str) -> str | None:
        return self._headers.get(name)

    def get_headers(self) -> dict[str, list[str]]:
        """Copy of the headers; changing it does not change the response."""
        return {key: self._headers.getlist(key) for key in self._headers.keys()}

    def has_header(self, name: str) -> bool:
        return name in self._headers

    # Status

    def status(self, code: int) -> Response:
        self._status_code = code
        self._status_message = status_phrase(code)
        return self

    def get_status(self) -> tuple[int, str]:
        return self._status_code, self._status_message

    # Convenience setters

    def type(self, type_: str) -> Response:
        """`type('html')`, `type('.png')` or a full MIME type such as `type('application/json')`."""
        if "/" in type_:
            return self.set("Content-Type", type_)
        return self.set("Content-Type", mime_lookup(type_) or type_)

    def links(self, links: Mapping[str, str]) -> Response:
        """Overwrites the Link header: `links({'next': url})` -> `<url>; rel="next"`."""
        return self.set("Link", ", ".join(f'<{url}>; rel="{rel}"' for rel, url in links.items()))

    def location(self, path: str) -> Response:
        """`'back'` means the Referer header, or `/` without one."""
        value = path
        if path == "back":
            value = self._request.get("Referer") or "/"
        return self.set("Location", value)

    def cookie(
        self,
        name: str,
        value: Any,
        *,
        path: str = "/",
        domain: str | None = None,
        expires: datetime | str | None = None,
        max_age: int | None = None,
        secure: bool = False,
        http_only: bool = False,
        same_site: Literal["lax", "strict", "none"] | None = None,
        encode: Callable[[str], str] = encode_component,
    ) -> Response:
        """
        Append a Set-Cookie header. Dicts and lists are stored as `j:` + JSON.
        `max_age` is in milliseconds and, when given, overrides `expires`.
        """
        raw = _cookie_value(value)
        morsel: Morsel = Morsel()
        morsel.set(name, raw, encode(raw))
        if max_age is not None:
            expires = datetime.now(timezone.utc) + timedelta(milliseconds=max_age)
            morsel["max-age"] = max_age // 1000
        if expires is not None:
            if isinstance(expires, datetime):
                morsel["expires"] = format_datetime(expires.astimezone(timezone.utc), usegmt=True)
            else:
                morsel["expires"] = expires
        if path:
            morsel["path"] = path
        if domain:
            morsel["domain"] = domain
        if secure:
            morsel["secure"] = True
        if http_only:
            morsel["httponly"] = True
        if same_site:
            morsel["samesite"] = same_site
        return self.append("Set-Cookie", morsel.OutputString())

    def clear_cookie(self, name: str, **options: Any) -> Response:
        options.setdefault("expires", _EPOCH)
        options.pop("max_age", None)
        return self.cookie(name, "", **options)

    def cache_for_seconds(self, seconds: int) -> Response:
        """Sets Expires / Cache-Control / Pragma; zero or less disables caching."""
        if seconds > 0:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=seconds)
            self.delete("Pragma")
            return self.set({
                "Expires": format_datetime(expiry, usegmt=True),
                "Cache-Control": f"must-revalidate, max-age={seconds}",
            })
        return self.set({
            "Expires": _NO_CACHE_EXPIRES,
            "Cache-Control": "no-cache, max-age=0, must-revalidate",
            "Pragma": "no-cache",
        })

    def cache_for_minutes(self, minutes: int) -> Response:
        return self.cache_for_seconds(minutes * 60)

    def cache_for_hours(self, hours: int) -> Response:
        return self.cache_for_minutes(hours * 60)

    # Listeners

    def on_before_write_headers(self, fn: Callable[[], Any]) -> Response:
        """Runs just before the response is sent; headers can still be changed."""
        self._before_write_headers_listeners.append(fn)
        return self

    def on_after_write(self, fn: Callable[[], Any]) -> Response:
        self._after_write_listeners.append(fn)
        return self

    def is_alb(self) -> bool:
        return self._request.is_alb()

    def is_apigw(self) -> bool:
        return self._request.is_apigw()

    # Sending

    def end(self) -> Response:
        """Serialize and hand the result to the completion callback. Allowed once."""
        self._ensure_sendable()
        self._state = ResponseState.WRITING
        try:
            for listener in self._before_write_headers_listeners:
                listener()
        except BaseException:
            self._state = ResponseState.PENDING
            raise

        self._write()
        for listener in self._after_write_listeners:
            listener()
        return self

    def _write(self) -> None:
        multi_value_headers = self.get_headers()
        output: ResponseResult = {
            "isBase64Encoded": False,
            "statusCode": self._status_code,
            "multiValueHeaders": multi_value_headers,
            "body": self._body,
        }
        if self.is_alb():
            # ALB wants a status line, and single-valued `headers` unless
            # multi-value headers are enabled on the target group; send both.
            output["statusDescription"] = f"{self._status_code} {self._status_message}"
            output["headers"] = {key: values[-1] for key, values in multi_value_headers.items()}

        self._state = ResponseState.SENT
        self._callback(output)

    def abort(self, code: int = 500) -> Response:
        """
        Sends `code` with an empty body and no listeners. Last resort once a
        regular send has failed; does nothing if the response is already out.
        """
        if not self.headers_sent:
            self.status(code)
            self._body = ""
            self._write()
        return self

    def send(self, body: Any) -> Response:
        """Strings go out as text/html (unless Content-Type is set); other values as JSON."""
        if isinstance(body, (bytes, bytearray, memoryview)):
            raise NotImplementedError("Sending binary bodies is not supported")
        if not isinstance(body, str):
            return self.json(body)
        self._ensure_sendable()
        self._body = body
        if not self.has_header("Content-Type"):
            self.type("text/html")
        return self.end()

    def json(self, obj: Any) -> Response:
        self._ensure_sendable()
        self._body = _json_dumps(obj)
        return self.type("application/json; charset=utf-8").end()

    def jsonp(self, obj: Any) -> Response:
        """
        Wraps the JSON in a call to the function named by the `callback` query
        parameter (see the `jsonp callback name` setting). Falls back to `json`
        when the parameter is missing or not a valid identifier.
        """
        param = self.app.get_setting(JSONP_CALLBACK_NAME) or "callback"
        callback = self._request.query.get(param)
        if isinstance(callback, list):
            callback = callback[0] if callback else None
        if not isinstance(callback, str) or not _JSONP_CALLBACK.match(callback):
            return self.json(obj)

        self._ensure_sendable()
        payload = _json_dumps(obj).replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
        # `/**/` and `typeof` guard against Rosetta Flash and missing callbacks
        self._body = f"/**/ typeof {callback} === 'function' && {callback}({payload});"
        self.type("text/javascript; charset=utf-8")
        self.set("X-Content-Type-Options", "nosniff")
        return self.end()

    def redirect(self, code_or_path: int | str, path: str | None = None) -> Response:
        """`redirect('/login')` (302) or `redirect(301, '/new-home')`."""
        if isinstance(code_or_path, int):
            code, target = code_or_path, path
        else:
            code, target = 302, code_or_path
        if target is None:
            raise TypeError("redirect() needs a path")
        self._ensure_sendable()
        self.status(code).location(target)
        if self._request.method != "HEAD":
            self._body = f"{self._status_message}. Redirecting to {self.get('Location')}"
        return self.end()

    def send_status(self, code: int) -> Response:
        self._ensure_sendable()
        return self.status(code).end()
