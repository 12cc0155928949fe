"""Request built from a Lambda event (API Gateway or Application Load Balancer)."""
from __future__ import annotations

import json
import logging
import re
import weakref
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping
from urllib.parse import unquote

from starlette.datastructures import ImmutableMultiDict
from starlette.requests import cookie_parser

from lambda_router.core.config import TRUST_PROXY
from lambda_router.core.events import (
    EventSource,
    HandlerContext,
    RequestEvent,
    detect_event_source,
    event_body,
    event_headers,
    request_context,
)
from lambda_router.core.query import QueryValue, build_raw_query, parse_query

if TYPE_CHECKING:
    from lambda_router.core.app import Application
    from lambda_router.log import Logger

logger = logging.getLogger(__name__)

_PORT = re.compile(r":[0-9]*$")


@dataclass
class _SharedState:
    """State every sub-request shares with the request it was derived from."""

    headers: ImmutableMultiDict
    query: dict[str, QueryValue]
    cookies: dict[str, Any]
    body: Any


def _header_key(name: str) -> str:
    key = name.lower()
    return "referer" if key == "referrer" else key


def _parse_headers(event: RequestEvent) -> ImmutableMultiDict:
    items: list[tuple[str, str]] = []
    for name, values in event_headers(event).items():
        key = _header_key(name)
        items.extend((key, v) for v in values)
    return ImmutableMultiDict(items)


def _decode_cookie_value(value: str) -> str:
    if "%" not in value:
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def _parse_cookies(header: str | None) -> dict[str, Any]:
    """Cookie values are percent-decoded; `j:{...}` values holding valid JSON are parsed."""
    if not header:
        return {}
    cookies: dict[str, Any] = {}
    for name, raw in cookie_parser(header).items():
        value: Any = _decode_cookie_value(raw)
        if value.startswith("j:"):
            try:
                value = json.loads(value[2:])
            except ValueError:
                pass
        cookies[name] = value
    return cookies


def _content_type_essence(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


class Request:
    """
    Request passed to every handler.

    The top-level request is built from the event. Each route and each mounted
    router sees a sub-request derived from its parent via `make_sub_request`:
    sub-requests share headers, query, cookies and body with their parent but
    own `url`, `path`, `base_url` and `params`.
    """

    SOURCE_ALB = EventSource.ALB
    SOURCE_APIGW = EventSource.APIGW

    def __init__(
        self,
        app: Application,
        event_or_parent: RequestEvent | Request,
        context: HandlerContext | None = None,
        base_url: str = "",
        params: Mapping[str, str] | None = None,
    ) -> None:
        self.app = app
        self._event: RequestEvent = (
            event_or_parent._event if isinstance(event_or_parent, Request) else event_or_parent
        )
        self.method: str = (self._event.get("httpMethod") or "").upper()
        self.event_source_type: EventSource = detect_event_source(self._event)
        self.request_context: dict[str, Any] = request_context(self._event)
        self._params: Mapping[str, str] = MappingProxyType(dict(params or {}))

        if isinstance(event_or_parent, Request):
            parent = event_or_parent
            self._parent: weakref.ref[Request] | None = weakref.ref(parent)
            self._shared = parent._shared
            url = parent.url[len(base_url):]
            self.base_url = parent.base_url + base_url
            self._original_url = parent.original_url
            self.context = parent.context
            self.hostname = parent.hostname
            self.ip = parent.ip
            self.protocol = parent.protocol
            self.log: Logger = parent.log
        else:
            event = event_or_parent
            self._parent = None
            raw_query = build_raw_query(
                event.get("multiValueQueryStringParameters"),
                event.get("queryStringParameters"),
            )
            url = f"{event.get('path') or ''}?{raw_query}"
            self.base_url = base_url
            self._original_url = url
            self.context = context
            headers = _parse_headers(event)
            self._shared = _SharedState(
                headers=headers,
                query=parse_query(raw_query),
                cookies=_parse_cookies(headers.get("cookie")),
                body=None,
            )
            self.hostname = self._parse_hostname()
            self.ip = self._parse_ip()
            self.protocol = self._parse_protocol()
            self._shared.body = self._parse_body(event_body(event))
            self.log = app.create_logger(self)

        self._url = url
        self._path = url.split("?")[0]

    def make_sub_request(self, base_url: str, params: Mapping[str, str] | None = None) -> Request:
        return Request(self.app, self, base_url=base_url, params=params)

    # URL

    @property
    def url(self) -> str:
        """Part of the URL below `base_url` (includes the raw query string)."""
        return self._url

    @url.setter
    def url(self, url: str) -> None:
        url = url or ""
        parent = self._parent() if self._parent is not None else None
        if parent is not None:
            # keep the parent's prefix, swap in the new suffix
            index = len(parent.url) - len(self._url)
            parent.url = parent.url[:index] + url
        self._url = url
        self._path = url.split("?")[0]

    @property
    def path(self) -> str:
        return self._path

    @property
    def original_url(self) -> str:
        return self._original_url

    @property
    def params(self) -> Mapping[str, str]:
        return self._params

    # Shared state

    @property
    def headers(self) -> ImmutableMultiDict:
        """Headers keyed by lowercase name (`referrer` is stored as `referer`)."""
        return self._shared.headers

    @property
    def query(self) -> dict[str, QueryValue]:
        return self._shared.query

    @property
    def cookies(self) -> dict[str, Any]:
        return self._shared.cookies

    @property
    def body(self) -> Any:
        return self._shared.body

    @body.setter
    def body(self, body: Any) -> None:
        self._shared.body = body

    @property
    def event(self) -> RequestEvent:
        return self._event

    # Headers

    def get(self, name: str) -> str | None:
        """Last value of the header, case-insensitive; `referrer` and `referer` are interchangeable."""
        return self.headers.get(_header_key(name))

    def header(self, name: str) -> str | None:
        return self.get(name)

    def header_all(self, name: str) -> list[str] | None:
        values = self.headers.getlist(_header_key(name))
        return values or None

    @property
    def secure(self) -> bool:
        return self.protocol == "https"

    @property
    def xhr(self) -> bool:
        return self.get("X-Requested-With") == "XMLHttpRequest"

    def is_alb(self) -> bool:
        return self.event_source_type is EventSource.ALB

    def is_apigw(self) -> bool:
        return self.event_source_type is EventSource.APIGW

    def _trust_proxy(self) -> bool:
        return self.app.is_enabled(TRUST_PROXY)

    def _parse_hostname(self) -> str | None:
        host = self.get("Host") or ""
        if self._trust_proxy():
            host = self.get("X-Forwarded-Host") or host
        host = _PORT.sub("", host)
        return host or None

    def _parse_ip(self) -> str | None:
        identity = self.request_context.get("identity") or {}
        source_ip = identity.get("sourceIp")
        if source_ip:
            return source_ip
        if not self._trust_proxy():
            return None
        forwarded = self.get("X-Forwarded-For")
        if not forwarded:
            return None
        return forwarded.split(",")[0].strip() or None

    def _parse_protocol(self) -> str | None:
        if self.is_apigw():
            return "https"
        if self._trust_proxy():
            proto = self.get("X-Forwarded-Proto")
            if proto:
                return proto.lower()
        return None

    def _parse_body(self, body: str | None) -> Any:
        if not body:
            return None
        if _content_type_essence(self.get("Content-Type")) == "application/json":
            try:
                return json.loads(body)
            except ValueError:
                logger.debug("Request body is not valid JSON; leaving body empty")
                return None
        return body

    def __repr__(self) -> str:
        return f"<Request {self.method} {self._url!r} base_url={self.base_url!r}>"
