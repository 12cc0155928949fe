"""Errors raised by the router, the request and the response."""
from __future__ import annotations


class LambdaRouterError(Exception):
    """Base class for every error raised by lambda_router itself."""


class HeadersAlreadySentError(LambdaRouterError):
    """The response was already sent; headers and body can no longer change."""

    def __init__(self, message: str = "Can't set headers after they are sent.") -> None:
        super().__init__(message)


class ParamDecodeError(LambdaRouterError):
    """A path parameter contained malformed percent-encoding."""

    status = 400

    def __init__(self, value: str) -> None:
        super().__init__(f"Failed to decode param {value!r}")
        self.value = value


class HandlerRejectedError(LambdaRouterError):
    """An awaitable returned by a handler was cancelled before it finished."""

    def __init__(self, message: str = "Rejected promise") -> None:
        super().__init__(message)


class RoutingError(LambdaRouterError):
    """
    Mount table is inconsistent with the request being dispatched.
    Programmer error: never fed into the error-handler pipeline.
    """
