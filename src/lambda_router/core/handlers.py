"""
Request processors: explicit middleware / error-handler tagging and wrapping
into the uniform (err, req, resp, next_) calling convention.
"""
from __future__ import annotations

import asyncio
import contextvars
import enum
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Union

from lambda_router.core.errors import HandlerRejectedError, LambdaRouterError, RoutingError

if TYPE_CHECKING:
    from lambda_router.core.request import Request
    from lambda_router.core.responses import Response

# Passed to `next_` instead of an error: skip the rest of the current route's handlers.
NEXT_ROUTE = "route"

NextCallback = Callable[..., None]
HandlerResult = Union[Awaitable[Any], None]
RequestProcessor = Callable[["Request", "Response", NextCallback], HandlerResult]
ErrorHandlingRequestProcessor = Callable[[Any, "Request", "Response", NextCallback], HandlerResult]
WrappedProcessor = Callable[[Any, "Request", "Response", NextCallback], None]

# Receives errors that escape a continuation scheduled from an awaitable handler.
unhandled_error_sink: contextvars.ContextVar[Callable[[BaseException], None]] = contextvars.ContextVar(
    "unhandled_error_sink"
)


class ProcessorKind(str, enum.Enum):
    MIDDLEWARE = "middleware"
    ERROR_HANDLER = "error_handler"


@dataclass(frozen=True)
class Processor:
    """A handler plus the role it was registered for."""

    fn: Callable[..., HandlerResult]
    kind: ProcessorKind = ProcessorKind.MIDDLEWARE

    def __call__(self, *args: Any) -> HandlerResult:
        return self.fn(*args)

    @property
    def handles_errors(self) -> bool:
        return self.kind is ProcessorKind.ERROR_HANDLER


AnyProcessor = Union[Processor, RequestProcessor]


def middleware(fn: RequestProcessor) -> Processor:
    """Tag `fn(req, resp, next_)` as middleware / route handler."""
    if isinstance(fn, Processor):
        return Processor(fn.fn, ProcessorKind.MIDDLEWARE)
    return Processor(fn, ProcessorKind.MIDDLEWARE)


def error_handler(fn: ErrorHandlingRequestProcessor) -> Processor:
    """Tag `fn(err, req, resp, next_)` as an error handler. Usable as a decorator."""
    if isinstance(fn, Processor):
        return Processor(fn.fn, ProcessorKind.ERROR_HANDLER)
    return Processor(fn, ProcessorKind.ERROR_HANDLER)


def flatten(handlers: Iterable[Any]) -> list[AnyProcessor]:
    """Handlers may be passed individually or in (nested) lists."""
    out: list[AnyProcessor] = []
    for h in handlers:
        if isinstance(h, (list, tuple)):
            out.extend(flatten(h))
        else:
            out.append(h)
    return out


def wrap_processor(processor: AnyProcessor) -> WrappedProcessor:
    """
    Normalize a handler to (err, req, resp, next_).

    Middleware given an error forwards it untouched; error handlers given no
    error call `next_()` without running. Awaitable results are scheduled on
    the running loop and a failure is fed into `next_`.
    """
    if isinstance(processor, Processor):
        fn, handles_errors = processor.fn, processor.handles_errors
    else:
        fn, handles_errors = processor, False
    if not callable(fn):
        raise TypeError(f"Request processors must be callable, got {fn!r}")

    if handles_errors:
        def wrapped(err: Any, req: Request, resp: Response, next_: NextCallback) -> None:
            if err is None:
                next_()
                return
            _settle(fn(err, req, resp, next_), next_)
    else:
        def wrapped(err: Any, req: Request, resp: Response, next_: NextCallback) -> None:
            if err is not None:
                next_(err)
                return
            _settle(fn(req, resp, next_), next_)

    wrapped.__name__ = getattr(fn, "__name__", wrapped.__name__)
    wrapped.__qualname__ = getattr(fn, "__qualname__", wrapped.__qualname__)
    return wrapped


def wrap_processors(processors: Iterable[AnyProcessor]) -> list[WrappedProcessor]:
    return [wrap_processor(p) for p in processors]


def _settle(result: HandlerResult, next_: NextCallback) -> None:
    """Attach the failure path of an awaitable handler result to `next_`."""
    if not inspect.isawaitable(result):
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(result):
            result.close()
        raise LambdaRouterError(
            "Handler returned an awaitable outside a running event loop; use Application.run_async()"
        ) from None
    future = asyncio.ensure_future(result, loop=loop)

    def _on_done(f: asyncio.Future) -> None:
        if f.cancelled():
            err: BaseException | None = HandlerRejectedError()
        else:
            err = f.exception()
        if err is None:
            return
        try:
            if isinstance(err, RoutingError):
                raise err
            next_(err)
        except Exception as exc:
            sink = unhandled_error_sink.get(None)
            if sink is None:
                raise
            sink(exc)

    future.add_done_callback(_on_done)
