"""Application: a router plus settings, invoked once per Lambda event."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from lambda_router.core.config import CASE_SENSITIVE_ROUTING, LOG_LEVEL, Settings
from lambda_router.core.events import HandlerContext, RequestEvent, ResponseResult
from lambda_router.core.handlers import unhandled_error_sink
from lambda_router.core.matching import PathPattern
from lambda_router.core.request import Request
from lambda_router.core.responses import Response, ResponseCallback
from lambda_router.core.routing import Route, Router
from lambda_router.log import ConsoleLogger, Logger, LogLevel
from lambda_router.log.levels import validate_level

logger = logging.getLogger(__name__)

LoggerFactory = Callable[[Request], Logger]


def _remaining_time(context: HandlerContext | None) -> int:
    if context is None or not hasattr(context, "get_remaining_time_in_millis"):
        return 0
    return context.get_remaining_time_in_millis()


class Application:
    """
    Application. Register middleware, routes and routers on it, then hand it
    the events:

        app = Application()
        app.get("/hello/:name", hello)

        def handler(event, context):
            return app(event, context)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        log_level: LogLevel | None = None,
        logger_factory: LoggerFactory | None = None,
    ) -> None:
        self._settings = settings if settings is not None else Settings.from_env()
        self._router = Router(case_sensitive=self._settings.is_enabled(CASE_SENSITIVE_ROUTING))
        self.log_level: LogLevel = validate_level(log_level or self._settings.get(LOG_LEVEL) or "info")
        self._logger_factory = logger_factory or self._console_logger

    @property
    def router(self) -> Router:
        return self._router

    @property
    def settings(self) -> Settings:
        return self._settings

    # Settings

    def set_setting(self, name: str, value: Any) -> Application:
        self._settings.set(name, value)
        if name == CASE_SENSITIVE_ROUTING:
            self._router.router_options.case_sensitive = bool(value)
        return self

    def get_setting(self, name: str) -> Any:
        return self._settings.get(name)

    def is_enabled(self, name: str) -> bool:
        return self._settings.is_enabled(name)

    def enable(self, name: str) -> Application:
        return self.set_setting(name, True)

    def disable(self, name: str) -> Application:
        return self.set_setting(name, False)

    # Registration (delegated to the router)

    def use(self, *handlers: Any) -> Application:
        self._router.use(*handlers)
        return self

    def use_error_handler(self, *handlers: Any) -> Application:
        self._router.use_error_handler(*handlers)
        return self

    def mount(self, method: str | None, path: PathPattern, *handlers: Any) -> Application:
        self._router.mount(method, path, *handlers)
        return self

    def all(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount(None, path, *handlers)

    def get(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("GET", path, *handlers)

    def post(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("POST", path, *handlers)

    def put(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("PUT", path, *handlers)

    def delete(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("DELETE", path, *handlers)

    def patch(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("PATCH", path, *handlers)

    def options(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("OPTIONS", path, *handlers)

    def head(self, path: PathPattern, *handlers: Any) -> Application:
        return self.mount("HEAD", path, *handlers)

    def add_sub_router(self, path: PathPattern, router: Router) -> Application:
        self._router.add_sub_router(path, router)
        return self

    def route(self, path: PathPattern) -> Route:
        return self._router.route(path)

    def handle(self, err: Any, req: Request, resp: Response, done: Callable[..., None]) -> None:
        """Lets an application be mounted inside another router."""
        self._router.handle(err, req, resp, done)

    # Logging

    def create_logger(self, req: Request) -> Logger:
        """Per-request logger exposed as `req.log`."""
        return self._logger_factory(req)

    def _console_logger(self, req: Request) -> Logger:
        context = req.context
        return ConsoleLogger(
            interface=req.event_source_type.value,
            level=self.log_level,
            get_time_until_fn_timeout=lambda: _remaining_time(context),
        )

    # Invocation

    def run(self, event: RequestEvent, context: HandlerContext | None, callback: ResponseCallback) -> None:
        """Dispatch one event; `callback(result)` is called exactly once."""
        req = Request(self, event, context)
        resp = Response(self, req, callback)
        logger.debug("Dispatching %s %s (%s)", req.method, req.path, req.event_source_type.value)

        def finish(err: Any = None) -> None:
            if resp.headers_sent:
                if err is not None:
                    req.log.debug("Error after the response was sent", {"err": err})
                return
            if err is not None:
                req.log.error("Unhandled error while processing request", {"err": err})
            try:
                resp.send_status(500 if err is not None else 404)
            except Exception as exc:
                req.log.error("Could not send the last-resort response", {"err": exc})
                resp.abort(500)

        self._router.handle(None, req, resp, finish)

    async def run_async(self, event: RequestEvent, context: HandlerContext | None = None) -> ResponseResult:
        """Dispatch one event and wait for the response; needed when handlers are coroutines."""
        loop = asyncio.get_running_loop()
        result: asyncio.Future[ResponseResult] = loop.create_future()

        def callback(output: ResponseResult) -> None:
            if not result.done():
                result.set_result(output)

        def fail(exc: BaseException) -> None:
            if not result.done():
                result.set_exception(exc)

        token = unhandled_error_sink.set(fail)
        try:
            self.run(event, context, callback)
        finally:
            unhandled_error_sink.reset(token)
        return await result

    def __call__(self, event: RequestEvent, context: HandlerContext | None = None) -> ResponseResult:
        """Synchronous Lambda entry point: `handler = app`."""
        return asyncio.run(self.run_async(event, context))
