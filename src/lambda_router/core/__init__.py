from lambda_router.core.app import Application
from lambda_router.core.config import Settings
from lambda_router.core.errors import (
    HandlerRejectedError,
    HeadersAlreadySentError,
    LambdaRouterError,
    ParamDecodeError,
    RoutingError,
)
from lambda_router.core.events import EventSource, HandlerContext, RequestEvent, ResponseResult
from lambda_router.core.handlers import NEXT_ROUTE, Processor, error_handler, middleware
from lambda_router.core.request import Request
from lambda_router.core.responses import Response
from lambda_router.core.routing import Route, Router

__all__ = [
    "Application",
    "Settings",
    "Router",
    "Route",
    "Request",
    "Response",
    "EventSource",
    "HandlerContext",
    "RequestEvent",
    "ResponseResult",
    "NEXT_ROUTE",
    "Processor",
    "middleware",
    "error_handler",
    "LambdaRouterError",
    "HeadersAlreadySentError",
    "ParamDecodeError",
    "HandlerRejectedError",
    "RoutingError",
]
