"""
lambda_router: Express-style routing for AWS Lambda behind API Gateway or an
Application Load Balancer. Register handlers on an Application and hand it events.
"""
from lambda_router.core import (
    NEXT_ROUTE,
    Application,
    EventSource,
    HandlerRejectedError,
    HeadersAlreadySentError,
    LambdaRouterError,
    ParamDecodeError,
    Processor,
    Request,
    Response,
    Route,
    Router,
    RoutingError,
    Settings,
    error_handler,
    middleware,
)
from lambda_router.log import ConsoleLogger, Logger

__all__ = [
    "Application",
    "Settings",
    "Router",
    "Route",
    "Request",
    "Response",
    "EventSource",
    "NEXT_ROUTE",
    "Processor",
    "middleware",
    "error_handler",
    "ConsoleLogger",
    "Logger",
    "LambdaRouterError",
    "HeadersAlreadySentError",
    "ParamDecodeError",
    "HandlerRejectedError",
    "RoutingError",
]
