"""Router: ordered processor chains, plus `Route` for chaining handlers on one path."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lambda_router.core.chains import (
    MatchAllProcessorChain,
    RequestMatchingProcessorChain,
    RouteMatchingProcessorChain,
    SubRouterProcessorChain,
)
from lambda_router.core.handlers import (
    NextCallback,
    error_handler,
    flatten,
    wrap_processor,
    wrap_processors,
)
from lambda_router.core.matching import PathPattern

if TYPE_CHECKING:
    from lambda_router.core.request import Request
    from lambda_router.core.responses import Response


@dataclass
class RouterOptions:
    """Read when a route is registered; changing it affects later registrations only."""

    case_sensitive: bool = False


class Router:
    """
    Express-style router. Middleware, routes, error handlers and nested
    routers are tried in the order they were registered.

        router = Router()
        router.get("/users/:id", show_user)
        app.add_sub_router("/api", router)
    """

    def __init__(self, case_sensitive: bool = False) -> None:
        self.router_options = RouterOptions(case_sensitive=case_sensitive)
        self._processors: list[RequestMatchingProcessorChain] = []

    def handle(self, original_err: Any, req: Request, resp: Response, done: NextCallback) -> None:
        """Run every matching chain in turn; `done(err)` once none is left."""
        processors = self._processors
        index = 0

        def next_(err: Any = None) -> None:
            nonlocal index
            while index < len(processors):
                processor = processors[index]
                index += 1
                if processor.matches(req):
                    processor.run(err, req, resp, next_)
                    return
            done(err)

        next_(original_err)

    # Registration

    def use(self, *handlers: Any) -> Router:
        """Middleware for every request. Each handler gets a chain of its own."""
        for handler in flatten(handlers):
            self._processors.append(MatchAllProcessorChain([wrap_processor(handler)]))
        return self

    def use_error_handler(self, *handlers: Any) -> Router:
        """Handlers called as `fn(err, req, resp, next_)` while an error is in flight."""
        return self.use([error_handler(h) for h in flatten(handlers)])

    def mount(self, method: str | None, path: PathPattern, *handlers: Any) -> Router:
        """Handlers for `path`; `method=None` matches any method."""
        self._processors.append(
            RouteMatchingProcessorChain(
                wrap_processors(flatten(handlers)),
                path,
                case_sensitive=self.router_options.case_sensitive,
                method=method,
            )
        )
        return self

    def all(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount(None, path, *handlers)

    def get(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("GET", path, *handlers)

    def post(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("POST", path, *handlers)

    def put(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("PUT", path, *handlers)

    def delete(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("DELETE", path, *handlers)

    def patch(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("PATCH", path, *handlers)

    def options(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("OPTIONS", path, *handlers)

    def head(self, path: PathPattern, *handlers: Any) -> Router:
        return self.mount("HEAD", path, *handlers)

    def add_sub_router(self, path: PathPattern, router: Router) -> Router:
        """Mount `router` under `path`; its routes see paths relative to the mount point."""
        self._processors.append(
            SubRouterProcessorChain(path, router, case_sensitive=self.router_options.case_sensitive)
        )
        return self

    def route(self, path: PathPattern) -> Route:
        """`router.route('/book').get(show).post(update)`"""
        return Route(path, self)


class Route:
    """
    Handlers for a single path, registered through a child router mounted at
    that path. Each method returns the route, so calls can be chained.
    """

    def __init__(self, path: PathPattern, parent: Router) -> None:
        self.path = path
        self._router = Router(case_sensitive=parent.router_options.case_sensitive)
        parent.add_sub_router(path, self._router)

    def all(self, *handlers: Any) -> Route:
        self._router.all("/", *handlers)
        return self

    def get(self, *handlers: Any) -> Route:
        self._router.get("/", *handlers)
        return self

    def post(self, *handlers: Any) -> Route:
        self._router.post("/", *handlers)
        return self

    def put(self, *handlers: Any) -> Route:
        self._router.put("/", *handlers)
        return self

    def delete(self, *handlers: Any) -> Route:
        self._router.delete("/", *handlers)
        return self

    def patch(self, *handlers: Any) -> Route:
        self._router.patch("/", *handlers)
        return self

    def options(self, *handlers: Any) -> Route:
        self._router.options("/", *handlers)
        return self

    def head(self, *handlers: Any) -> Route:
        self._router.head("/", *handlers)
        return self
