"""
Processor chains: an ordered list of wrapped handlers guarded by one predicate.
The router walks its chains in registration order and runs those that match.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from lambda_router.core.errors import RoutingError
from lambda_router.core.handlers import NEXT_ROUTE, NextCallback, WrappedProcessor
from lambda_router.core.matching import PathPattern, compile_path, decode_param

if TYPE_CHECKING:
    from lambda_router.core.request import Request
    from lambda_router.core.responses import Response
    from lambda_router.core.routing import Router

logger = logging.getLogger(__name__)


def _is_next_route(err: Any) -> bool:
    return isinstance(err, str) and err == NEXT_ROUTE


@runtime_checkable
class RequestMatchingProcessorChain(Protocol):
    """What the router needs from each registered entry."""

    def matches(self, req: Request) -> bool:
        ...

    def run(self, err: Any, req: Request, resp: Response, done: NextCallback) -> None:
        ...


class ProcessorChain:
    """Runs its handlers in order, threading the error through each `next_`."""

    def __init__(self, processors: list[WrappedProcessor]) -> None:
        self._processors = list(processors)

    def run(self, err: Any, req: Request, resp: Response, done: NextCallback) -> None:
        try:
            sub_request = self._make_sub_request(req)
        except RoutingError:
            raise
        except Exception as exc:
            done(exc)
            return

        def finish(err: Any = None) -> None:
            if err is None or _is_next_route(err):
                done()
            else:
                done(err)

        run: NextCallback = finish
        for rp in reversed(self._processors):
            run = self._link(rp, sub_request, resp, run, done)
        run(err)

    @staticmethod
    def _link(
        rp: WrappedProcessor,
        req: Request,
        resp: Response,
        next_: NextCallback,
        done: NextCallback,
    ) -> NextCallback:
        def step(err: Any = None) -> None:
            if _is_next_route(err):
                done()
                return
            try:
                rp(err, req, resp, next_)
            except RoutingError:
                raise
            except Exception as exc:
                logger.debug("Handler %s raised %r", getattr(rp, "__name__", rp), exc)
                next_(exc)

        return step

    def _make_sub_request(self, req: Request) -> Request:
        """Extension point: subclasses derive a request with their own params / baseUrl."""
        return req


class MatchAllProcessorChain(ProcessorChain):
    """Plain middleware: runs for every request."""

    def matches(self, req: Request) -> bool:
        return True


class RouteMatchingProcessorChain(ProcessorChain):
    """Runs when the method (if any) and the full path pattern match."""

    def __init__(
        self,
        processors: list[WrappedProcessor],
        path: PathPattern,
        *,
        case_sensitive: bool = False,
        method: str | None = None,
    ) -> None:
        super().__init__(processors)
        self._method = method.upper() if method else None
        self._matcher = compile_path(path, case_sensitive=case_sensitive)

    def matches(self, req: Request) -> bool:
        if self._method is not None and req.method != self._method:
            return False
        return self._matcher.test(req.path)

    def _make_params(self, path: str) -> dict[str, str]:
        params: dict[str, str] = {}
        m = self._matcher.match(path)
        if m is None:
            return params
        for key, value in zip(self._matcher.keys, m.groups()):
            if value:
                params[str(key.name)] = decode_param(value)
        return params

    def _make_sub_request(self, req: Request) -> Request:
        return req.make_sub_request("", self._make_params(req.path))


class SubRouterProcessorChain:
    """
    Mounts a nested router at a path prefix. The prefix is matched with the
    parent's case sensitivity; the nested router's own routes keep theirs.
    """

    def __init__(self, path: PathPattern, router: Router, *, case_sensitive: bool = False) -> None:
        self._matcher = compile_path(path, case_sensitive=case_sensitive, strict=False, end=False)
        self._router = router

    def matches(self, req: Request) -> bool:
        return self._matcher.test(req.path)

    def run(self, err: Any, req: Request, resp: Response, done: NextCallback) -> None:
        m = self._matcher.match(req.path)
        if m is None:
            raise RoutingError(
                f'This subrouter does not match URL "{req.path}": {self._matcher.regex.pattern}'
            )
        base_url = m.group(0).removesuffix("/")
        sub_request = req.make_sub_request(base_url)
        self._router.handle(err, sub_request, resp, done)
