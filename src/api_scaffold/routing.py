"""
Route table assembly.

An ordered list of routes is folded into a read-only dispatch table keyed by
(path, method). Registration is a plain insertion fold: when two entries
share a path and method, the later one wins and no error is raised.
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware import install_exception_handlers
from .responses import Envelope, internal_server_error

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
RouteKey = Tuple[str, str]


@dataclass(frozen=True)
class Route:
    """A handler registered for a path and one or more HTTP methods."""

    path: str
    handler: Handler
    methods: Tuple[str, ...] = ("GET",)

    def keys(self) -> Iterator[RouteKey]:
        for method in self.methods:
            yield (self.path, method.upper())


def get(path: str, handler: Handler) -> Route:
    return Route(path, handler, ("GET",))


def post(path: str, handler: Handler) -> Route:
    return Route(path, handler, ("POST",))


def put(path: str, handler: Handler) -> Route:
    return Route(path, handler, ("PUT",))


def patch(path: str, handler: Handler) -> Route:
    return Route(path, handler, ("PATCH",))


def delete(path: str, handler: Handler) -> Route:
    return Route(path, handler, ("DELETE",))


RouteLike = Union[Route, Tuple[str, Handler]]


class DispatchTable:
    """Immutable mapping from (path, method) to the registered route."""

    def __init__(self, entries: Dict[RouteKey, Route]):
        self._entries = MappingProxyType(dict(entries))

    @property
    def entries(self) -> MappingProxyType:
        return self._entries

    def lookup(self, path: str, method: str = "GET") -> Optional[Handler]:
        route = self._entries.get((path, method.upper()))
        return route.handler if route else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RouteKey]:
        return iter(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


def _as_route(entry: RouteLike) -> Route:
    if isinstance(entry, Route):
        return entry
    path, handler = entry
    return Route(path, handler)


def assemble_routes(routes: Iterable[RouteLike]) -> DispatchTable:
    """
    Fold routes into a dispatch table in input order.

    Args:
        routes: Route objects or (path, handler) pairs (GET)

    Returns:
        DispatchTable where the last registration of a (path, method) wins
    """
    entries: Dict[RouteKey, Route] = {}
    for entry in routes:
        route = _as_route(entry)
        for key in route.keys():
            if key in entries:
                logger.debug(f"Route {key[1]} {key[0]} registered again, replacing previous handler")
            entries[key] = route
    return DispatchTable(entries)


def _to_response(result: Any, name: str):
    if isinstance(result, Envelope):
        return result.render()
    logger.error(f"Handler {name} returned {type(result).__name__} instead of an Envelope")
    return internal_server_error().render()


def adapt_handler(handler: Handler) -> Handler:
    """
    Wrap a handler as a FastAPI endpoint.

    The wrapper keeps the handler's signature so FastAPI still injects path
    parameters, bodies and dependencies. HTTP exceptions pass through; any
    other failure is logged and answered with the generic 500 envelope.
    """
    name = getattr(handler, "__qualname__", repr(handler))

    if inspect.iscoroutinefunction(handler):
        @functools.wraps(handler)
        async def endpoint(*args, **kwargs):
            try:
                result = await handler(*args, **kwargs)
            except StarletteHTTPException:
                raise
            except Exception as e:
                logger.exception(f"Unhandled error in handler {name}: {e}")
                return internal_server_error().render()
            return _to_response(result, name)
    else:
        @functools.wraps(handler)
        def endpoint(*args, **kwargs):
            try:
                result = handler(*args, **kwargs)
            except StarletteHTTPException:
                raise
            except Exception as e:
                logger.exception(f"Unhandled error in handler {name}: {e}")
                return internal_server_error().render()
            return _to_response(result, name)

    return endpoint


def build_app(table: DispatchTable, title: str = "api-scaffold") -> FastAPI:
    """Create a FastAPI application serving every entry of the table."""
    app = FastAPI(title=title, docs_url=None, redoc_url=None, openapi_url=None)
    for (path, method), route in table.entries.items():
        app.add_api_route(
            path,
            adapt_handler(route.handler),
            methods=[method],
            response_model=None,
            name=f"{method} {path}",
        )
    install_exception_handlers(app)
    return app
