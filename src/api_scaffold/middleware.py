"""
Middleware chain wrapped around the dispatch table.

Layers, outermost first:
    1. CORS (optional, caller supplied CorsPolicy)
    2. Request logging (optional, one sink line per request)
    3. Error envelope (always, turns escaped exceptions into the generic 500)

Also installs the exception handlers that keep error responses in the
envelope shape.
"""

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .logsink import LogSink, LoggingSink
from .responses import Envelope, bad_request, internal_server_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorsPolicy:
    """Cross-origin policy applied to every response."""

    allow_origins: Sequence[str] = ()
    allow_methods: Sequence[str] = ("GET",)
    allow_headers: Sequence[str] = ()
    allow_credentials: bool = False
    expose_headers: Sequence[str] = ()
    max_age: int = 600

    @classmethod
    def permissive(cls) -> "CorsPolicy":
        """Allow any origin, method and header."""
        return cls(allow_origins=("*",), allow_methods=("*",), allow_headers=("*",))

    def middleware_options(self) -> Dict[str, Any]:
        return {
            "allow_origins": list(self.allow_origins),
            "allow_methods": list(self.allow_methods),
            "allow_headers": list(self.allow_headers),
            "allow_credentials": self.allow_credentials,
            "expose_headers": list(self.expose_headers),
            "max_age": self.max_age,
        }


def describe_status(status_code: int) -> str:
    """Format a status code the way log lines show it, e.g. "200 OK"."""
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)


def request_tag(request: Request) -> str:
    uri = request.url.path
    if request.url.query:
        uri = f"{uri}?{request.url.query}"
    return f"{request.method} {uri}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Emit one sink line per request once the inner chain has produced the
    final status. The response is forwarded untouched.
    """

    def __init__(self, app, sink: Optional[LogSink] = None):
        super().__init__(app)
        self.sink = sink or LoggingSink()

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        self.sink.log(request_tag(request), describe_status(response.status_code))
        return response


class ErrorEnvelopeMiddleware(BaseHTTPMiddleware):
    """
    Answer exceptions that escape the endpoint (failing dependencies, body
    parsing crashes) with the generic 500 envelope, inside the CORS and
    logging layers.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error for {request_tag(request)}: {e}")
            return internal_server_error().render()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return bad_request({
        "feedback": "Invalid request",
        "errors": jsonable_encoder(exc.errors()),
    }).render()


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Routing misses (404, 405) keep their status but share the envelope body
    return Envelope(exc.status_code, {"feedback": exc.detail}).render(headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error for {request_tag(request)}: {exc}")
    return internal_server_error().render()


def install_exception_handlers(app: FastAPI) -> None:
    """Render validation, HTTP and unexpected errors as envelopes."""
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


def apply_middleware(
    app: FastAPI,
    cors: Optional[CorsPolicy] = None,
    sink: Optional[LogSink] = None,
    log_requests: bool = True,
) -> FastAPI:
    """
    Wrap the app with the middleware chain.

    Starlette runs the most recently added middleware outermost, so the
    error layer is added first and CORS last.
    """
    app.add_middleware(ErrorEnvelopeMiddleware)
    if log_requests:
        app.add_middleware(RequestLogMiddleware, sink=sink)
    if cors is not None:
        app.add_middleware(CORSMiddleware, **cors.middleware_options())
    return app
