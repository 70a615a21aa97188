# Minimal JSON API server scaffolding on FastAPI and uvicorn
from .responses import (
    Envelope,
    MakeResponse,
    ok,
    bad_request,
    unauthorized,
    internal_server_error,
)
from .routing import Route, DispatchTable, assemble_routes, get, post, put, patch, delete
from .middleware import CorsPolicy, RequestLogMiddleware, apply_middleware
from .logsink import LogSink, LoggingSink
from .errors import (
    ServerError,
    ConfigurationError,
    MissingConfiguration,
    BindError,
    ServeError,
    ServerAlreadyConsumed,
)
from .server import Server, ServerState, start

__all__ = [
    # Responses
    "Envelope",
    "MakeResponse",
    "ok",
    "bad_request",
    "unauthorized",
    "internal_server_error",
    # Routing
    "Route",
    "DispatchTable",
    "assemble_routes",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    # Middleware
    "CorsPolicy",
    "RequestLogMiddleware",
    "apply_middleware",
    # Logging
    "LogSink",
    "LoggingSink",
    # Errors
    "ServerError",
    "ConfigurationError",
    "MissingConfiguration",
    "BindError",
    "ServeError",
    "ServerAlreadyConsumed",
    # Server
    "Server",
    "ServerState",
    "start",
]
