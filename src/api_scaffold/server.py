"""
Server lifecycle: configure, assemble, bind, serve.

    Server.build(routes)   resolve SERVER_PORT, assemble routes and middleware,
                           bind 0.0.0.0:<port>
    server.run()           hand the listener and app to uvicorn until it stops

A Server is one-shot. run(), serve() and close() each consume it; a second
call raises ServerAlreadyConsumed. Every startup failure is fatal, nothing
is retried.
"""

import socket
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable, MutableMapping, Optional, Union

import uvicorn
from fastapi import FastAPI

from .core.config import DEFAULT_ENV_FILE, ServerConfig, resolve_config
from .errors import BindError, ServeError, ServerAlreadyConsumed, ServerError
from .logsink import LogSink, LoggingSink, SERVER_FATAL_TAG, SERVER_TAG
from .middleware import CorsPolicy, apply_middleware
from .routing import DispatchTable, RouteLike, assemble_routes, build_app

LISTEN_BACKLOG = 2048


class ServerState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    ASSEMBLED = "assembled"
    BOUND = "bound"
    SERVING = "serving"
    TERMINATED = "terminated"


def bind_listener(config: ServerConfig) -> socket.socket:
    """
    Bind and listen on the configured address.

    Raises:
        BindError: If the address is unavailable (port in use, no privilege)
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((config.host, config.port))
        sock.listen(LISTEN_BACKLOG)
    except OSError as e:
        sock.close()
        raise BindError(config.address, str(e)) from e
    return sock


class Server:
    """An assembled application with its bound listener, ready to serve once."""

    def __init__(
        self,
        app: FastAPI,
        table: DispatchTable,
        listener: socket.socket,
        config: ServerConfig,
        sink: LogSink,
        log_level: str = "info",
    ):
        self.app = app
        self.table = table
        self.config = config
        self.sink = sink
        self.log_level = log_level
        self._listener: Optional[socket.socket] = listener
        self.state = ServerState.BOUND

    @classmethod
    def build(
        cls,
        routes: Iterable[RouteLike],
        *,
        cors: Optional[CorsPolicy] = None,
        log_requests: bool = True,
        sink: Optional[LogSink] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        env_file: Optional[Union[str, Path]] = DEFAULT_ENV_FILE,
        log_level: str = "info",
        title: str = "api-scaffold",
    ) -> "Server":
        """
        Configure, assemble and bind a server.

        Args:
            routes: Ordered Route objects or (path, handler) pairs
            cors: CORS policy; None adds no CORS headers
            log_requests: Install the request logging layer
            sink: Log sink for lifecycle and request lines
            environ: Environment mapping (defaults to os.environ)
            env_file: Optional env file loaded before the lookup
            log_level: uvicorn log level
            title: FastAPI application title

        Raises:
            MissingConfiguration: SERVER_PORT is not defined (nothing is bound)
            ConfigurationError: SERVER_PORT is not a valid port
            BindError: The listener could not be acquired
        """
        sink = sink or LoggingSink()
        config = resolve_config(environ=environ, env_file=env_file, sink=sink)

        table = assemble_routes(routes)
        app = apply_middleware(build_app(table, title=title), cors=cors, sink=sink, log_requests=log_requests)

        listener = bind_listener(config)
        return cls(app, table, listener, config, sink, log_level=log_level)

    @property
    def address(self) -> str:
        return self.config.address

    def _take_listener(self) -> socket.socket:
        if self.state is not ServerState.BOUND or self._listener is None:
            raise ServerAlreadyConsumed(f"Server on {self.address} was already {self.state.value}")
        listener, self._listener = self._listener, None
        return listener

    def _uvicorn_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.log_level,
            access_log=False,  # replaced by the request logging layer
            http="h11",
            ws="none",
            lifespan="on",
        )
        return uvicorn.Server(config)

    def _started(self) -> uvicorn.Server:
        self.state = ServerState.SERVING
        self.sink.log(SERVER_TAG, f'Starting server on port "{self.config.server_port}"')
        return self._uvicorn_server()

    def _finished(self, listener: socket.socket) -> None:
        listener.close()
        self.state = ServerState.TERMINATED

    def run(self) -> None:
        """
        Serve until uvicorn stops. Blocks the calling thread.

        Raises:
            ServeError: If the serve loop fails or never starts
            ServerAlreadyConsumed: If this server was already run or closed
        """
        listener = self._take_listener()
        uv = self._started()
        try:
            uv.run(sockets=[listener])
        except Exception as e:
            raise ServeError(f"Server failed while serving on {self.address}: {e}") from e
        finally:
            self._finished(listener)
        if not uv.started:
            raise ServeError(f"Server failed to start on {self.address}")

    async def serve(self) -> None:
        """Same as run(), inside an already running event loop."""
        listener = self._take_listener()
        uv = self._started()
        try:
            await uv.serve(sockets=[listener])
        except Exception as e:
            raise ServeError(f"Server failed while serving on {self.address}: {e}") from e
        finally:
            self._finished(listener)
        if not uv.started:
            raise ServeError(f"Server failed to start on {self.address}")

    def close(self) -> None:
        """Release the listener without serving."""
        self._finished(self._take_listener())


def start(
    routes: Iterable[RouteLike],
    *,
    cors: Optional[CorsPolicy] = None,
    log_requests: bool = True,
    sink: Optional[LogSink] = None,
    environ: Optional[MutableMapping[str, str]] = None,
    env_file: Optional[Union[str, Path]] = DEFAULT_ENV_FILE,
    log_level: str = "info",
) -> None:
    """Build and run a server, exiting the process with status 1 on failure."""
    sink = sink or LoggingSink()
    try:
        server = Server.build(
            routes,
            cors=cors,
            log_requests=log_requests,
            sink=sink,
            environ=environ,
            env_file=env_file,
            log_level=log_level,
        )
        server.run()
    except ServerError as e:
        sink.log(SERVER_FATAL_TAG, str(e))
        sys.exit(1)
