"""
Server configuration resolved from the environment.

Resolution is two steps: an optional .env file is loaded first (failure is
only a warning), then SERVER_PORT is read from the environment. A missing
port is fatal.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import MutableMapping, Optional, Union

from dotenv import dotenv_values

from ..errors import ConfigurationError, MissingConfiguration
from ..logsink import LogSink, LoggingSink, SERVER_TAG, SERVER_WARNING_TAG

SERVER_PORT_VAR = "SERVER_PORT"
LISTEN_HOST = "0.0.0.0"
DEFAULT_ENV_FILE = ".env"


@dataclass(frozen=True)
class ServerConfig:
    """Resolved runtime configuration."""

    server_port: str

    @property
    def host(self) -> str:
        return LISTEN_HOST

    @property
    def port(self) -> int:
        return int(self.server_port)

    @property
    def address(self) -> str:
        return f"{LISTEN_HOST}:{self.server_port}"


def load_env_file(
    path: Union[str, Path],
    environ: MutableMapping[str, str],
    sink: LogSink,
) -> bool:
    """
    Load variables from an env file into ``environ`` without overriding
    values that are already set.

    Returns:
        True if the file was read, False if it was missing or unreadable
    """
    path = Path(path)
    if not path.is_file():
        sink.log(SERVER_WARNING_TAG, f'Could not load env file "{path}": file not found')
        return False

    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        sink.log(SERVER_WARNING_TAG, f'Could not load env file "{path}": {e}')
        return False

    for key, value in values.items():
        if value is not None and key not in environ:
            environ[key] = value
    return True


def resolve_config(
    environ: Optional[MutableMapping[str, str]] = None,
    env_file: Optional[Union[str, Path]] = DEFAULT_ENV_FILE,
    sink: Optional[LogSink] = None,
) -> ServerConfig:
    """
    Resolve the server configuration.

    Args:
        environ: Environment mapping (defaults to os.environ)
        env_file: Optional env file loaded before the lookup; None skips it
        sink: Log sink for progress and warnings

    Returns:
        ServerConfig with the validated port

    Raises:
        MissingConfiguration: If SERVER_PORT is not defined anywhere
        ConfigurationError: If SERVER_PORT is not a valid TCP port
    """
    environ = os.environ if environ is None else environ
    sink = sink or LoggingSink()

    sink.log(SERVER_TAG, f'Retrieving value of "{SERVER_PORT_VAR}"...')
    if env_file is not None:
        load_env_file(env_file, environ, sink)

    server_port = environ.get(SERVER_PORT_VAR, "").strip()
    if not server_port:
        raise MissingConfiguration(SERVER_PORT_VAR)

    try:
        port = int(server_port)
    except ValueError:
        raise ConfigurationError(f"{SERVER_PORT_VAR} must be a valid integer, got {server_port!r}")
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"{SERVER_PORT_VAR} must be between 0 and 65535, got {port}")

    return ServerConfig(server_port=server_port)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure logging for a server process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(relativeCreated)5dms %(name)s:%(levelname)s:%(message)s'
    )
    # The request logging layer replaces uvicorn's access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logging.getLogger("api_scaffold")
