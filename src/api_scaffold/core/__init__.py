# Configuration shared by the server and the example runner
from .config import (
    ServerConfig,
    resolve_config,
    load_env_file,
    setup_logging,
    SERVER_PORT_VAR,
    LISTEN_HOST,
)

__all__ = [
    "ServerConfig",
    "resolve_config",
    "load_env_file",
    "setup_logging",
    "SERVER_PORT_VAR",
    "LISTEN_HOST",
]
