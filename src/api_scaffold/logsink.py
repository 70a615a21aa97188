"""
Log sink used by the lifecycle manager and the request logging layer.

The sink is a write-only collaborator with a single operation,
``log(tag, message)``. It is passed in explicitly so tests can capture
the lines instead of reading a process-wide logger.
"""

import logging
from typing import Optional, Protocol

SERVER_TAG = "server"
SERVER_WARNING_TAG = "server [warning]"
SERVER_FATAL_TAG = "server [fatal]"


class LogSink(Protocol):
    def log(self, tag: str, message: str) -> None:
        ...


class LoggingSink:
    """LogSink that forwards every line to the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("api_scaffold.requests")

    def log(self, tag: str, message: str) -> None:
        self.logger.info(f"{tag} {message}")
