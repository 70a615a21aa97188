"""
Pytest configuration for api-scaffold tests.

Puts the src directory on the Python path and provides a capturing log
sink plus a helper that assembles an app the way Server.build does.
"""
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from api_scaffold.middleware import apply_middleware  # noqa: E402
from api_scaffold.routing import assemble_routes, build_app  # noqa: E402


class CapturingSink:
    """LogSink that keeps every (tag, message) pair."""

    def __init__(self):
        self.lines = []

    def log(self, tag, message):
        self.lines.append((tag, message))

    def tags(self):
        return [tag for tag, _ in self.lines]


@pytest.fixture
def sink():
    return CapturingSink()


@pytest.fixture
def make_app(sink):
    """Build routes + middleware without binding a socket."""
    def _make_app(routes, cors=None, log_requests=True):
        app = build_app(assemble_routes(routes))
        return apply_middleware(app, cors=cors, sink=sink, log_requests=log_requests)
    return _make_app
