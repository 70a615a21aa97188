"""
Response envelope.

Handlers answer with one of four semantic buckets: success, bad input,
unauthorized and internal failure. The internal failure body is fixed so
no caller detail reaches the client.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

INTERNAL_ERROR_FEEDBACK = "Internal server error"


@dataclass(frozen=True)
class Envelope:
    """A (status, JSON body) pair produced for one request."""

    status_code: int
    body: Any

    def render(self, headers: Optional[Mapping[str, str]] = None) -> JSONResponse:
        return JSONResponse(
            content=jsonable_encoder(self.body),
            status_code=self.status_code,
            headers=dict(headers) if headers else None,
        )


def ok(body: Any) -> Envelope:
    return Envelope(200, body)


def bad_request(body: Any) -> Envelope:
    return Envelope(400, body)


def unauthorized(body: Any) -> Envelope:
    return Envelope(401, body)


def internal_server_error() -> Envelope:
    return Envelope(500, {"feedback": INTERNAL_ERROR_FEEDBACK})


class MakeResponse:
    """Namespace grouping the four envelope constructors."""

    ok = staticmethod(ok)
    bad_request = staticmethod(bad_request)
    unauthorized = staticmethod(unauthorized)
    internal_server_error = staticmethod(internal_server_error)
