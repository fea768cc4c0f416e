"""Request id propagation for the Staunton chat API.

The id comes from the caller's ``X-Request-ID`` header when it looks sane,
otherwise a fresh one is generated. It is echoed back on the response and
exposed to log lines through ``current_request_id()``.
"""
from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

_request_id: ContextVar[str] = ContextVar("staunton_request_id", default="-")


def current_request_id() -> str:
    return _request_id.get()


def _accept(raw: str | None) -> str:
    if raw and len(raw) <= MAX_REQUEST_ID_LENGTH and raw.isprintable():
        return raw
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = _accept(request.headers.get(REQUEST_ID_HEADER))
        token = _request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
