"""Access log with latency for the REST API."""
from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from staunton_chat.api.middleware.correlation_id import current_request_id

logger = logging.getLogger(__name__)

# Health endpoints: logged only when they fail.
QUIET_PATHS = frozenset({"/healthz", "/readyz"})


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        if request.url.path in QUIET_PATHS and response.status_code < 400:
            return response
        logger.info(
            "%s %s -> %d in %.1fms [rid=%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            current_request_id(),
        )
        return response
