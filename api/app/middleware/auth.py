# api/app/middleware/auth.py
"""
Request-level logging with a trace id.
The core auth is handled in dependencies.py via Depends().
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = request.headers.get(TRACE_HEADER) or uuid.uuid4().hex
        request.state.trace_id = trace_id

        t0 = time.monotonic()
        response = await call_next(request)
        elapsed = (time.monotonic() - t0) * 1000

        response.headers[TRACE_HEADER] = trace_id
        logger.info(
            "%s %s -> %d (%.0fms) trace=%s",
            request.method, request.url.path, response.status_code, elapsed, trace_id,
        )
        return response
