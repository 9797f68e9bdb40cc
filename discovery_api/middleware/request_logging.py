"""
Request logging middleware with per-request trace ids.
"""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its trace id, status and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse the id set by a fronting proxy so log lines can be correlated
        trace_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} -> EXCEPTION after {elapsed_ms}ms: {exc}",
                exc_info=True,
            )
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(level, f"[{trace_id}] {request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")

        response.headers[TRACE_HEADER] = trace_id
        return response
