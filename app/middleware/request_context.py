"""
RequestContext Middleware - request id and timing for every request.

Adds to request.state:
- request_id: echoed from an incoming X-Request-ID or a fresh UUID

The id is bound into structlog's context variables so every log line emitted
while handling the request carries it, and returned in the X-Request-ID header.
"""

import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import get_logger, log_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH:
            request_id = incoming
        else:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
