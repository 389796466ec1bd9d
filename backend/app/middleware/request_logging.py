"""Request/response logging middleware."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all API requests and responses.

    Adds a request id to ``request.state`` and the ``X-Request-ID`` response
    header. Request bodies are never logged: login bodies carry provider
    access tokens.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.monotonic()
        method = request.method
        path = request.url.path

        logger.info("Request started | id=%s | method=%s | path=%s", request_id, method, path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.error(
                "Request failed | id=%s | method=%s | path=%s | duration=%dms | error=%s",
                request_id,
                method,
                path,
                duration_ms,
                type(e).__name__,
            )
            raise

        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            "Request completed | id=%s | method=%s | path=%s | status=%d | duration=%dms",
            request_id,
            method,
            path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-ID"] = request_id
        return response
