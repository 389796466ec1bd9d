"""Error handler middleware with PII redaction."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.services.error_logging_service import error_logging_service

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for handling uncaught exceptions.

    - Logs errors with PII redaction (tokens, emails)
    - Returns ``{"error": ...}`` with status 500; stack traces never reach clients
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle request and catch any uncaught exceptions."""
        try:
            return await call_next(request)

        except Exception as exc:
            context = {
                "method": request.method,
                "path": request.url.path,
                "request_id": getattr(request.state, "request_id", None),
            }
            error_logging_service.log_error(logger=logger, error=exc, context=context)

            content = {"error": "Internal server error"}
            if settings.DEBUG:
                content["type"] = type(exc).__name__

            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
