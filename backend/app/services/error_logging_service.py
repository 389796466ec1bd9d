"""Error logging service with PII redaction for production safety."""

import logging
import re
import traceback
from typing import Any, Dict, Optional


class ErrorLoggingService:
    """Service for logging errors with PII redaction."""

    # (pattern, replacement, flags) applied in order
    PII_PATTERNS = (
        (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", "[REDACTED_EMAIL]", 0),
        (r"(access_?token|accessToken|token|jwt|bearer)([\"']?\s*[:= ]\s*[\"']?)([A-Za-z0-9._~+/=-]{16,})",
         r"\1\2[REDACTED_TOKEN]", re.IGNORECASE),
        (r"(secret|secret_key|api_?key)([\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", r"\1\2[REDACTED]", re.IGNORECASE),
    )

    @staticmethod
    def redact_pii(text: str) -> str:
        """
        Redact PII from text.

        Emails, provider access tokens, session credentials and secrets are
        replaced with placeholders.

        Examples:
            >>> ErrorLoggingService.redact_pii("login failed for anna@example.com")
            'login failed for [REDACTED_EMAIL]'
        """
        if not text:
            return text

        redacted = text
        for pattern, replacement, flags in ErrorLoggingService.PII_PATTERNS:
            redacted = re.sub(pattern, replacement, redacted, flags=flags)
        return redacted

    @staticmethod
    def log_error(
        logger: logging.Logger,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        account_id: Optional[str] = None,
    ) -> None:
        """
        Log error with PII redaction.

        Args:
            logger: Logger instance
            error: Exception to log
            context: Additional context (will be redacted)
            account_id: Local account id (not PII, safe to log)
        """
        error_traceback = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        error_message = ErrorLoggingService.redact_pii(str(error))
        error_traceback = ErrorLoggingService.redact_pii(error_traceback)

        log_parts = [
            f"Error: {error_message}",
            f"Type: {type(error).__name__}",
        ]

        if account_id:
            log_parts.append(f"Account: {account_id}")

        if context:
            safe_context = {k: ErrorLoggingService.redact_pii(str(v)) for k, v in context.items()}
            log_parts.append(f"Context: {safe_context}")

        log_parts.append(f"Traceback:\n{error_traceback}")

        logger.error("\n".join(log_parts))


# Create singleton instance
error_logging_service = ErrorLoggingService()
