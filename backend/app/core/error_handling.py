"""Error handling utilities: structured logging and error responses."""
from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def log_error_with_context(
    error: Exception,
    operation: str,
    user_id: str | None = None,
    code: str | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Log a collaborator error with context and stack trace.

    Args:
        error: The exception that occurred
        operation: Engine operation (e.g., 'resolve', 'delete', 'sync_inventory')
        user_id: Session user for context
        code: Scanned code or card id for context
        extra_context: Additional context dict to include in log
    """
    context_parts = []
    if user_id:
        context_parts.append(f"user_id={user_id}")
    if code:
        context_parts.append(f"code={code}")
    context_str = ", ".join(context_parts) if context_parts else "no context"

    extra: dict[str, Any] = {}
    if extra_context:
        extra.update(extra_context)
    if user_id:
        extra["user_id"] = user_id
    if code:
        extra["card_code"] = code
    extra["operation"] = operation

    logger.error(
        f"[{operation}] Error: {type(error).__name__}: {str(error)} ({context_str})",
        exc_info=True,
        extra=extra,
    )


def create_error_response(
    error_code: str,
    message: str,
    node: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a structured error response for API endpoints.

    Args:
        error_code: Error code (e.g., 'INVALID_MUTATION', 'SESSION_HTTP_404')
        message: Human-readable error message
        node: Engine area where the error occurred
        details: Additional error details

    Returns:
        Structured error dict
    """
    response: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
    }
    if node:
        response["node"] = node
    if details:
        response["details"] = details
    return response
