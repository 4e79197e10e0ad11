"""
Error message sanitization utility.

Prevents information leakage by sanitizing error messages before returning
them to the widget.
"""

from __future__ import annotations

import re

from concierge.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"FOREIGN KEY constraint",
    r"CHECK constraint",
    r"no such table",
    r"no such column",
    # Credentials sent to the remote catalog
    r"Bearer [A-Za-z0-9._-]+",
    # Internal module names
    r"concierge\.[a-z_.]+",
]

# Generic error messages for different error types
GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    404: "Resource not found.",
    422: "Invalid data format.",
    500: "Something went wrong on our side. Please try again.",
    502: "A backing service returned an error. Please try again.",
    503: "Service temporarily unavailable.",
    504: "A backing service took too long to respond. Please try again.",
}


def generic_message(status_code: int) -> str:
    return GENERIC_MESSAGES.get(status_code, "An error occurred.")


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    """
    Sanitize an error message to prevent information leakage.

    Messages that match a sensitive pattern are replaced with the generic
    message for the status code. 5xx messages are always replaced, except
    upstream failures (502/504) whose messages are written for shoppers.

    Args:
        message: The original error message
        status_code: HTTP status code (used to select generic fallback)

    Returns:
        Sanitized error message safe for client consumption
    """
    if not message or (status_code >= 500 and status_code not in (502, 504)):
        return generic_message(status_code)

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return generic_message(status_code)

    if len(message) > 200 or "\n" in message:
        return generic_message(status_code)

    return message
