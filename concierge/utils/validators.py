"""
Input validation utilities.

Validates shopper-supplied identifiers (order numbers, emails, postal codes,
session ids) before they reach a query.
"""

from __future__ import annotations

import re

from concierge.errors import ValidationError

# Valid order number pattern: alphanumeric, hyphens, underscores
ORDER_NUMBER_PATTERN = re.compile(r"^[A-Za-z0-9\-_#]+$")
MAX_ORDER_NUMBER_LENGTH = 64

# Storefront order references look like GG-12001
ORDER_REFERENCE_IN_TEXT = re.compile(r"\b([A-Za-z]{2,4}-\d{3,})\b")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_EMAIL_LENGTH = 254

POSTAL_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{3,10}$")

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-:.]+$")
MAX_SESSION_ID_LENGTH = 128


def validate_order_number(order_number: str | None) -> str | None:
    """
    Validate an order number string.

    Args:
        order_number: The order number to validate

    Returns:
        The validated order number (upper-cased) or None if input was None/blank

    Raises:
        ValidationError: If order number is invalid
    """
    if order_number is None:
        return None

    order_number = order_number.strip().lstrip("#")

    if not order_number:
        return None

    if len(order_number) > MAX_ORDER_NUMBER_LENGTH:
        raise ValidationError(f"Order number exceeds maximum length of {MAX_ORDER_NUMBER_LENGTH}")

    if not ORDER_NUMBER_PATTERN.match(order_number):
        raise ValidationError(
            "Invalid order number format. Must contain only letters, numbers, "
            "hyphens and underscores."
        )

    return order_number.upper()


def find_order_number(text: str | None) -> str | None:
    """First order reference mentioned in free text ("where is gg-12001?" -> "GG-12001")."""
    if not text:
        return None
    match = ORDER_REFERENCE_IN_TEXT.search(text)
    return match.group(1).upper() if match else None


def normalize_email(email: str | None) -> str | None:
    """Lower-case and validate an email; blank becomes None."""
    if email is None:
        return None

    email = email.strip().lower()
    if not email:
        return None

    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address")

    return email


def normalize_postal_code(postal_code: str | None) -> str | None:
    """Strip all whitespace and upper-case ("sw1a 1aa" -> "SW1A1AA")."""
    if postal_code is None:
        return None

    compact = re.sub(r"\s+", "", postal_code).upper()
    if not compact:
        return None

    if not POSTAL_CODE_PATTERN.match(compact):
        raise ValidationError("Invalid postal code")

    return compact


def validate_session_id(session_id: str | None) -> str:
    if not session_id or not session_id.strip():
        raise ValidationError("sessionId is required")

    session_id = session_id.strip()
    if len(session_id) > MAX_SESSION_ID_LENGTH or not SESSION_ID_PATTERN.match(session_id):
        raise ValidationError("Invalid session id")

    return session_id
