"""
Redaction helpers for logs and analytics payloads.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_pii(): Strip contact details out of free text (stylist notes, chat text)
"""

from __future__ import annotations

import re
from hashlib import sha256
from typing import Any

_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE = re.compile(r"\+?1?[-.\s]?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}")
_CARD = re.compile(r"\b(?:\d{4}[-\s]?){3,4}\d{1,4}\b")

# Payload keys whose values are hashed before analytics storage
SENSITIVE_KEYS = frozenset({"email", "contact", "customer_email", "customerEmail", "phone"})


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.strip().lower().encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_pii(text: str | None, max_length: int = 500) -> str:
    """
    Replace emails, phone numbers and card numbers with placeholders.

    Card numbers are replaced before phone numbers so a 16-digit card is not
    split into phone-shaped fragments.
    """
    if not text:
        return ""

    text = _EMAIL.sub("[EMAIL]", text)
    text = _CARD.sub("[CARD]", text)
    text = _PHONE.sub("[PHONE]", text)
    return text[:max_length]


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of an analytics payload with contact fields hashed."""
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if key in SENSITIVE_KEYS and isinstance(value, str):
            cleaned[key] = redact(value)
        elif key == "text" and isinstance(value, str):
            cleaned[key] = redact_pii(value, max_length=200)
        else:
            cleaned[key] = value
    return cleaned
