"""
Typed error taxonomy for the concierge backend.

Each error carries a machine-readable code and an HTTP status so the API
layer can surface it without guessing. Return ineligibility and empty
product results are NOT errors; they are regular response shapes.
"""

from __future__ import annotations


class ConciergeError(Exception):
    """Base exception for concierge errors surfaced to callers."""

    code: str = "concierge_error"
    status_code: int = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(ConciergeError, ValueError):
    """Malformed or incomplete request input.

    Also a ValueError so pydantic field validators report it as a field error.
    """

    code = "validation_error"
    status_code = 422


class OrderNotFoundError(ConciergeError):
    """No order matches the lookup key."""

    code = "order_not_found"
    status_code = 404


class ProductProviderError(ConciergeError):
    """Base for product provider failures."""

    code = "provider_error"
    status_code = 502


class ProviderFetchError(ProductProviderError):
    """Remote catalog answered with a non-2xx status or an unreadable body."""

    code = "upstream_error"
    status_code = 502

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamTimeoutError(ProductProviderError):
    """Remote catalog did not answer within the configured timeout."""

    code = "upstream_timeout"
    status_code = 504


class ConfigurationError(ConciergeError):
    """Invalid startup configuration (unknown provider, missing remote URL, ...)."""

    code = "configuration_error"
    status_code = 500
