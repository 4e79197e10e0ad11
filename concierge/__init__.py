"""Concierge - support widget backend for the storefront"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules (intents, catalog) don't pull in FastAPI
def __getattr__(name: str):
    if name == "create_app":
        from concierge.api.app import create_app

        return create_app

    if name == "ConciergeSettings":
        from concierge.config import ConciergeSettings

        return ConciergeSettings

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ConciergeSettings",
    "create_app",
]
