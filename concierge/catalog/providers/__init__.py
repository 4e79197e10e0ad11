"""
Product providers.

The provider is chosen once at startup from settings.product_provider and
injected into the message resolver and the products route.
"""

from __future__ import annotations

from concierge.catalog.providers.base import ProductProvider
from concierge.catalog.providers.local_db import LocalDbProductProvider
from concierge.catalog.providers.remote import RemoteProductProvider
from concierge.catalog.providers.stub import SAMPLE_CATALOG, StubProductProvider
from concierge.config import ConciergeSettings, ProviderKind
from concierge.errors import ConfigurationError
from concierge.infrastructure.database import Database
from concierge.observability.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "SAMPLE_CATALOG",
    "LocalDbProductProvider",
    "ProductProvider",
    "RemoteProductProvider",
    "StubProductProvider",
    "build_provider",
]


def build_provider(settings: ConciergeSettings, db: Database | None = None) -> ProductProvider:
    """
    Construct the configured provider.

    Raises:
        ConfigurationError: Unknown provider kind, remote without a base URL,
            or localDb without a database
    """
    try:
        kind = ProviderKind(settings.product_provider)
    except ValueError:
        valid = ", ".join(k.value for k in ProviderKind)
        raise ConfigurationError(
            f"Unknown product provider {settings.product_provider!r} (expected one of: {valid})"
        ) from None

    if kind == ProviderKind.STUB:
        provider: ProductProvider = StubProductProvider(
            latency_seconds=settings.stub_latency_seconds
        )
    elif kind == ProviderKind.REMOTE:
        if not settings.remote_base_url:
            raise ConfigurationError("CONCIERGE_REMOTE_BASE_URL is required for the remote provider")
        provider = RemoteProductProvider(
            base_url=settings.remote_base_url,
            token=settings.remote_token,
            timeout=settings.remote_timeout_seconds,
        )
    else:
        if db is None:
            raise ConfigurationError("The localDb provider needs a database")
        provider = LocalDbProductProvider(db)

    logger.info("Product provider: %s", provider.name)
    return provider
