"""Centralized configuration for the Concierge backend.

Re-exports everything from concierge.infrastructure.settings, then adds typed
constants for database, catalog, support and API settings.  Environment
variable overrides use safe defaults so the app starts without extra env
configuration.

Runtime code does not read these constants ad hoc: ``ConciergeSettings`` is
built once at startup and handed to each service's constructor.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from concierge.infrastructure.settings import *  # noqa: F401, F403
from concierge.infrastructure.settings import DEFAULT_DB_PATH, ENV

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("CONCIERGE_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("CONCIERGE_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("CONCIERGE_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("CONCIERGE_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("CONCIERGE_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("CONCIERGE_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("CONCIERGE_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("CONCIERGE_DB_RETRY_JITTER", "0.1"))

# --- Catalog ---
PRODUCT_PROVIDER: str = os.getenv("CONCIERGE_PRODUCT_PROVIDER", "localDb")
REMOTE_PROVIDER_TIMEOUT_SECONDS: float = 8.0
STUB_LATENCY_SECONDS: float = float(os.getenv("CONCIERGE_STUB_LATENCY", "0.15"))
FALLBACK_CATEGORY: str = os.getenv("CONCIERGE_FALLBACK_CATEGORY", "ring")
PRODUCT_LIMIT_DEFAULT: int = 12
PRODUCT_LIMIT_MAX: int = 48
MAX_SUGGESTIONS: int = 3

# --- Intents ---
INTENT_CONFIDENCE_THRESHOLD: float = 0.7

# --- Support ---
RETURN_WINDOW_DAYS: int = 30
RESIZE_WINDOW_DAYS: int = 60

# --- Widget TTLs (days) ---
SHORTLIST_TTL_DAYS: int = 30
INSPIRATION_TTL_DAYS: int = 30
CAPSULE_HOLD_TTL_DAYS: int = 7
ORDER_SUBSCRIPTION_TTL_DAYS: int = 90

# --- Retention ---
REAPER_INTERVAL_SECONDS: int = int(os.getenv("CONCIERGE_REAPER_INTERVAL", "3600"))


class ProviderKind(str, Enum):
    """Which product provider backs the catalog queries."""

    STUB = "stub"
    REMOTE = "remote"
    LOCAL_DB = "localDb"


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ConciergeSettings:
    """
    Immutable runtime configuration.

    Built once (usually via from_env) and passed into the database, the
    product provider and every service at construction time.
    """

    env: str = "development"
    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    product_provider: str = ProviderKind.LOCAL_DB.value
    remote_base_url: str | None = None
    remote_token: str | None = None
    remote_timeout_seconds: float = REMOTE_PROVIDER_TIMEOUT_SECONDS
    stub_latency_seconds: float = STUB_LATENCY_SECONDS
    fallback_category: str = FALLBACK_CATEGORY
    product_limit_default: int = PRODUCT_LIMIT_DEFAULT
    max_suggestions: int = MAX_SUGGESTIONS
    intent_confidence_threshold: float = INTENT_CONFIDENCE_THRESHOLD
    return_window_days: int = RETURN_WINDOW_DAYS
    resize_window_days: int = RESIZE_WINDOW_DAYS
    shortlist_ttl_days: int = SHORTLIST_TTL_DAYS
    inspiration_ttl_days: int = INSPIRATION_TTL_DAYS
    capsule_hold_ttl_days: int = CAPSULE_HOLD_TTL_DAYS
    order_subscription_ttl_days: int = ORDER_SUBSCRIPTION_TTL_DAYS
    reaper_interval_seconds: int = REAPER_INTERVAL_SECONDS
    seed_demo_data: bool = False
    allowed_origins: tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> ConciergeSettings:
        """
        Read CONCIERGE_* environment variables at call time.

        The module constants above are import-time snapshots; reading again here
        picks up values loaded from .env after import.
        """
        db_path = os.getenv("CONCIERGE_DB_PATH")
        origins = os.getenv("CONCIERGE_ALLOWED_ORIGINS", "")
        return cls(
            env=os.getenv("CONCIERGE_ENV", ENV),
            db_path=Path(db_path) if db_path else DEFAULT_DB_PATH,
            product_provider=os.getenv("CONCIERGE_PRODUCT_PROVIDER", PRODUCT_PROVIDER),
            remote_base_url=os.getenv("CONCIERGE_REMOTE_BASE_URL"),
            remote_token=os.getenv("CONCIERGE_REMOTE_TOKEN"),
            stub_latency_seconds=float(os.getenv("CONCIERGE_STUB_LATENCY", STUB_LATENCY_SECONDS)),
            fallback_category=os.getenv("CONCIERGE_FALLBACK_CATEGORY", FALLBACK_CATEGORY),
            reaper_interval_seconds=int(os.getenv("CONCIERGE_REAPER_INTERVAL", REAPER_INTERVAL_SECONDS)),
            seed_demo_data=_env_bool("CONCIERGE_SEED_DEMO", False),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )

    def with_overrides(self, **changes) -> ConciergeSettings:
        """Return a copy with some fields replaced (used by tests and scripts)."""
        return replace(self, **changes)
