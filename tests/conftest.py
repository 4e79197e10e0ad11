"""
Pytest configuration for concierge tests

Provides a throwaway SQLite database per test, a small seeded catalog,
one shipped order and fully wired services.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from concierge.catalog.models import Product
from concierge.catalog.repository import ProductRepository
from concierge.config import ConciergeSettings
from concierge.infrastructure.database import Database
from concierge.observability import telemetry
from concierge.support.models import Order, OrderItem, StatusHistoryEntry
from concierge.support.order_service import OrderService
from concierge.support.repository import OrderRepository
from concierge.support.widget_repository import WidgetRepository
from concierge.support.widget_service import WidgetService
from concierge.utils.dates import utc_now


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(f"{value}T00:00:00+00:00")


# Four ready-to-ship rings, one made-to-order ring, a necklace and earrings
TEST_PRODUCTS: tuple[Product, ...] = (
    Product(
        id="r-halo",
        slug="halo-ring",
        title="Halo Ring",
        price=900,
        category="ring",
        tags=("halo", "engagement"),
        ready_to_ship=True,
        featured_in_widget=True,
        created_at=_ts("2024-05-01"),
    ),
    Product(
        id="r-solitaire",
        slug="solitaire-ring",
        title="Solitaire Ring",
        price=1500,
        category="ring",
        tags=("solitaire", "engagement"),
        ready_to_ship=True,
        created_at=_ts("2024-04-01"),
    ),
    Product(
        id="r-band",
        slug="wedding-band",
        title="Wedding Band",
        price=2500,
        category="ring",
        tags=("wedding",),
        ready_to_ship=True,
        created_at=_ts("2024-03-01"),
    ),
    Product(
        id="r-eternity",
        slug="eternity-ring",
        title="Eternity Ring",
        price=4000,
        category="ring",
        tags=("everyday",),
        ready_to_ship=True,
        created_at=_ts("2024-02-01"),
    ),
    Product(
        id="r-custom",
        slug="custom-halo-ring",
        title="Custom Halo Ring",
        price=1200,
        category="ring",
        tags=("halo",),
        ready_to_ship=False,
        created_at=_ts("2024-06-01"),
    ),
    Product(
        id="n-pendant",
        slug="pendant-necklace",
        title="Pendant Necklace",
        price=600,
        category="necklace",
        tags=("gift", "everyday"),
        ready_to_ship=True,
        featured_in_widget=True,
        created_at=_ts("2024-01-01"),
    ),
    Product(
        id="e-studs",
        slug="diamond-studs",
        title="Diamond Studs",
        price=450,
        category="earring",
        tags=("gift",),
        ready_to_ship=False,
        created_at=_ts("2023-12-01"),
    ),
)


def make_order(
    now: datetime,
    order_id: str = "ord_12001",
    order_number: str = "GG-12001",
    shipped_days_ago: int | None = 40,
    engraved: bool = False,
    email: str = "avery@example.com",
    postal_code: str = "10001",
) -> Order:
    placed = now - timedelta(days=(shipped_days_ago or 0) + 5)
    shipped = now - timedelta(days=shipped_days_ago) if shipped_days_ago is not None else None
    history = [StatusHistoryEntry(label="Order placed", status="pending", date=placed)]
    if shipped is not None:
        history.append(StatusHistoryEntry(label="Shipped", status="shipped", date=shipped))
    return Order(
        id=order_id,
        order_number=order_number,
        customer_email=email,
        postal_code=postal_code,
        status="shipped" if shipped else "processing",
        items=[OrderItem(sku="HALO-6", product_id="r-halo", title="Halo Ring", price=900, engraved=engraved)],
        shipped_at=shipped,
        created_at=placed,
        updated_at=shipped or placed,
        status_history=history,
    )


@pytest.fixture(autouse=True)
def reset_telemetry():
    """Counters are process-global; start every test from zero."""
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def catalog_products() -> tuple[Product, ...]:
    return TEST_PRODUCTS


@pytest.fixture
def now() -> datetime:
    return utc_now().replace(microsecond=0)


@pytest.fixture
def settings(tmp_path) -> ConciergeSettings:
    return ConciergeSettings().with_overrides(
        db_path=tmp_path / "concierge.db",
        product_provider="localDb",
        reaper_interval_seconds=0,
        stub_latency_seconds=0,
    )


@pytest.fixture
def db(settings):
    database = Database(settings.db_path)
    database.init()
    yield database
    database.close()


@pytest.fixture
def seeded_db(db, now):
    """Database holding TEST_PRODUCTS and order GG-12001 (shipped 40 days ago)."""
    ProductRepository(db).seed(TEST_PRODUCTS)
    OrderRepository(db).save(make_order(now))
    return db


@pytest.fixture
def order_repository(seeded_db) -> OrderRepository:
    return OrderRepository(seeded_db)


@pytest.fixture
def widget_repository(seeded_db) -> WidgetRepository:
    return WidgetRepository(seeded_db)


@pytest.fixture
def order_service(order_repository, settings) -> OrderService:
    return OrderService(order_repository, settings)


@pytest.fixture
def widget_service(widget_repository, order_repository, settings) -> WidgetService:
    return WidgetService(widget_repository, order_repository, settings)


@pytest.fixture
def client(settings, now):
    """TestClient around an app whose database holds the test catalog and order."""
    from fastapi.testclient import TestClient

    from concierge.api.app import create_app

    app = create_app(settings)
    ProductRepository(app.state.db).seed(TEST_PRODUCTS)
    OrderRepository(app.state.db).save(make_order(now))

    with TestClient(app) as test_client:
        yield test_client
