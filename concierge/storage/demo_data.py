"""
Demo catalog and orders for local runs (CONCIERGE_SEED_DEMO=true).

Order dates are relative to the seeding time so the demo return scenarios
behave the same whenever the app is started:

- GG-12001 shipped 40 days ago: outside the return window, inside the resize window
- GG-12002 engraved band: final sale
- GG-12003 still being crafted: not shipped
- GG-12004 shipped 10 days ago: returnable
"""

from __future__ import annotations

from datetime import datetime, timedelta

from concierge.catalog.providers.stub import SAMPLE_CATALOG
from concierge.catalog.repository import ProductRepository
from concierge.infrastructure.database import Database
from concierge.observability.logging import get_logger
from concierge.support.models import Order, OrderItem, StatusHistoryEntry
from concierge.support.repository import OrderRepository
from concierge.utils.dates import utc_now

logger = get_logger(__name__)


def demo_orders(now: datetime) -> list[Order]:
    def shipped_order(
        order_id: str,
        number: str,
        email: str,
        postal: str,
        shipped_days_ago: int,
        items: list[OrderItem],
    ) -> Order:
        placed = now - timedelta(days=shipped_days_ago + 5)
        shipped = now - timedelta(days=shipped_days_ago)
        return Order(
            id=order_id,
            order_number=number,
            customer_email=email,
            postal_code=postal,
            status="shipped",
            items=items,
            shipped_at=shipped,
            created_at=placed,
            updated_at=shipped,
            status_history=[
                StatusHistoryEntry(label="Order placed", status="pending", date=placed),
                StatusHistoryEntry(label="Shipped", status="shipped", date=shipped),
            ],
        )

    return [
        shipped_order(
            "ord_12001",
            "GG-12001",
            "avery@example.com",
            "10001",
            40,
            [OrderItem(sku="AUR-HALO-6", product_id="p-aurora-halo", title="Aurora Halo Engagement Ring", price=1850)],
        ),
        shipped_order(
            "ord_12002",
            "GG-12002",
            "jordan@example.com",
            "94107",
            5,
            [OrderItem(sku="BAND-ENG", product_id="p-everyday-band", title="Everyday Pavé Band", price=950, engraved=True)],
        ),
        Order(
            id="ord_12003",
            order_number="GG-12003",
            customer_email="sam@example.com",
            postal_code="SW1A1AA",
            status="processing",
            items=[OrderItem(sku="LIN-SOL-5", product_id="p-linea-solitaire", title="Linea Solitaire Ring", price=2400)],
            created_at=now - timedelta(days=3),
            updated_at=now - timedelta(days=3),
        ),
        shipped_order(
            "ord_12004",
            "GG-12004",
            "avery@example.com",
            "10001",
            10,
            [OrderItem(sku="DROP-PEN", product_id="p-drop-pendant", title="Drop Pendant Necklace", price=780)],
        ),
    ]


def seed_demo_data(db: Database, now: datetime | None = None) -> dict[str, int]:
    """
    Load the sample catalog and any demo orders not yet present.

    Returns:
        Counts of seeded products and orders
    """
    now = now or utc_now()
    products = ProductRepository(db).seed(SAMPLE_CATALOG)

    orders = OrderRepository(db)
    seeded_orders = 0
    for order in demo_orders(now):
        # Orders already present keep their history (returns opened in earlier runs)
        if orders.get_by_id(order.id) is not None:
            continue
        orders.save(order)
        seeded_orders += 1

    logger.info("Seeded demo data: %d products, %d orders", products, seeded_orders)
    return {"products": products, "orders": seeded_orders}
