"""Tests for demo seeding: the catalog and four orders covering each return outcome."""

from __future__ import annotations

from concierge.catalog.providers import SAMPLE_CATALOG
from concierge.catalog.repository import ProductRepository
from concierge.storage.demo_data import seed_demo_data
from concierge.support.eligibility import check_eligibility
from concierge.support.models import IneligibleReason
from concierge.support.repository import OrderRepository


def test_seeds_catalog_and_orders(db, now):
    counts = seed_demo_data(db, now)

    assert counts == {"products": len(SAMPLE_CATALOG), "orders": 4}
    assert ProductRepository(db).count() == len(SAMPLE_CATALOG)


def test_reseeding_keeps_existing_orders(db, now):
    seed_demo_data(db, now)
    orders = OrderRepository(db)
    order = orders.get_by_number("GG-12004")
    orders.save(order.model_copy(update={"status": "return-requested"}))

    counts = seed_demo_data(db, now)

    assert counts["orders"] == 0
    assert orders.get_by_number("GG-12004").status == "return-requested"


def test_demo_orders_cover_each_outcome(db, now):
    seed_demo_data(db, now)
    orders = OrderRepository(db)

    def check(number, reason):
        return check_eligibility(orders.get_by_number(number), reason, now)

    assert check("GG-12001", "changed my mind").reason == IneligibleReason.WINDOW_EXPIRED
    assert check("GG-12001", "resize").eligible
    assert check("GG-12002", "resize").reason == IneligibleReason.NON_RETURNABLE
    assert check("GG-12003", "return").reason == IneligibleReason.NOT_SHIPPED
    assert check("GG-12004", "return").eligible

