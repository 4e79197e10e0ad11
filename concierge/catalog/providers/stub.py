"""In-memory product provider for demos and offline development."""

from __future__ import annotations

import time
from collections.abc import Iterable
from datetime import datetime

from concierge.catalog.models import Product, ProductFilter, ProductList
from concierge.catalog.providers.base import sort_products
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter

logger = get_logger(__name__)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(f"{value}T00:00:00+00:00")


SAMPLE_CATALOG: tuple[Product, ...] = (
    Product(
        id="p-aurora-halo",
        slug="aurora-halo-ring",
        title="Aurora Halo Engagement Ring",
        price=1850,
        category="ring",
        tags=("engagement", "halo", "lab-grown"),
        ready_to_ship=True,
        featured_in_widget=True,
        metal="platinum",
        created_at=_ts("2024-03-01"),
    ),
    Product(
        id="p-linea-solitaire",
        slug="linea-solitaire-ring",
        title="Linea Solitaire Ring",
        price=2400,
        category="ring",
        tags=("engagement", "solitaire", "lab-grown"),
        ready_to_ship=False,
        featured_in_widget=True,
        metal="18k yellow gold",
        created_at=_ts("2024-02-10"),
    ),
    Product(
        id="p-everyday-band",
        slug="everyday-pave-band",
        title="Everyday Pavé Band",
        price=950,
        category="ring",
        tags=("wedding", "everyday"),
        ready_to_ship=True,
        featured_in_widget=False,
        metal="14k white gold",
        created_at=_ts("2024-01-15"),
    ),
    Product(
        id="p-drop-pendant",
        slug="drop-pendant-necklace",
        title="Drop Pendant Necklace",
        price=780,
        category="necklace",
        tags=("gift", "everyday"),
        ready_to_ship=True,
        featured_in_widget=True,
        metal="14k yellow gold",
        created_at=_ts("2024-04-02"),
    ),
    Product(
        id="p-tennis-bracelet",
        slug="classic-tennis-bracelet",
        title="Classic Tennis Bracelet",
        price=3200,
        category="bracelet",
        tags=("statement", "lab-grown"),
        ready_to_ship=False,
        featured_in_widget=False,
        metal="platinum",
        created_at=_ts("2023-11-20"),
    ),
    Product(
        id="p-halo-studs",
        slug="halo-stud-earrings",
        title="Halo Stud Earrings",
        price=1100,
        category="earring",
        tags=("gift", "halo"),
        ready_to_ship=True,
        featured_in_widget=False,
        metal="14k white gold",
        created_at=_ts("2024-05-05"),
    ),
)


class StubProductProvider:
    """
    Filters a fixed sample catalog in process.

    Sleeps latency_seconds per query so the widget's loading states can be
    exercised without a real backend.
    """

    name = "stub"

    def __init__(
        self,
        products: Iterable[Product] | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        self.products = tuple(products) if products is not None else SAMPLE_CATALOG
        self.latency_seconds = latency_seconds

    def query_products(self, product_filter: ProductFilter) -> ProductList:
        if self.latency_seconds > 0:
            time.sleep(self.latency_seconds)

        matched = [p for p in self.products if product_filter.matches(p)]
        ordered = sort_products(matched, product_filter.sort_by)[: product_filter.limit]
        counter("catalog.stub.queries")
        logger.debug("Stub provider matched %d/%d products", len(ordered), len(self.products))
        return ProductList(products=ordered, source=self.name)
