"""
SQLite-backed product provider.

Queries the products table directly. Tags use any-overlap semantics: a
product matches when it carries at least one of the requested tags.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from concierge.catalog.models import ProductFilter, ProductList, SortBy
from concierge.catalog.repository import load_tags, row_to_product
from concierge.errors import ProductProviderError
from concierge.infrastructure.database import Database, retry_on_db_lock
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, time_block

logger = get_logger(__name__)

_ORDER_BY: dict[SortBy, str] = {
    SortBy.FEATURED: "featured_in_widget DESC, created_at DESC, id ASC",
    SortBy.PRICE_ASC: "price ASC, id ASC",
    SortBy.PRICE_DESC: "price DESC, id ASC",
    SortBy.NEWEST: "created_at DESC, id ASC",
}


def build_query(product_filter: ProductFilter) -> tuple[str, list[Any]]:
    """Translate a filter into a parameterized SELECT."""
    clauses: list[str] = []
    params: list[Any] = []

    if product_filter.category:
        clauses.append("category = ?")
        params.append(product_filter.category)

    if product_filter.tags:
        placeholders = ",".join("?" * len(product_filter.tags))
        clauses.append(
            "EXISTS (SELECT 1 FROM product_tags t "
            f"WHERE t.product_id = products.id AND t.tag IN ({placeholders}))"
        )
        params.extend(product_filter.tags)

    if product_filter.price_gte is not None:
        clauses.append("price >= ?")
        params.append(product_filter.price_gte)

    if product_filter.price_lt is not None:
        clauses.append("price < ?")
        params.append(product_filter.price_lt)

    if product_filter.ready_to_ship is not None:
        clauses.append("ready_to_ship = ?")
        params.append(int(product_filter.ready_to_ship))

    if product_filter.featured_only:
        clauses.append("featured_in_widget = 1")

    if product_filter.q:
        clauses.append(
            "(LOWER(title) LIKE ? OR LOWER(category) LIKE ? OR EXISTS ("
            "SELECT 1 FROM product_tags q WHERE q.product_id = products.id AND q.tag LIKE ?))"
        )
        needle = f"%{product_filter.q.lower()}%"
        params.extend([needle, needle, needle])

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    sql = (
        f"SELECT * FROM products {where} "  # nosec B608
        f"ORDER BY {_ORDER_BY[product_filter.sort_by]} LIMIT ?"
    )
    params.append(product_filter.limit)
    return sql, params


class LocalDbProductProvider:
    """Reads products straight from the concierge database."""

    name = "localDb"

    def __init__(self, db: Database) -> None:
        self.db = db

    @retry_on_db_lock()
    def query_products(self, product_filter: ProductFilter) -> ProductList:
        sql, params = build_query(product_filter)
        try:
            with time_block("catalog.local_db.latency"), self.db.connection() as conn:
                rows = conn.execute(sql, params).fetchall()
                tags = load_tags(conn, [row["id"] for row in rows])
        except sqlite3.OperationalError as e:
            message = str(e).lower()
            if "locked" in message or "busy" in message:
                raise
            logger.error("Product query failed: %s", e)
            raise ProductProviderError("Product catalog is unavailable") from e

        products = [row_to_product(row, tags.get(row["id"], [])) for row in rows]
        counter("catalog.local_db.queries")
        return ProductList(products=products, source=self.name)
