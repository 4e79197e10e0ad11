"""
Product table access.

The concierge never edits the catalog at request time. Rows are loaded by
seed() (catalog sync, demo data, tests) and read by the local-db provider.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from concierge.catalog.models import Product
from concierge.infrastructure.database import Database, retry_on_db_lock
from concierge.observability.logging import get_logger
from concierge.utils.dates import parse_dt, to_iso

logger = get_logger(__name__)


def row_to_product(row: sqlite3.Row, tags: Iterable[str]) -> Product:
    return Product(
        id=row["id"],
        slug=row["slug"],
        title=row["title"],
        price=row["price"],
        category=row["category"],
        tags=tuple(tags),
        ready_to_ship=bool(row["ready_to_ship"]),
        featured_in_widget=bool(row["featured_in_widget"]),
        metal=row["metal"],
        image_url=row["image_url"],
        created_at=parse_dt(row["created_at"]),
    )


def load_tags(conn: sqlite3.Connection, product_ids: list[str]) -> dict[str, list[str]]:
    """Tags per product id for a batch of products."""
    if not product_ids:
        return {}
    placeholders = ",".join("?" * len(product_ids))
    rows = conn.execute(
        f"SELECT product_id, tag FROM product_tags WHERE product_id IN ({placeholders})",  # nosec B608
        product_ids,
    ).fetchall()
    tags: dict[str, list[str]] = {pid: [] for pid in product_ids}
    for row in rows:
        tags[row["product_id"]].append(row["tag"])
    return tags


class ProductRepository:
    """Read/write access to the products and product_tags tables."""

    def __init__(self, db: Database) -> None:
        self.db = db

    @retry_on_db_lock()
    def seed(self, products: Iterable[Product]) -> int:
        """
        Upsert products and replace their tags.

        Returns:
            Number of products written
        """
        count = 0
        with self.db.transaction() as conn:
            for product in products:
                conn.execute(
                    """
                    INSERT INTO products (
                        id, slug, title, price, category, metal,
                        ready_to_ship, featured_in_widget, image_url, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        slug = excluded.slug,
                        title = excluded.title,
                        price = excluded.price,
                        category = excluded.category,
                        metal = excluded.metal,
                        ready_to_ship = excluded.ready_to_ship,
                        featured_in_widget = excluded.featured_in_widget,
                        image_url = excluded.image_url,
                        created_at = excluded.created_at
                    """,
                    (
                        product.id,
                        product.slug,
                        product.title,
                        product.price,
                        product.category,
                        product.metal,
                        int(product.ready_to_ship),
                        int(product.featured_in_widget),
                        product.image_url,
                        to_iso(product.created_at),
                    ),
                )
                conn.execute("DELETE FROM product_tags WHERE product_id = ?", (product.id,))
                conn.executemany(
                    "INSERT INTO product_tags (product_id, tag) VALUES (?, ?)",
                    [(product.id, tag) for tag in product.tags],
                )
                count += 1

        logger.info("Seeded %d products", count)
        return count

    def get(self, product_id: str) -> Product | None:
        with self.db.connection() as conn:
            row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
            if row is None:
                return None
            tags = load_tags(conn, [row["id"]])
        return row_to_product(row, tags.get(row["id"], []))

    def count(self) -> int:
        with self.db.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]
