"""
Database schema for the concierge collections.

Records with a bounded lifetime carry an explicit `expires_at` column
(ISO-8601 UTC). Expiry is enforced twice: reads ignore expired rows, and
concierge.storage.retention.purge_expired() physically deletes them.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from concierge.observability.logging import get_logger

logger = get_logger(__name__)

# Tables whose rows expire; retention purges these by expires_at
TTL_TABLES: tuple[str, ...] = (
    "widget_shortlists",
    "widget_inspiration",
    "capsule_holds",
    "widget_order_subscriptions",
)

REQUIRED_TABLES: tuple[str, ...] = (
    "products",
    "product_tags",
    "orders",
    "order_status_history",
    "return_requests",
    "stylist_tickets",
    "csat_feedback",
    "analytics_events",
    *TTL_TABLES,
)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        slug TEXT NOT NULL UNIQUE,
        title TEXT NOT NULL,
        price REAL NOT NULL,
        category TEXT NOT NULL,
        metal TEXT,
        ready_to_ship INTEGER NOT NULL DEFAULT 0,
        featured_in_widget INTEGER NOT NULL DEFAULT 0,
        image_url TEXT,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS product_tags (
        product_id TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        tag TEXT NOT NULL,
        PRIMARY KEY (product_id, tag)
    );

    CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);
    CREATE INDEX IF NOT EXISTS idx_products_price ON products(price);
    CREATE INDEX IF NOT EXISTS idx_product_tags_tag ON product_tags(tag);

    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        order_number TEXT NOT NULL UNIQUE,
        customer_email TEXT NOT NULL,
        postal_code TEXT NOT NULL,
        status TEXT NOT NULL,
        items TEXT NOT NULL DEFAULT '[]',
        shipped_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_orders_email_postal ON orders(customer_email, postal_code);

    CREATE TABLE IF NOT EXISTS order_status_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        label TEXT NOT NULL,
        status TEXT NOT NULL,
        date TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_history_order ON order_status_history(order_id, date);

    CREATE TABLE IF NOT EXISTS return_requests (
        rma_id TEXT PRIMARY KEY,
        order_id TEXT NOT NULL REFERENCES orders(id),
        order_number TEXT NOT NULL,
        reason TEXT NOT NULL,
        kind TEXT NOT NULL,
        window_days INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'requested',
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_return_requests_order ON return_requests(order_id);

    CREATE TABLE IF NOT EXISTS widget_shortlists (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL UNIQUE,
        items TEXT NOT NULL DEFAULT '[]',
        order_number TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS widget_inspiration (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        items TEXT NOT NULL DEFAULT '[]',
        order_number TEXT,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS capsule_holds (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        product_ids TEXT NOT NULL DEFAULT '[]',
        email TEXT,
        order_number TEXT,
        status TEXT NOT NULL DEFAULT 'held',
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS stylist_tickets (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        name TEXT,
        email TEXT NOT NULL,
        notes TEXT,
        shortlist TEXT NOT NULL DEFAULT '[]',
        order_number TEXT,
        status TEXT NOT NULL DEFAULT 'open',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS csat_feedback (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT NOT NULL,
        rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        intent TEXT,
        order_number TEXT,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS widget_order_subscriptions (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        order_number TEXT NOT NULL,
        order_id TEXT,
        channel TEXT NOT NULL DEFAULT 'sms',
        contact TEXT,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS analytics_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        event TEXT NOT NULL,
        session_id TEXT,
        payload TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_analytics_event ON analytics_events(event, created_at);
"""


def init_schema(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Side Effects:
        - Creates the parent directory if needed
        - Creates tables and indexes that don't exist yet
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        for table in TTL_TABLES:
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_expires_at ON {table}(expires_at)"
            )
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema initialized at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Check every required table exists.

    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    existing = {row[0] for row in rows}
    missing = [t for t in REQUIRED_TABLES if t not in existing]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
