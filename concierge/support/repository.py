"""
Order and return-request persistence.

Follows the pooled-connection pattern in concierge.infrastructure.database:
reads use db.connection(), writes use db.transaction() and retry on lock.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime

from concierge.infrastructure.database import Database, retry_on_db_lock
from concierge.observability.logging import get_logger
from concierge.support.models import Order, ReturnKind, StatusHistoryEntry
from concierge.utils.dates import parse_dt, to_iso

logger = get_logger(__name__)

RETURN_STATUS: dict[ReturnKind, tuple[str, str]] = {
    # kind -> (order status, history label)
    ReturnKind.RETURN: ("return-requested", "Return requested"),
    ReturnKind.RESIZE: ("resize-requested", "Resize requested"),
}


def _load_history(conn: sqlite3.Connection, order_id: str) -> list[StatusHistoryEntry]:
    rows = conn.execute(
        "SELECT label, status, date FROM order_status_history WHERE order_id = ? ORDER BY date, id",
        (order_id,),
    ).fetchall()
    return [
        StatusHistoryEntry(label=row["label"], status=row["status"], date=parse_dt(row["date"]))
        for row in rows
    ]


class OrderRepository:
    """Read access to orders plus the return write path."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _fetch_one(self, sql: str, params: tuple) -> Order | None:
        with self.db.connection() as conn:
            row = conn.execute(sql, params).fetchone()
            if row is None:
                return None
            history = _load_history(conn, row["id"])
        return Order.from_db_row(dict(row), history)

    def get_by_number(self, order_number: str) -> Order | None:
        return self._fetch_one(
            "SELECT * FROM orders WHERE UPPER(order_number) = UPPER(?)", (order_number,)
        )

    def get_by_id(self, order_id: str) -> Order | None:
        return self._fetch_one("SELECT * FROM orders WHERE id = ?", (order_id,))

    def get_by_id_or_number(self, key: str) -> Order | None:
        return self.get_by_id(key) or self.get_by_number(key)

    def find_by_email_and_postal_code(self, email: str, postal_code: str) -> Order | None:
        """
        Most recent order for an email + postal code pair.

        Email compares case-insensitively, postal code ignores whitespace and case.
        """
        return self._fetch_one(
            """
            SELECT * FROM orders
            WHERE LOWER(customer_email) = LOWER(?)
              AND UPPER(REPLACE(postal_code, ' ', '')) = ?
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (email, postal_code),
        )

    @retry_on_db_lock()
    def save(self, order: Order) -> Order:
        """Insert or replace an order and its history (seeding and tests)."""
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO orders (
                    id, order_number, customer_email, postal_code, status,
                    items, shipped_at, created_at, updated_at
                ) VALUES (
                    :id, :order_number, :customer_email, :postal_code, :status,
                    :items, :shipped_at, :created_at, :updated_at
                )
                ON CONFLICT(id) DO UPDATE SET
                    order_number = excluded.order_number,
                    customer_email = excluded.customer_email,
                    postal_code = excluded.postal_code,
                    status = excluded.status,
                    items = excluded.items,
                    shipped_at = excluded.shipped_at,
                    updated_at = excluded.updated_at
                """,
                order.to_db_dict(),
            )
            conn.execute("DELETE FROM order_status_history WHERE order_id = ?", (order.id,))
            conn.executemany(
                "INSERT INTO order_status_history (order_id, label, status, date) VALUES (?, ?, ?, ?)",
                [(order.id, e.label, e.status, to_iso(e.date)) for e in order.status_history],
            )
        return order

    @retry_on_db_lock()
    def open_return(
        self,
        order: Order,
        rma_id: str,
        reason: str,
        kind: ReturnKind,
        window_days: int,
        now: datetime,
    ) -> str:
        """
        Record a return request against an order.

        Returns:
            The order's new status

        Side Effects:
            - Inserts row into return_requests
            - Appends an order_status_history entry
            - Updates orders.status and orders.updated_at
            All three happen in one transaction.
        """
        new_status, label = RETURN_STATUS[kind]
        timestamp = to_iso(now)

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO return_requests (
                    rma_id, order_id, order_number, reason, kind, window_days, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, 'requested', ?)
                """,
                (rma_id, order.id, order.order_number, reason, kind.value, window_days, timestamp),
            )
            conn.execute(
                "INSERT INTO order_status_history (order_id, label, status, date) VALUES (?, ?, ?, ?)",
                (order.id, label, new_status, timestamp),
            )
            conn.execute(
                "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?",
                (new_status, timestamp, order.id),
            )

        logger.info("Opened %s %s for order %s", kind.value, rma_id, order.order_number)
        return new_status

    def list_return_requests(self, order_id: str) -> list[dict]:
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM return_requests WHERE order_id = ? ORDER BY created_at",
                (order_id,),
            ).fetchall()
        return [dict(row) for row in rows]
