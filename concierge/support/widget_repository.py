"""
Persistence for widget follow-up records.

Rows in the TTL tables carry expires_at; reads here ignore expired rows and
concierge.storage.retention deletes them.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from concierge.infrastructure.database import Database, retry_on_db_lock
from concierge.observability.logging import get_logger
from concierge.support.models import Shortlist
from concierge.utils.dates import parse_dt, to_iso

logger = get_logger(__name__)


class WidgetRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    @retry_on_db_lock()
    def insert_capsule_hold(
        self,
        hold_id: str,
        session_id: str,
        product_ids: list[str],
        email: str | None,
        order_number: str | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO capsule_holds (
                    id, session_id, product_ids, email, order_number, status, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, 'held', ?, ?)
                """,
                (
                    hold_id,
                    session_id,
                    json.dumps(product_ids),
                    email,
                    order_number,
                    to_iso(created_at),
                    to_iso(expires_at),
                ),
            )

    @retry_on_db_lock()
    def upsert_shortlist(
        self,
        shortlist_id: str,
        session_id: str,
        items: list[dict[str, Any]],
        order_number: str | None,
        now: datetime,
        expires_at: datetime,
    ) -> str:
        """
        One shortlist per session; each save replaces the items and refreshes expiry.

        Returns:
            The id of the stored shortlist (existing id on update)
        """
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO widget_shortlists (
                    id, session_id, items, order_number, created_at, updated_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    items = excluded.items,
                    order_number = COALESCE(excluded.order_number, widget_shortlists.order_number),
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (
                    shortlist_id,
                    session_id,
                    json.dumps(items),
                    order_number,
                    to_iso(now),
                    to_iso(now),
                    to_iso(expires_at),
                ),
            )
            row = conn.execute(
                "SELECT id FROM widget_shortlists WHERE session_id = ?", (session_id,)
            ).fetchone()
        return row["id"]

    def get_shortlist(self, session_id: str, now: datetime) -> Shortlist | None:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM widget_shortlists WHERE session_id = ? AND expires_at > ?",
                (session_id, to_iso(now)),
            ).fetchone()
        if row is None:
            return None
        return Shortlist(
            shortlist_id=row["id"],
            session_id=row["session_id"],
            items=json.loads(row["items"] or "[]"),
            order_number=row["order_number"],
            expires_at=parse_dt(row["expires_at"]),
        )

    @retry_on_db_lock()
    def insert_inspiration(
        self,
        inspiration_id: str,
        session_id: str,
        items: list[dict[str, Any]],
        order_number: str | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO widget_inspiration (
                    id, session_id, items, order_number, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    inspiration_id,
                    session_id,
                    json.dumps(items),
                    order_number,
                    to_iso(created_at),
                    to_iso(expires_at),
                ),
            )

    @retry_on_db_lock()
    def insert_stylist_ticket(
        self,
        ticket_id: str,
        session_id: str,
        name: str | None,
        email: str,
        notes: str | None,
        shortlist: list[Any],
        order_number: str | None,
        created_at: datetime,
    ) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO stylist_tickets (
                    id, session_id, name, email, notes, shortlist, order_number, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, 'open', ?)
                """,
                (
                    ticket_id,
                    session_id,
                    name,
                    email,
                    notes,
                    json.dumps(shortlist),
                    order_number,
                    to_iso(created_at),
                ),
            )

    @retry_on_db_lock()
    def insert_csat(
        self,
        session_id: str,
        rating: int,
        comment: str | None,
        intent: str | None,
        order_number: str | None,
        created_at: datetime,
    ) -> int:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO csat_feedback (session_id, rating, comment, intent, order_number, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (session_id, rating, comment, intent, order_number, to_iso(created_at)),
            )
            return cursor.lastrowid

    @retry_on_db_lock()
    def insert_order_subscription(
        self,
        subscription_id: str,
        session_id: str,
        order_number: str,
        order_id: str | None,
        channel: str,
        contact: str | None,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO widget_order_subscriptions (
                    id, session_id, order_number, order_id, channel, contact, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subscription_id,
                    session_id,
                    order_number,
                    order_id,
                    channel,
                    contact,
                    to_iso(created_at),
                    to_iso(expires_at),
                ),
            )

    @retry_on_db_lock()
    def insert_event(
        self,
        event: str,
        session_id: str | None,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> int:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO analytics_events (event, session_id, payload, created_at) VALUES (?, ?, ?, ?)",
                (event, session_id, json.dumps(payload, default=str), to_iso(created_at)),
            )
            return cursor.lastrowid

    def list_events(self, event: str | None = None) -> list[dict[str, Any]]:
        sql = "SELECT * FROM analytics_events"
        params: tuple = ()
        if event:
            sql += " WHERE event = ?"
            params = (event,)
        with self.db.connection() as conn:
            rows = conn.execute(sql + " ORDER BY id", params).fetchall()
        return [{**dict(row), "payload": json.loads(row["payload"] or "{}")} for row in rows]

    def fetch_row(self, table: str, key_column: str, key: Any) -> dict[str, Any] | None:
        """Raw row lookup used by tests and support tooling."""
        if table not in _READABLE_TABLES or key_column not in ("id", "session_id", "order_number"):
            raise ValueError(f"Unsupported lookup: {table}.{key_column}")
        with self.db.connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE {key_column} = ?",  # nosec B608
                (key,),
            ).fetchone()
        return dict(row) if row else None


_READABLE_TABLES = frozenset(
    {
        "capsule_holds",
        "widget_shortlists",
        "widget_inspiration",
        "stylist_tickets",
        "csat_feedback",
        "widget_order_subscriptions",
    }
)
