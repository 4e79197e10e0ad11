"""
Expiry of widget records.

Capsule holds, shortlists, inspiration boards and order subscriptions carry
an expires_at timestamp. Reads already ignore expired rows; this module
physically deletes them.

Usage:
    # On demand (cron, Cloud Scheduler)
    python -m concierge.storage.retention purge
    python -m concierge.storage.retention purge --dry-run

    # In-process, started by create_app when reaper_interval_seconds > 0
    reaper = RetentionReaper(db, interval_seconds=3600)
    reaper.start()
"""

from __future__ import annotations

import argparse
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from concierge.config import ConciergeSettings
from concierge.infrastructure.database import Database, retry_on_db_lock
from concierge.infrastructure.database_schema import TTL_TABLES
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, log_event
from concierge.utils.dates import to_iso, utc_now

logger = get_logger(__name__)


@retry_on_db_lock()
def purge_expired(
    db: Database,
    now: datetime | None = None,
    dry_run: bool = False,
) -> dict[str, int]:
    """
    Delete rows whose expires_at is at or before now from every TTL table.

    Side Effects:
        - Deletes from capsule_holds, widget_shortlists, widget_inspiration
          and widget_order_subscriptions (nothing when dry_run)
        - Committed in one transaction

    Args:
        db: Database handle
        now: Cutoff (defaults to current UTC time)
        dry_run: If True, only count what would be deleted

    Returns:
        Per-table counts of expired rows
    """
    cutoff = to_iso(now or utc_now())
    stats: dict[str, int] = {}
    prefix = "[DRY RUN] " if dry_run else ""

    with db.transaction() as conn:
        for table in TTL_TABLES:
            count = conn.execute(
                f"SELECT COUNT(*) FROM {table} WHERE expires_at <= ?",  # nosec B608
                (cutoff,),
            ).fetchone()[0]
            stats[table] = count

            if count and not dry_run:
                conn.execute(f"DELETE FROM {table} WHERE expires_at <= ?", (cutoff,))  # nosec B608
                counter(f"retention.purged.{table}", count)

            if count:
                logger.info("%sExpired rows in %s: %d", prefix, table, count)

    if not dry_run:
        log_event("retention.purge", cutoff=cutoff, total=sum(stats.values()))
    return stats


def get_retention_stats(db: Database, now: datetime | None = None) -> dict[str, dict[str, Any]]:
    """Live and expired row counts per TTL table."""
    cutoff = to_iso(now or utc_now())
    stats: dict[str, dict[str, Any]] = {}
    with db.connection() as conn:
        for table in TTL_TABLES:
            row = conn.execute(
                f"""
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN expires_at <= ? THEN 1 ELSE 0 END) AS expired,
                    MIN(expires_at) AS next_expiry
                FROM {table}
                """,  # nosec B608
                (cutoff,),
            ).fetchone()
            stats[table] = {
                "total": row["total"],
                "expired": row["expired"] or 0,
                "next_expiry": row["next_expiry"],
            }
    return stats


class RetentionReaper:
    """Background thread that runs purge_expired on an interval."""

    def __init__(self, db: Database, interval_seconds: float) -> None:
        self.db = db
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="concierge-retention", daemon=True
        )
        self._thread.start()
        logger.info("Retention reaper started (%ss interval)", self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                purge_expired(self.db)
            except Exception as e:
                # Keep the reaper alive; the next tick retries
                logger.error("Retention purge failed: %s", e)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Purge expired concierge widget records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    purge = subparsers.add_parser("purge", help="Delete expired rows from every TTL table")
    purge.add_argument("--dry-run", action="store_true", help="Only count expired rows")
    purge.add_argument("--db", type=Path, default=None, help="Database path (default from env)")

    stats_parser = subparsers.add_parser("stats", help="Show live/expired counts per table")
    stats_parser.add_argument("--db", type=Path, default=None, help="Database path (default from env)")

    args = parser.parse_args(argv)

    settings = ConciergeSettings.from_env()
    db = Database(args.db or settings.db_path)
    db.init()

    try:
        if args.command == "purge":
            stats = purge_expired(db, dry_run=args.dry_run)
            label = "Would delete" if args.dry_run else "Deleted"
            for table, count in stats.items():
                print(f"{label} {count:>6} from {table}")
        else:
            for table, table_stats in get_retention_stats(db).items():
                print(
                    f"{table:<28} total={table_stats['total']:<6} "
                    f"expired={table_stats['expired']:<6} next={table_stats['next_expiry']}"
                )
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
