"""
Widget follow-up services.

Each call validates its input, persists one record and returns what the
widget needs to confirm it (an id, and expires_at where the record has a
lifetime). Every record accepts an optional order_number and stores it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

from concierge.config import ConciergeSettings
from concierge.errors import OrderNotFoundError, ValidationError
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter
from concierge.support.models import (
    CapsuleHold,
    CsatFeedback,
    Inspiration,
    OrderSubscription,
    Shortlist,
    StylistTicket,
)
from concierge.support.order_service import generate_reference
from concierge.support.repository import OrderRepository
from concierge.support.widget_repository import WidgetRepository
from concierge.utils.dates import utc_now
from concierge.utils.redaction import redact, redact_payload
from concierge.utils.validators import normalize_email, validate_order_number, validate_session_id

logger = get_logger(__name__)

SUBSCRIPTION_CHANNELS = ("sms", "email")


class WidgetService:
    """Capsule holds, shortlists, inspiration boards, stylist tickets, CSAT, subscriptions, events."""

    def __init__(
        self,
        widgets: WidgetRepository,
        orders: OrderRepository,
        settings: ConciergeSettings,
    ) -> None:
        self.widgets = widgets
        self.orders = orders
        self.settings = settings

    def hold_capsule(
        self,
        session_id: str,
        product_ids: list[str],
        email: str | None = None,
        order_number: str | None = None,
        now: datetime | None = None,
    ) -> CapsuleHold:
        session_id = validate_session_id(session_id)
        product_ids = [p.strip() for p in product_ids or [] if p and p.strip()]
        if not product_ids:
            raise ValidationError("Choose at least one piece to hold")

        now = now or utc_now()
        hold = CapsuleHold(
            hold_id=f"hold_{uuid.uuid4().hex[:12]}",
            session_id=session_id,
            product_ids=product_ids,
            email=normalize_email(email),
            order_number=validate_order_number(order_number),
            expires_at=now + timedelta(days=self.settings.capsule_hold_ttl_days),
        )
        self.widgets.insert_capsule_hold(
            hold.hold_id,
            hold.session_id,
            hold.product_ids,
            hold.email,
            hold.order_number,
            now,
            hold.expires_at,
        )
        counter("widget.capsule_holds")
        logger.info("Capsule hold %s for %d products", hold.hold_id, len(product_ids))
        return hold

    def save_shortlist(
        self,
        session_id: str,
        items: list[dict[str, Any]],
        order_number: str | None = None,
        now: datetime | None = None,
    ) -> Shortlist:
        """Upsert the session's shortlist; every save pushes expiry out again."""
        session_id = validate_session_id(session_id)
        now = now or utc_now()
        expires_at = now + timedelta(days=self.settings.shortlist_ttl_days)
        items = list(items or [])
        order_number = validate_order_number(order_number)

        shortlist_id = self.widgets.upsert_shortlist(
            str(uuid.uuid4()), session_id, items, order_number, now, expires_at
        )
        counter("widget.shortlists.saved")
        return Shortlist(
            shortlist_id=shortlist_id,
            session_id=session_id,
            items=items,
            order_number=order_number,
            expires_at=expires_at,
        )

    def get_shortlist(self, session_id: str, now: datetime | None = None) -> Shortlist | None:
        return self.widgets.get_shortlist(validate_session_id(session_id), now or utc_now())

    def save_inspiration(
        self,
        session_id: str,
        items: list[dict[str, Any]],
        order_number: str | None = None,
        now: datetime | None = None,
    ) -> Inspiration:
        session_id = validate_session_id(session_id)
        if not items:
            raise ValidationError("Nothing to save")

        now = now or utc_now()
        inspiration = Inspiration(
            inspiration_id=str(uuid.uuid4()),
            session_id=session_id,
            items=list(items),
            order_number=validate_order_number(order_number),
            expires_at=now + timedelta(days=self.settings.inspiration_ttl_days),
        )
        self.widgets.insert_inspiration(
            inspiration.inspiration_id,
            inspiration.session_id,
            inspiration.items,
            inspiration.order_number,
            now,
            inspiration.expires_at,
        )
        counter("widget.inspiration.saved")
        return inspiration

    def open_stylist_ticket(
        self,
        session_id: str,
        email: str | None,
        name: str | None = None,
        notes: str | None = None,
        shortlist: list[Any] | None = None,
        order_number: str | None = None,
        now: datetime | None = None,
    ) -> StylistTicket:
        session_id = validate_session_id(session_id)
        email = normalize_email(email)
        if not email:
            raise ValidationError("An email is required so a stylist can reach you")

        now = now or utc_now()
        ticket = StylistTicket(
            ticket_id=generate_reference("ST", 4, now),
            session_id=session_id,
            email=email,
            name=(name or "").strip() or None,
            notes=(notes or "").strip() or None,
            shortlist=list(shortlist or []),
            order_number=validate_order_number(order_number),
        )
        self.widgets.insert_stylist_ticket(
            ticket.ticket_id,
            ticket.session_id,
            ticket.name,
            ticket.email,
            ticket.notes,
            ticket.shortlist,
            ticket.order_number,
            now,
        )
        counter("widget.stylist_tickets")
        logger.info("Stylist ticket %s opened for %s", ticket.ticket_id, redact(email))
        return ticket

    def record_csat(
        self,
        session_id: str,
        rating: int,
        comment: str | None = None,
        intent: str | None = None,
        order_number: str | None = None,
        now: datetime | None = None,
    ) -> CsatFeedback:
        session_id = validate_session_id(session_id)
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be a whole number from 1 to 5")

        feedback = CsatFeedback(
            session_id=session_id,
            rating=rating,
            comment=(comment or "").strip() or None,
            intent=intent,
            order_number=validate_order_number(order_number),
        )
        self.widgets.insert_csat(
            feedback.session_id,
            feedback.rating,
            feedback.comment,
            feedback.intent,
            feedback.order_number,
            now or utc_now(),
        )
        counter(f"widget.csat.rating_{rating}")
        return feedback

    def subscribe_order_updates(
        self,
        session_id: str,
        order_number: str | None,
        order_id: str | None = None,
        channel: str | None = None,
        contact: str | None = None,
        now: datetime | None = None,
    ) -> OrderSubscription:
        """
        Subscribe a session to status updates for an existing order.

        Raises:
            ValidationError: Missing order number or unsupported channel
            OrderNotFoundError: The order does not exist
        """
        session_id = validate_session_id(session_id)
        order_number = validate_order_number(order_number)
        if not order_number:
            raise ValidationError("orderNumber is required")

        channel = (channel or "sms").strip().lower()
        if channel not in SUBSCRIPTION_CHANNELS:
            raise ValidationError(f"Unsupported channel {channel!r}")

        order = self.orders.get_by_number(order_number)
        if order is None:
            raise OrderNotFoundError(f"Order {order_number} was not found")

        now = now or utc_now()
        subscription = OrderSubscription(
            subscription_id=str(uuid.uuid4()),
            session_id=session_id,
            order_number=order.order_number,
            order_id=order_id or order.id,
            channel=channel,
            contact=(contact or "").strip() or None,
            expires_at=now + timedelta(days=self.settings.order_subscription_ttl_days),
            message=f"We'll send {channel} updates for {order.order_number} as it moves.",
        )
        self.widgets.insert_order_subscription(
            subscription.subscription_id,
            subscription.session_id,
            subscription.order_number,
            subscription.order_id,
            subscription.channel,
            subscription.contact,
            now,
            subscription.expires_at,
        )
        counter("widget.order_subscriptions")
        return subscription

    def track_event(
        self,
        event: str,
        session_id: str | None = None,
        payload: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> int:
        """Store an analytics event; contact fields in the payload are hashed first."""
        if not event or not event.strip():
            raise ValidationError("event is required")

        event_id = self.widgets.insert_event(
            event.strip(), session_id, redact_payload(payload or {}), now or utc_now()
        )
        counter(f"widget.events.{event.strip()}")
        return event_id
