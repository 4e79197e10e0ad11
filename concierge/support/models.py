"""
Support domain models: orders, timelines, return outcomes and the records
the widget persists (capsule holds, shortlists, tickets, subscriptions).
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from concierge.utils.dates import parse_dt, to_iso


class OrderItem(BaseModel):
    """One line of an order."""

    model_config = ConfigDict(extra="ignore")

    sku: str | None = None
    product_id: str | None = None
    title: str = ""
    quantity: int = 1
    price: float = 0.0
    custom: bool = False
    engraved: bool = False

    @property
    def is_final_sale(self) -> bool:
        return self.custom or self.engraved


class StatusHistoryEntry(BaseModel):
    label: str
    status: str
    date: datetime

    def to_public_dict(self) -> dict[str, Any]:
        return {"label": self.label, "status": self.status, "date": to_iso(self.date)}


class Order(BaseModel):
    id: str
    order_number: str
    customer_email: str
    postal_code: str
    status: str
    items: list[OrderItem] = Field(default_factory=list)
    shipped_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)

    @classmethod
    def from_db_row(cls, row: dict[str, Any], history: list[StatusHistoryEntry] | None = None) -> Order:
        return cls(
            id=row["id"],
            order_number=row["order_number"],
            customer_email=row["customer_email"],
            postal_code=row["postal_code"],
            status=row["status"],
            items=[OrderItem(**item) for item in json.loads(row["items"] or "[]")],
            shipped_at=parse_dt(row["shipped_at"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
            status_history=history or [],
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_email": self.customer_email,
            "postal_code": self.postal_code,
            "status": self.status,
            "items": json.dumps([item.model_dump() for item in self.items]),
            "shipped_at": to_iso(self.shipped_at),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class OrderTimeline(BaseModel):
    """Order status as shown to the shopper."""

    reference: str
    status: str
    entries: list[StatusHistoryEntry] = Field(default_factory=list)

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "status": self.status,
            "entries": [e.to_public_dict() for e in self.entries],
        }


class ReturnKind(str, Enum):
    RETURN = "return"
    RESIZE = "resize"


class IneligibleReason(str, Enum):
    """Exactly one reason is reported for an ineligible return."""

    NON_RETURNABLE = "non_returnable"
    NOT_SHIPPED = "not_shipped"
    WINDOW_EXPIRED = "window_expired"


class ReturnOutcome(BaseModel):
    """Result of a return/resize request: an RMA, or one ineligibility reason."""

    eligible: bool
    order_number: str
    kind: ReturnKind
    window_days: int
    rma_id: str | None = None
    status: str | None = None
    reason_code: IneligibleReason | None = None
    message: str = ""

    def to_public_dict(self) -> dict[str, Any]:
        if not self.eligible:
            return {
                "ineligible": {
                    "code": self.reason_code.value if self.reason_code else None,
                    "message": self.message,
                },
                "orderNumber": self.order_number,
                "kind": self.kind.value,
                "windowDays": self.window_days,
            }
        return {
            "rmaId": self.rma_id,
            "orderNumber": self.order_number,
            "kind": self.kind.value,
            "status": self.status,
            "windowDays": self.window_days,
            "message": self.message,
        }


class CapsuleHold(BaseModel):
    hold_id: str
    session_id: str
    product_ids: list[str]
    email: str | None = None
    order_number: str | None = None
    expires_at: datetime


class Shortlist(BaseModel):
    shortlist_id: str
    session_id: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    order_number: str | None = None
    expires_at: datetime

    @property
    def count(self) -> int:
        return len(self.items)


class Inspiration(BaseModel):
    inspiration_id: str
    session_id: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    order_number: str | None = None
    expires_at: datetime


class StylistTicket(BaseModel):
    ticket_id: str
    session_id: str
    email: str
    name: str | None = None
    notes: str | None = None
    shortlist: list[Any] = Field(default_factory=list)
    order_number: str | None = None
    status: str = "open"


class CsatFeedback(BaseModel):
    session_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None
    intent: str | None = None
    order_number: str | None = None


class OrderSubscription(BaseModel):
    subscription_id: str
    session_id: str
    order_number: str
    order_id: str | None = None
    channel: str = "sms"
    contact: str | None = None
    expires_at: datetime
    message: str = ""
