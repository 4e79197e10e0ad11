"""
Order status and return services.

Business logic between the API routes / message resolver and the order
repository. Validation failures and missing orders raise typed errors;
an ineligible return is a normal ReturnOutcome, not an error.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from concierge.config import ConciergeSettings
from concierge.errors import OrderNotFoundError, ValidationError
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, log_event
from concierge.support.eligibility import check_eligibility
from concierge.support.models import Order, OrderTimeline, ReturnOutcome, StatusHistoryEntry
from concierge.support.repository import RETURN_STATUS, OrderRepository
from concierge.utils.dates import epoch_millis, utc_now
from concierge.utils.redaction import redact
from concierge.utils.validators import normalize_email, normalize_postal_code, validate_order_number

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_uppercase + string.digits

STATUS_LABELS: dict[str, str] = {
    "pending": "Order placed",
    "processing": "Being crafted",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "return-requested": "Return requested",
    "resize-requested": "Resize requested",
    "cancelled": "Cancelled",
}


def generate_reference(prefix: str, suffix_length: int, now: datetime | None = None) -> str:
    """`{prefix}-{epoch-ms}-{random A-Z0-9}` e.g. RMA-1718000000000-X7K2QP."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(suffix_length))
    return f"{prefix}-{epoch_millis(now)}-{suffix}"


class OrderService:
    """Order lookups and return/resize requests."""

    def __init__(self, orders: OrderRepository, settings: ConciergeSettings) -> None:
        self.orders = orders
        self.settings = settings

    def get_order_status(
        self,
        order_number: str | None = None,
        email: str | None = None,
        postal_code: str | None = None,
    ) -> OrderTimeline:
        """
        Look up an order by number, or by email + postal code.

        Raises:
            ValidationError: Neither an order number nor a full email/postal pair
            OrderNotFoundError: No matching order
        """
        order_number = validate_order_number(order_number)
        if order_number:
            order = self.orders.get_by_number(order_number)
            lookup = order_number
        else:
            email = normalize_email(email)
            postal_code = normalize_postal_code(postal_code)
            if not (email and postal_code):
                raise ValidationError("Provide an order number, or the email and postal code on the order")
            order = self.orders.find_by_email_and_postal_code(email, postal_code)
            lookup = redact(email)

        if order is None:
            counter("support.order_status.not_found")
            logger.info("Order lookup found nothing for %s", lookup)
            raise OrderNotFoundError("We couldn't find an order matching those details")

        entries = list(order.status_history)
        if not entries:
            entries = [
                StatusHistoryEntry(
                    label=STATUS_LABELS.get(order.status, order.status.replace("-", " ").capitalize()),
                    status=order.status,
                    date=order.updated_at,
                )
            ]

        counter("support.order_status.found")
        return OrderTimeline(reference=order.order_number, status=order.status, entries=entries)

    def create_return(
        self,
        order_id: str,
        reason: str | None,
        now: datetime | None = None,
    ) -> ReturnOutcome:
        """
        Open a return or resize for an order.

        Args:
            order_id: Internal order id or order number
            reason: Shopper's reason; mentioning a resize selects the resize window
            now: Evaluation time (defaults to current UTC time)

        Returns:
            ReturnOutcome with an RMA id, or with exactly one ineligibility reason

        Raises:
            ValidationError: Missing order id
            OrderNotFoundError: Unknown order
        """
        if not order_id or not order_id.strip():
            raise ValidationError("orderId is required")

        now = now or utc_now()
        reason = (reason or "").strip() or "unspecified"

        order = self.orders.get_by_id_or_number(order_id.strip())
        if order is None:
            raise OrderNotFoundError(f"Order {order_id.strip()} was not found")

        existing = self._open_request(order)
        if existing is not None:
            return existing

        result = check_eligibility(
            order,
            reason,
            now,
            return_window_days=self.settings.return_window_days,
            resize_window_days=self.settings.resize_window_days,
        )

        if not result.eligible:
            counter(f"support.returns.ineligible.{result.reason.value}")
            log_event(
                "return_ineligible",
                order_number=order.order_number,
                reason=result.reason.value,
                kind=result.kind.value,
            )
            return ReturnOutcome(
                eligible=False,
                order_number=order.order_number,
                kind=result.kind,
                window_days=result.window_days,
                reason_code=result.reason,
                message=result.message,
            )

        rma_id = generate_reference("RMA", 6, now)
        new_status = self.orders.open_return(
            order, rma_id, reason, result.kind, result.window_days, now
        )

        counter(f"support.returns.created.{result.kind.value}")
        log_event("return_created", order_number=order.order_number, rma_id=rma_id, kind=result.kind.value)
        return ReturnOutcome(
            eligible=True,
            order_number=order.order_number,
            kind=result.kind,
            window_days=result.window_days,
            rma_id=rma_id,
            status=new_status,
            message=f"Your {result.kind.value} is authorized. Reference {rma_id}.",
        )

    def _open_request(self, order: Order) -> ReturnOutcome | None:
        """The request already on file when the order is awaiting a return or resize."""
        kinds = {status: kind for kind, (status, _label) in RETURN_STATUS.items()}
        kind = kinds.get(order.status)
        if kind is None:
            return None
        requests = self.orders.list_return_requests(order.id)
        if not requests:
            return None

        latest = requests[-1]
        counter(f"support.returns.duplicate.{kind.value}")
        log_event("return_already_open", order_number=order.order_number, rma_id=latest["rma_id"])
        return ReturnOutcome(
            eligible=True,
            order_number=order.order_number,
            kind=kind,
            window_days=latest["window_days"],
            rma_id=latest["rma_id"],
            status=order.status,
            message=f"A {kind.value} is already open for {order.order_number}. Reference {latest['rma_id']}.",
        )
