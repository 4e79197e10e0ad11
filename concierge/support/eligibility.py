"""
Return eligibility rules.

Pure functions of order state and time. Checks run in a fixed order and
the first failure is the single reason reported:

1. any item is custom or engraved -> non_returnable
2. the order has not shipped      -> not_shipped
3. days since shipment > window   -> window_expired
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from concierge.config import RESIZE_WINDOW_DAYS, RETURN_WINDOW_DAYS
from concierge.support.models import IneligibleReason, Order, ReturnKind
from concierge.utils.dates import ensure_utc

# "resize", "resizing", "please resize"; "wrong size" stays a standard return
_RESIZE_PATTERN = re.compile(r"\bresiz", re.IGNORECASE)

INELIGIBLE_MESSAGES: dict[IneligibleReason, str] = {
    IneligibleReason.NON_RETURNABLE: (
        "Custom and engraved pieces are final sale, so this order can't be returned. "
        "A stylist can still help with sizing or repairs."
    ),
    IneligibleReason.NOT_SHIPPED: (
        "This order hasn't shipped yet. Once it arrives you can start a return or resize."
    ),
    IneligibleReason.WINDOW_EXPIRED: (
        "This order is outside its {window}-day {kind} window."
    ),
}


@dataclass(frozen=True)
class EligibilityResult:
    kind: ReturnKind
    window_days: int
    reason: IneligibleReason | None = None

    @property
    def eligible(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str:
        if self.reason is None:
            return ""
        return INELIGIBLE_MESSAGES[self.reason].format(window=self.window_days, kind=self.kind.value)


def classify_request(reason: str | None) -> ReturnKind:
    """Resize requests get the longer window."""
    if reason and _RESIZE_PATTERN.search(reason):
        return ReturnKind.RESIZE
    return ReturnKind.RETURN


def window_for(
    kind: ReturnKind,
    return_window_days: int = RETURN_WINDOW_DAYS,
    resize_window_days: int = RESIZE_WINDOW_DAYS,
) -> int:
    return resize_window_days if kind == ReturnKind.RESIZE else return_window_days


def check_eligibility(
    order: Order,
    reason: str | None,
    now: datetime,
    return_window_days: int = RETURN_WINDOW_DAYS,
    resize_window_days: int = RESIZE_WINDOW_DAYS,
) -> EligibilityResult:
    """
    Decide whether a return/resize may be opened for an order.

    Age is measured in whole calendar days between the shipment date and
    now (both UTC); a request on day == window is still eligible.
    """
    kind = classify_request(reason)
    window = window_for(kind, return_window_days, resize_window_days)

    if any(item.is_final_sale for item in order.items):
        return EligibilityResult(kind, window, IneligibleReason.NON_RETURNABLE)

    if order.shipped_at is None:
        return EligibilityResult(kind, window, IneligibleReason.NOT_SHIPPED)

    age_days = (ensure_utc(now).date() - ensure_utc(order.shipped_at).date()).days
    if age_days > window:
        return EligibilityResult(kind, window, IneligibleReason.WINDOW_EXPIRED)

    return EligibilityResult(kind, window)
