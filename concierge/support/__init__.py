"""
Support: order lookups, returns/resizes and widget follow-up records.
"""

from concierge.support.models import (
    IneligibleReason,
    Order,
    OrderItem,
    OrderTimeline,
    ReturnKind,
    ReturnOutcome,
    StatusHistoryEntry,
)
from concierge.support.order_service import OrderService
from concierge.support.widget_service import WidgetService

__all__ = [
    "IneligibleReason",
    "Order",
    "OrderItem",
    "OrderService",
    "OrderTimeline",
    "ReturnKind",
    "ReturnOutcome",
    "StatusHistoryEntry",
    "WidgetService",
]
