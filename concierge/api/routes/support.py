"""
Support endpoints: order status, returns and widget follow-up records.

Typed errors (validation, order not found) propagate to the app-level
ConciergeError handler. An ineligible return is a 200 with an
`ineligible` body.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from concierge.api.dependencies import get_order_service, get_widget_service
from concierge.api.models import (
    CapsuleRequest,
    CapsuleResponse,
    CsatRequest,
    ErrorResponse,
    InspirationResponse,
    ItemsRequest,
    OrderStatusRequest,
    OrderUpdatesRequest,
    OrderUpdatesResponse,
    ReturnRequest,
    ShortlistResponse,
    StylistRequest,
    StylistResponse,
)
from concierge.observability.logging import get_logger
from concierge.support.order_service import OrderService
from concierge.support.widget_service import WidgetService
from concierge.utils.dates import to_iso

router = APIRouter(
    prefix="/api/support",
    tags=["support"],
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
logger = get_logger(__name__)


@router.post("/order-status")
def order_status(
    request: OrderStatusRequest,
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    timeline = orders.get_order_status(
        order_number=request.order_number,
        email=request.email,
        postal_code=request.postal_code,
    )
    return timeline.to_public_dict()


@router.post("/returns")
def create_return(
    request: ReturnRequest,
    orders: OrderService = Depends(get_order_service),
) -> dict[str, Any]:
    outcome = orders.create_return(request.order_id, request.reason)
    return outcome.to_public_dict()


@router.post("/capsule", response_model=CapsuleResponse)
def hold_capsule(
    request: CapsuleRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> CapsuleResponse:
    hold = widgets.hold_capsule(
        request.session_id,
        request.product_ids,
        email=request.email,
        order_number=request.order_number,
    )
    return CapsuleResponse(hold_id=hold.hold_id, expires_at=to_iso(hold.expires_at))


@router.post("/shortlist", response_model=ShortlistResponse)
def save_shortlist(
    request: ItemsRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> ShortlistResponse:
    shortlist = widgets.save_shortlist(
        request.session_id, request.items, order_number=request.order_number
    )
    return ShortlistResponse(
        shortlist_id=shortlist.shortlist_id,
        count=shortlist.count,
        expires_at=to_iso(shortlist.expires_at),
    )


@router.post("/inspiration", response_model=InspirationResponse)
def save_inspiration(
    request: ItemsRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> InspirationResponse:
    inspiration = widgets.save_inspiration(
        request.session_id, request.items, order_number=request.order_number
    )
    return InspirationResponse(
        inspiration_id=inspiration.inspiration_id,
        expires_at=to_iso(inspiration.expires_at),
    )


@router.post("/stylist", response_model=StylistResponse)
def open_stylist_ticket(
    request: StylistRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> StylistResponse:
    ticket = widgets.open_stylist_ticket(
        request.session_id,
        request.email,
        name=request.name,
        notes=request.notes,
        shortlist=request.shortlist,
        order_number=request.order_number,
    )
    return StylistResponse(ticket_id=ticket.ticket_id)


@router.post("/csat")
def record_csat(
    request: CsatRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> dict[str, bool]:
    widgets.record_csat(
        request.session_id,
        request.rating,
        comment=request.comment,
        intent=request.intent,
        order_number=request.order_number,
    )
    return {"ok": True}


@router.post("/order-updates", response_model=OrderUpdatesResponse)
def subscribe_order_updates(
    request: OrderUpdatesRequest,
    widgets: WidgetService = Depends(get_widget_service),
) -> OrderUpdatesResponse:
    subscription = widgets.subscribe_order_updates(
        request.session_id,
        request.order_number,
        order_id=request.order_id,
        channel=request.channel,
        contact=request.contact,
    )
    return OrderUpdatesResponse(
        subscription_id=subscription.subscription_id,
        message=subscription.message,
        expires_at=to_iso(subscription.expires_at),
    )
