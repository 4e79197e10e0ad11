"""
Concierge endpoints: product search and chat messages.

Handlers are plain `def`: provider calls block (sqlite, HTTP) and run in
FastAPI's threadpool.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from concierge.api.dependencies import get_provider, get_resolver, get_settings
from concierge.api.models import ErrorResponse, MessageRequest, ProductsResponse
from concierge.catalog.models import SortBy
from concierge.catalog.providers.base import ProductProvider
from concierge.catalog.suggestions import suggest_alternatives
from concierge.catalog.translator import build_filter
from concierge.config import PRODUCT_LIMIT_MAX, ConciergeSettings
from concierge.intents.patterns import FIND_PRODUCT
from concierge.intents.resolver import ConciergeResolver
from concierge.observability.logging import get_logger

router = APIRouter(
    prefix="/api/concierge",
    tags=["concierge"],
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
logger = get_logger(__name__)


@router.get("/products", response_model=ProductsResponse)
def list_products(
    q: str | None = Query(None, max_length=200),
    category: str | None = Query(None, max_length=64),
    tags: str | None = Query(None, description="Comma-separated; matches any tag"),
    price_lt: float | None = Query(None, alias="priceLt", gt=0),
    price_gte: float | None = Query(None, alias="priceGte", ge=0),
    ready_to_ship: bool | None = Query(None, alias="readyToShip"),
    featured_only: bool | None = Query(None, alias="featuredOnly"),
    sort_by: SortBy | None = Query(None, alias="sortBy"),
    limit: int | None = Query(None, ge=1, le=PRODUCT_LIMIT_MAX),
    provider: ProductProvider = Depends(get_provider),
    settings: ConciergeSettings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Query the catalog.

    An empty result is still a 200; it carries up to three suggested
    alternative filters instead of a silently broadened query.
    """
    params: dict[str, Any] = {
        "q": q,
        "category": category,
        "tags": tags,
        "price_lt": price_lt,
        "price_gte": price_gte,
        "ready_to_ship": ready_to_ship,
        "featured_only": featured_only,
        "sort_by": sort_by,
        "limit": limit,
    }
    product_filter = build_filter(FIND_PRODUCT, params, settings)
    result = provider.query_products(product_filter)

    suggestions = []
    if result.is_empty:
        suggestions = [
            s.to_public_dict()
            for s in suggest_alternatives(product_filter, settings.max_suggestions)
        ]

    return {
        "products": [p.summary() for p in result.products],
        "count": result.count,
        "filters": product_filter.to_public_dict(),
        "suggestions": suggestions,
        "source": result.source,
    }


@router.post("/message")
def post_message(
    request: MessageRequest,
    resolver: ConciergeResolver = Depends(get_resolver),
) -> dict[str, Any]:
    """Resolve one chat message into a concierge reply."""
    reply = resolver.handle_message(request.text, request.session_id)
    return reply.to_public_dict()
