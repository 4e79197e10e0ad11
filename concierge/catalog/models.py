"""
Catalog domain models.

Product is owned by the catalog collection and is read-only from the
concierge's point of view. ProductFilter is a transient value object built
per request; FilterSuggestion is an explicit alternative offered to the
shopper when a filter matches nothing.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from concierge.utils.dates import utc_now


class SortBy(str, Enum):
    """Sort order for product queries."""

    FEATURED = "featured"  # featured_in_widget first, then newest
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NEWEST = "newest"


class Product(BaseModel):
    """A catalog item as seen by the concierge."""

    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    title: str
    price: float = Field(..., ge=0)
    category: str
    tags: tuple[str, ...] = Field(default_factory=tuple)
    ready_to_ship: bool = False
    featured_in_widget: bool = False
    metal: str | None = None
    image_url: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        return tuple(sorted({str(tag).strip().lower() for tag in v if str(tag).strip()}))

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(self.tags)

    def summary(self) -> dict[str, Any]:
        """Compact shape used in widget modules and shortlists."""
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "price": self.price,
            "category": self.category,
            "readyToShip": self.ready_to_ship,
            "metal": self.metal,
            "imageUrl": self.image_url,
        }


class ProductFilter(BaseModel):
    """
    Product query built from an intent and extracted parameters.

    Price bounds are half-open: price_gte <= price < price_lt.
    Tags match on any overlap, never all-of.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    q: str | None = None
    category: str | None = None
    tags: tuple[str, ...] = Field(default_factory=tuple)
    price_gte: float | None = Field(default=None, ge=0)
    price_lt: float | None = Field(default=None, gt=0)
    ready_to_ship: bool | None = None
    featured_only: bool = False
    sort_by: SortBy = SortBy.FEATURED
    limit: int = Field(default=12, ge=1, le=48)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(sorted({str(tag).strip().lower() for tag in v if str(tag).strip()}))

    @field_validator("category", "q", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def matches(self, product: Product) -> bool:
        """In-process predicate with the same semantics as the SQL query."""
        if self.category and product.category != self.category:
            return False
        if self.tags and not (set(self.tags) & product.tag_set):
            return False
        if self.price_gte is not None and product.price < self.price_gte:
            return False
        if self.price_lt is not None and product.price >= self.price_lt:
            return False
        if self.ready_to_ship is not None and product.ready_to_ship != self.ready_to_ship:
            return False
        if self.featured_only and not product.featured_in_widget:
            return False
        if self.q:
            needle = self.q.lower()
            haystack = f"{product.title} {product.category} {' '.join(product.tags)}".lower()
            if needle not in haystack:
                return False
        return True

    def criteria(self) -> dict[str, Any]:
        """The fields that narrow the result set (sort and limit excluded)."""
        return {
            "q": self.q,
            "category": self.category,
            "tags": self.tags,
            "price_gte": self.price_gte,
            "price_lt": self.price_lt,
            "ready_to_ship": self.ready_to_ship,
            "featured_only": self.featured_only,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """camelCase echo returned to the widget."""
        return {
            "q": self.q,
            "category": self.category,
            "tags": list(self.tags),
            "priceGte": self.price_gte,
            "priceLt": self.price_lt,
            "readyToShip": self.ready_to_ship,
            "featuredOnly": self.featured_only,
            "sortBy": self.sort_by.value,
            "limit": self.limit,
        }

    def to_query_params(self) -> dict[str, str]:
        """Query string for the remote catalog service (unset fields omitted)."""
        params: dict[str, str] = {"sortBy": self.sort_by.value, "limit": str(self.limit)}
        if self.q:
            params["q"] = self.q
        if self.category:
            params["category"] = self.category
        if self.tags:
            params["tags"] = ",".join(self.tags)
        if self.price_gte is not None:
            params["priceGte"] = f"{self.price_gte:g}"
        if self.price_lt is not None:
            params["priceLt"] = f"{self.price_lt:g}"
        if self.ready_to_ship is not None:
            params["readyToShip"] = "true" if self.ready_to_ship else "false"
        if self.featured_only:
            params["featuredOnly"] = "true"
        return params


class ProductList(BaseModel):
    """Result of a provider query."""

    products: list[Product] = Field(default_factory=list)
    source: str = "unknown"

    @property
    def count(self) -> int:
        return len(self.products)

    @property
    def is_empty(self) -> bool:
        return not self.products


class FilterSuggestion(BaseModel):
    """An explicit alternative filter the shopper can choose to apply."""

    model_config = ConfigDict(frozen=True)

    slug: str
    label: str
    filters: ProductFilter

    def to_public_dict(self) -> dict[str, Any]:
        return {"slug": self.slug, "label": self.label, "filters": self.filters.to_public_dict()}
