"""Pydantic request/response models for the concierge API.

JSON bodies use camelCase; Python attributes stay snake_case. Free-form
payloads (shortlist items, inspiration boards) are size- and depth-checked
before they reach the database.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from concierge.utils.validators import validate_order_number

# =============================================================================
# VALIDATION HELPERS
# =============================================================================

# Limits for free-form widget payloads
MAX_DICT_SIZE = 50  # Maximum number of keys in any dict / items in any list
MAX_STRING_LENGTH = 2_000  # Maximum string length in dict values
MAX_DICT_DEPTH = 4  # Maximum nesting depth


def validate_dict_structure(
    data: dict[str, Any],
    max_keys: int = MAX_DICT_SIZE,
    max_str_len: int = MAX_STRING_LENGTH,
    max_depth: int = MAX_DICT_DEPTH,
    current_depth: int = 0,
) -> None:
    """
    Validate dict structure before persisting it as JSON.

    Raises:
        ValueError: If the dict is too deep, too wide or holds oversized strings
    """
    if current_depth > max_depth:
        raise ValueError(f"Dict nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"Dict has too many keys: {len(data)} > {max_keys}")

    for key, value in data.items():
        if isinstance(key, str) and len(key) > 100:
            raise ValueError(f"Dict key too long: {len(key)} > 100")

        if isinstance(value, str):
            if len(value) > max_str_len:
                raise ValueError(f"String value too long: {len(value)} > {max_str_len}")
        elif isinstance(value, dict):
            validate_dict_structure(value, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(value, list):
            validate_list_structure(value, max_keys, max_str_len, max_depth, current_depth + 1)


def validate_list_structure(
    data: list[Any],
    max_keys: int = MAX_DICT_SIZE,
    max_str_len: int = MAX_STRING_LENGTH,
    max_depth: int = MAX_DICT_DEPTH,
    current_depth: int = 0,
) -> None:
    if current_depth > max_depth:
        raise ValueError(f"List nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"List too long: {len(data)} > {max_keys}")

    for item in data:
        if isinstance(item, dict):
            validate_dict_structure(item, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(item, list):
            validate_list_structure(item, max_keys, max_str_len, max_depth, current_depth + 1)
        elif isinstance(item, str) and len(item) > max_str_len:
            raise ValueError(f"String value too long in list: {len(item)} > {max_str_len}")


# =============================================================================
# SHARED MODELS
# =============================================================================


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input, serializes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderNumberMixin(CamelModel):
    order_number: str | None = None

    @field_validator("order_number")
    @classmethod
    def validate_order(cls, v: str | None) -> str | None:
        return validate_order_number(v)


class ErrorBody(BaseModel):
    code: str
    message: str
    invalid_fields: list[str] | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: ErrorBody


# =============================================================================
# CONCIERGE
# =============================================================================


class MessageRequest(CamelModel):
    text: str = Field(..., max_length=1_000)
    session_id: str = Field(..., min_length=1, max_length=128)


class ProductsResponse(CamelModel):
    products: list[dict[str, Any]]
    count: int
    filters: dict[str, Any]
    suggestions: list[dict[str, Any]] = Field(default_factory=list)
    source: str


# =============================================================================
# SUPPORT
# =============================================================================


class OrderStatusRequest(OrderNumberMixin):
    email: str | None = Field(default=None, max_length=254)
    postal_code: str | None = Field(default=None, max_length=16)


class ReturnRequest(CamelModel):
    order_id: str = Field(..., min_length=1, max_length=64)
    reason: str | None = Field(default=None, max_length=1_000)


class CapsuleRequest(OrderNumberMixin):
    session_id: str
    product_ids: list[str] = Field(..., min_length=1, max_length=MAX_DICT_SIZE)
    email: str | None = Field(default=None, max_length=254)


class CapsuleResponse(CamelModel):
    hold_id: str
    expires_at: str


class ItemsRequest(OrderNumberMixin):
    session_id: str
    items: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: list[dict[str, Any]]) -> list[dict[str, Any]]:
        validate_list_structure(v)
        return v


class ShortlistResponse(CamelModel):
    shortlist_id: str
    count: int
    expires_at: str


class InspirationResponse(CamelModel):
    inspiration_id: str
    expires_at: str


class StylistRequest(OrderNumberMixin):
    session_id: str
    email: str = Field(..., max_length=254)
    name: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=MAX_STRING_LENGTH)
    shortlist: list[Any] = Field(default_factory=list)

    @field_validator("shortlist")
    @classmethod
    def validate_shortlist(cls, v: list[Any]) -> list[Any]:
        validate_list_structure(v)
        return v


class StylistResponse(CamelModel):
    ticket_id: str


class CsatRequest(OrderNumberMixin):
    session_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(default=None, max_length=MAX_STRING_LENGTH)
    intent: str | None = Field(default=None, max_length=64)


class OrderUpdatesRequest(CamelModel):
    session_id: str
    order_number: str = Field(..., min_length=1, max_length=64)
    order_id: str | None = None
    channel: str | None = None
    contact: str | None = Field(default=None, max_length=254)


class OrderUpdatesResponse(CamelModel):
    subscription_id: str
    message: str
    expires_at: str
