"""
Slash command parser.

"/track GG-12001" -> track_order {order_number: "GG-12001"}
"/resize GG-12001" -> return_exchange {order_number, reason: "resize"}
"/find rings under 2000" -> find_product with translator params

Unknown keywords return None so the caller can treat the whole text as
free-form input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from concierge.catalog.translator import extract_product_params
from concierge.intents.patterns import COMMANDS, FIND_PRODUCT, RETURN_EXCHANGE, TRACK_ORDER
from concierge.utils.validators import find_order_number


@dataclass(frozen=True)
class ParsedCommand:
    keyword: str
    intent: str | None  # None: show the intent chooser (/help)
    args: str = ""
    params: dict[str, Any] = field(default_factory=dict)


def _split_order_number(args: str) -> tuple[str | None, str]:
    """Leading order reference and the remaining text."""
    head, _, rest = args.partition(" ")
    order_number = find_order_number(head)
    if order_number:
        return order_number, rest.strip()
    return find_order_number(args), args


def parse_command(text: str | None) -> ParsedCommand | None:
    if not text:
        return None

    stripped = text.strip()
    if not stripped.startswith("/"):
        return None

    keyword, _, args = stripped[1:].partition(" ")
    keyword = keyword.lower()
    args = args.strip()

    if keyword not in COMMANDS:
        return None

    intent = COMMANDS[keyword]
    params: dict[str, Any] = {}

    if intent == TRACK_ORDER:
        order_number, _ = _split_order_number(args)
        if order_number:
            params["order_number"] = order_number

    elif intent == RETURN_EXCHANGE:
        order_number, rest = _split_order_number(args)
        if order_number:
            params["order_number"] = order_number
        if keyword == "resize":
            params["reason"] = f"resize {rest}".strip() if rest else "resize"
        elif rest:
            params["reason"] = rest

    elif intent == FIND_PRODUCT:
        params.update(extract_product_params(args))
        if args and not params:
            params["q"] = args

    return ParsedCommand(keyword=keyword, intent=intent, args=args, params=params)
