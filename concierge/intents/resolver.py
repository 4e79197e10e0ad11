"""
Message resolver: one chat message in, one concierge reply out.

Flow:
1. Slash commands are parsed first; unknown commands fall through.
2. Free text goes through the intent matcher. Unknown or ambiguous results
   get the intent chooser instead of a guess.
3. The resolved intent runs against the catalog or the order services.

Every resolution records an intent_detected or intent_miss analytics event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from concierge.catalog.providers.base import ProductProvider
from concierge.catalog.suggestions import suggest_alternatives
from concierge.catalog.translator import build_filter
from concierge.config import ConciergeSettings
from concierge.errors import OrderNotFoundError
from concierge.intents.commands import parse_command
from concierge.intents.matcher import IntentMatch, IntentMatcher
from concierge.intents.patterns import (
    CAPSULE_RESERVE,
    FIND_PRODUCT,
    INTENTS,
    INTENTS_BY_NAME,
    RETURN_EXCHANGE,
    TRACK_ORDER,
    UNKNOWN_INTENT,
)
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, time_block
from concierge.support.order_service import OrderService
from concierge.support.widget_service import WidgetService
from concierge.utils.validators import find_order_number, validate_session_id

logger = get_logger(__name__)

# At or below this confidence (a dead heat) the chooser also offers a human stylist up front
_HUMAN_EMPHASIS_CONFIDENCE = 0.5


class ConciergeReply(BaseModel):
    """What the widget renders for one message."""

    intent: str
    confidence: float = 0.0
    source: str = "matcher"  # "command" | "matcher"
    text: str
    modules: list[dict[str, Any]] = Field(default_factory=list)

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent,
            "confidence": self.confidence,
            "source": self.source,
            "text": self.text,
            "modules": self.modules,
        }


def intent_chooser_module(emphasize_human: bool = False) -> dict[str, Any]:
    return {
        "type": "intent-chooser",
        "headline": "What do you need?",
        "description": "Pick an option to jump right into the right flow.",
        "options": [{"intent": i.name, "label": i.label} for i in INTENTS],
        "emphasizeHuman": emphasize_human,
    }


class ConciergeResolver:
    def __init__(
        self,
        provider: ProductProvider,
        orders: OrderService,
        widgets: WidgetService,
        settings: ConciergeSettings,
        matcher: IntentMatcher | None = None,
    ) -> None:
        self.provider = provider
        self.orders = orders
        self.widgets = widgets
        self.settings = settings
        self.matcher = matcher or IntentMatcher(threshold=settings.intent_confidence_threshold)

    def handle_message(
        self, text: str, session_id: str, now: datetime | None = None
    ) -> ConciergeReply:
        session_id = validate_session_id(session_id)
        text = (text or "").strip()

        command = parse_command(text)
        if command is not None:
            if command.intent is None:
                self._record_miss(session_id, text, "help_command")
                return self._chooser(UNKNOWN_INTENT, 0.0, "command", "Here's what I can help with.")
            intent, confidence, source, params = command.intent, 1.0, "command", dict(command.params)
        else:
            match = self.matcher.match(text)
            if match.is_unknown:
                self._record_miss(session_id, text, "no_match")
                return self._chooser(
                    UNKNOWN_INTENT, 0.0, "matcher", "Got it. Pick what you need and I'll route you quickly."
                )
            if match.ambiguous:
                self._record_miss(session_id, text, "low_confidence", match)
                return self._chooser(
                    match.intent,
                    match.confidence,
                    "matcher",
                    "I want to be sure I'm helping with the right thing. Choose one below.",
                    emphasize_human=match.confidence <= _HUMAN_EMPHASIS_CONFIDENCE,
                )
            intent, confidence, source, params = match.intent, match.confidence, "matcher", {}

        self.widgets.track_event(
            "intent_detected",
            session_id,
            {"intent": intent, "confidence": confidence, "source": source},
            now,
        )
        counter(f"intents.detected.{intent}")

        with time_block(f"intents.resolve.{intent}"):
            if intent in (FIND_PRODUCT, CAPSULE_RESERVE):
                reply = self._products(intent, params, text if source == "matcher" else None)
            elif intent == TRACK_ORDER:
                reply = self._track_order(params, text)
            elif intent == RETURN_EXCHANGE:
                reply = self._return_exchange(params, text, source, now)
            else:
                definition = INTENTS_BY_NAME[intent]
                module = {"type": definition.module} if definition.module else None
                reply = ConciergeReply(
                    intent=intent,
                    text=definition.reply,
                    modules=[module] if module else [],
                )

        reply.confidence = confidence
        reply.source = source
        return reply

    def _chooser(
        self,
        intent: str,
        confidence: float,
        source: str,
        text: str,
        emphasize_human: bool = False,
    ) -> ConciergeReply:
        return ConciergeReply(
            intent=intent,
            confidence=confidence,
            source=source,
            text=text,
            modules=[intent_chooser_module(emphasize_human)],
        )

    def _record_miss(
        self, session_id: str, text: str, reason: str, match: IntentMatch | None = None
    ) -> None:
        payload: dict[str, Any] = {"reason": reason, "text": text}
        if match is not None:
            payload.update(
                intent=match.intent, confidence=match.confidence, runnerUp=match.runner_up
            )
        self.widgets.track_event("intent_miss", session_id, payload)
        counter(f"intents.miss.{reason}")

    def _products(self, intent: str, params: dict[str, Any], text: str | None) -> ConciergeReply:
        product_filter = build_filter(intent, params, self.settings, text=text)
        result = self.provider.query_products(product_filter)

        module: dict[str, Any] = {
            "type": "capsule-reserve" if intent == CAPSULE_RESERVE else "product-grid",
            "products": [p.summary() for p in result.products],
            "count": result.count,
            "filters": product_filter.to_public_dict(),
            "source": result.source,
        }

        if result.is_empty:
            suggestions = suggest_alternatives(product_filter, self.settings.max_suggestions)
            module["suggestions"] = [s.to_public_dict() for s in suggestions]
            message = "Nothing matches that exactly. Want to try one of these instead?"
        elif intent == CAPSULE_RESERVE:
            message = INTENTS_BY_NAME[CAPSULE_RESERVE].reply
        else:
            plural = "piece" if result.count == 1 else "pieces"
            message = f"Here are {result.count} {plural} you might love."

        return ConciergeReply(intent=intent, text=message, modules=[module])

    def _track_order(self, params: dict[str, Any], text: str) -> ConciergeReply:
        order_number = params.get("order_number") or find_order_number(text)
        if not order_number:
            return ConciergeReply(
                intent=TRACK_ORDER,
                text="Happy to check. What's your order number? You can also use your email and postal code.",
                modules=[{"type": "order-lookup"}],
            )

        try:
            timeline = self.orders.get_order_status(order_number=order_number)
        except OrderNotFoundError:
            return ConciergeReply(
                intent=TRACK_ORDER,
                text=f"I couldn't find {order_number}. Double-check the number or look it up by email.",
                modules=[{"type": "order-lookup", "orderNumber": order_number}],
            )

        latest = timeline.entries[-1].label if timeline.entries else timeline.status
        return ConciergeReply(
            intent=TRACK_ORDER,
            text=f"{timeline.reference}: {latest}.",
            modules=[{"type": "order-timeline", **timeline.to_public_dict()}],
        )

    def _return_exchange(
        self, params: dict[str, Any], text: str, source: str, now: datetime | None
    ) -> ConciergeReply:
        order_number = params.get("order_number") or find_order_number(text)
        if not order_number:
            return ConciergeReply(
                intent=RETURN_EXCHANGE,
                text="I can start that. Which order is it for?",
                modules=[{"type": "return-form"}],
            )

        # Free text only pre-fills the form; filing needs /return, /resize or the returns route.
        if source != "command":
            return ConciergeReply(
                intent=RETURN_EXCHANGE,
                text=f"I can start that for {order_number}. Confirm the details below.",
                modules=[{"type": "return-form", "orderNumber": order_number}],
            )

        reason = params.get("reason") or text
        try:
            outcome = self.orders.create_return(order_number, reason, now)
        except OrderNotFoundError:
            return ConciergeReply(
                intent=RETURN_EXCHANGE,
                text=f"I couldn't find {order_number}. Which order is it for?",
                modules=[{"type": "return-form", "orderNumber": order_number}],
            )

        if outcome.eligible:
            return ConciergeReply(
                intent=RETURN_EXCHANGE,
                text=outcome.message,
                modules=[{"type": "return-confirmation", **outcome.to_public_dict()}],
            )
        return ConciergeReply(
            intent=RETURN_EXCHANGE,
            text=outcome.message,
            modules=[{"type": "return-ineligible", **outcome.to_public_dict()}],
        )
