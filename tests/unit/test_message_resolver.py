"""Tests for ConciergeResolver: slash commands and free text through to widget modules."""

from __future__ import annotations

import pytest

from concierge.catalog.providers import LocalDbProductProvider
from concierge.errors import ValidationError
from concierge.intents.patterns import INTENTS
from concierge.intents.resolver import ConciergeResolver
from concierge.observability.telemetry import get_counter


@pytest.fixture
def resolver(seeded_db, order_service, widget_service, settings):
    return ConciergeResolver(LocalDbProductProvider(seeded_db), order_service, widget_service, settings)


def _module(reply):
    assert len(reply.modules) == 1
    return reply.modules[0]


class TestIntentChooser:
    def test_help_command(self, resolver, widget_repository):
        reply = resolver.handle_message("/help", "sess-1")

        assert reply.intent == "unknown"
        assert reply.source == "command"
        module = _module(reply)
        assert module["type"] == "intent-chooser"
        assert [o["intent"] for o in module["options"]] == [i.name for i in INTENTS]

        [event] = widget_repository.list_events("intent_miss")
        assert event["payload"]["reason"] == "help_command"

    def test_unmatched_text(self, resolver, widget_repository):
        reply = resolver.handle_message("hello there", "sess-1")

        assert reply.intent == "unknown"
        assert reply.confidence == 0.0
        assert _module(reply)["type"] == "intent-chooser"
        assert get_counter("intents.miss.no_match") == 1
        assert widget_repository.list_events("intent_detected") == []

    def test_tie_offers_chooser_with_human_first(self, resolver, widget_repository):
        reply = resolver.handle_message("track return", "sess-1")

        assert reply.intent == "track_order"
        assert reply.confidence == 0.5
        assert _module(reply)["emphasizeHuman"] is True

        [event] = widget_repository.list_events("intent_miss")
        assert event["payload"]["reason"] == "low_confidence"
        assert event["payload"]["runnerUp"] == "return_exchange"

    def test_close_call_offers_chooser(self, resolver):
        reply = resolver.handle_message("I need to return my necklace", "sess-1")

        assert _module(reply)["type"] == "intent-chooser"
        assert _module(reply)["emphasizeHuman"] is False

    def test_session_required(self, resolver):
        with pytest.raises(ValidationError):
            resolver.handle_message("track my order", "")


class TestProducts:
    def test_free_text_search(self, resolver, widget_repository):
        reply = resolver.handle_message("show me rings under 2000", "sess-1")

        assert reply.intent == "find_product"
        assert reply.source == "matcher"
        module = _module(reply)
        assert module["type"] == "product-grid"
        assert module["filters"]["category"] == "ring"
        assert module["filters"]["priceLt"] == 2000
        assert {p["id"] for p in module["products"]} == {"r-halo", "r-solitaire", "r-custom"}
        assert reply.text == "Here are 3 pieces you might love."

        [event] = widget_repository.list_events("intent_detected")
        assert event["payload"] == {"intent": "find_product", "confidence": 1.0, "source": "matcher"}

    def test_empty_result_offers_suggestions(self, resolver):
        reply = resolver.handle_message("/find rings under 100", "sess-1")

        module = _module(reply)
        assert module["count"] == 0
        assert module["products"] == []
        assert module["suggestions"]
        assert reply.text.startswith("Nothing matches")

    def test_capsule_is_ready_to_ship_only(self, resolver):
        reply = resolver.handle_message("/capsule", "sess-1")

        module = _module(reply)
        assert module["type"] == "capsule-reserve"
        assert module["filters"]["readyToShip"] is True
        assert all(p["readyToShip"] for p in module["products"])
        assert module["count"] == 5


class TestTrackOrder:
    def test_command_with_order_number(self, resolver):
        reply = resolver.handle_message("/track GG-12001", "sess-1")

        assert reply.source == "command"
        assert reply.confidence == 1.0
        assert reply.text == "GG-12001: Shipped."
        module = _module(reply)
        assert module["type"] == "order-timeline"
        assert module["reference"] == "GG-12001"

    def test_order_number_found_in_free_text(self, resolver):
        reply = resolver.handle_message("Where is my order gg-12001?", "sess-1")

        assert reply.intent == "track_order"
        assert _module(reply)["type"] == "order-timeline"

    def test_unknown_order_asks_again(self, resolver):
        reply = resolver.handle_message("/track GG-99999", "sess-1")

        assert _module(reply) == {"type": "order-lookup", "orderNumber": "GG-99999"}

    def test_no_order_number_opens_lookup(self, resolver):
        reply = resolver.handle_message("/track", "sess-1")

        assert _module(reply) == {"type": "order-lookup"}


class TestReturns:
    def test_resize_inside_window(self, resolver):
        reply = resolver.handle_message("/resize GG-12001", "sess-1")

        module = _module(reply)
        assert module["type"] == "return-confirmation"
        assert module["status"] == "resize-requested"
        assert module["rmaId"].startswith("RMA-")

    def test_return_outside_window(self, resolver):
        reply = resolver.handle_message("/return GG-12001", "sess-1")

        module = _module(reply)
        assert module["type"] == "return-ineligible"
        assert module["ineligible"]["code"] == "window_expired"
        assert reply.text == "This order is outside its 30-day return window."

    def test_unknown_order_reopens_form(self, resolver):
        reply = resolver.handle_message("/return GG-99999", "sess-1")

        assert _module(reply) == {"type": "return-form", "orderNumber": "GG-99999"}

    @pytest.mark.parametrize("text", ["Can I resize GG-12001?", "I don't want to return GG-12001"])
    def test_free_text_only_prefills_form(self, resolver, order_repository, text):
        reply = resolver.handle_message(text, "sess-1")

        assert reply.intent == "return_exchange"
        assert reply.source == "matcher"
        assert _module(reply) == {"type": "return-form", "orderNumber": "GG-12001"}
        order = order_repository.get_by_number("GG-12001")
        assert order.status == "shipped"
        assert order_repository.list_return_requests(order.id) == []

    def test_repeated_command_reuses_request(self, resolver, order_repository):
        first = _module(resolver.handle_message("/resize GG-12001", "sess-1"))
        second = _module(resolver.handle_message("/resize GG-12001", "sess-1"))

        assert second["type"] == "return-confirmation"
        assert second["rmaId"] == first["rmaId"]
        order = order_repository.get_by_number("GG-12001")
        assert len(order_repository.list_return_requests(order.id)) == 1


@pytest.mark.parametrize(
    ("text", "intent", "module_type"),
    [
        ("do you offer financing?", "financing", "financing-options"),
        ("is there a warranty", "care_warranty", "care-info"),
        ("/stylist", "stylist_contact", "stylist-contact"),
        ("/feedback", "csat", "csat"),
    ],
)
def test_canned_replies(resolver, text, intent, module_type):
    reply = resolver.handle_message(text, "sess-1")

    assert reply.intent == intent
    assert _module(reply) == {"type": module_type}
    assert reply.text.startswith(("On it.", "Happy to"))
    assert get_counter(f"intents.detected.{intent}") == 1
