"""Tests for slash command parsing."""

from __future__ import annotations

import pytest

from concierge.catalog.models import SortBy
from concierge.intents.commands import parse_command
from concierge.intents.patterns import FIND_PRODUCT, RETURN_EXCHANGE, TRACK_ORDER


class TestTrack:
    def test_track_with_order_number(self):
        command = parse_command("/track GG-12001")

        assert command.keyword == "track"
        assert command.intent == TRACK_ORDER
        assert command.params == {"order_number": "GG-12001"}

    def test_order_number_is_upper_cased(self):
        assert parse_command("/track gg-12001").params["order_number"] == "GG-12001"

    def test_track_without_number(self):
        command = parse_command("/track")

        assert command.intent == TRACK_ORDER
        assert command.params == {}


class TestReturns:
    def test_resize_sets_reason(self):
        command = parse_command("/resize GG-12001")

        assert command.intent == RETURN_EXCHANGE
        assert command.params == {"order_number": "GG-12001", "reason": "resize"}

    def test_resize_keeps_extra_text(self):
        command = parse_command("/resize GG-12001 half a size down")
        assert command.params["reason"] == "resize half a size down"

    def test_return_reason_is_rest_of_text(self):
        command = parse_command("/return GG-12004 changed my mind")
        assert command.params == {"order_number": "GG-12004", "reason": "changed my mind"}

    def test_return_without_reason(self):
        assert parse_command("/return GG-12004").params == {"order_number": "GG-12004"}


class TestFind:
    def test_find_extracts_filter_params(self):
        command = parse_command("/find rings under 2000")

        assert command.intent == FIND_PRODUCT
        assert command.params["category"] == "ring"
        assert command.params["price_lt"] == 2000.0

    def test_find_sort_phrase(self):
        assert parse_command("/shop cheapest necklaces").params["sort_by"] == SortBy.PRICE_ASC

    def test_find_falls_back_to_keyword_search(self):
        assert parse_command("/find sparkly").params == {"q": "sparkly"}


def test_help_has_no_intent():
    command = parse_command("/help")

    assert command is not None
    assert command.intent is None


@pytest.mark.parametrize("text", ["/dance now", "track GG-12001", "", None, "   "])
def test_non_commands_return_none(text):
    assert parse_command(text) is None
