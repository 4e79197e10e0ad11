"""
Tests for OrderService: status lookups and return/resize requests.

The seeded order GG-12001 shipped 40 days ago: outside the 30-day return
window, inside the 60-day resize window.
"""

from __future__ import annotations

import re
from datetime import timedelta

import pytest

from concierge.errors import OrderNotFoundError, ValidationError
from concierge.observability.telemetry import get_counter
from concierge.support.models import IneligibleReason, Order, OrderItem, ReturnKind
from concierge.support.order_service import generate_reference


class TestOrderStatus:
    def test_lookup_by_number(self, order_service):
        timeline = order_service.get_order_status(order_number="GG-12001")

        assert timeline.reference == "GG-12001"
        assert timeline.status == "shipped"
        assert [e.label for e in timeline.entries] == ["Order placed", "Shipped"]

    @pytest.mark.parametrize("number", ["gg-12001", "#GG-12001", "  GG-12001 "])
    def test_number_is_normalized(self, order_service, number):
        assert order_service.get_order_status(order_number=number).reference == "GG-12001"

    def test_lookup_by_email_and_postal_code(self, order_service):
        timeline = order_service.get_order_status(email=" AVERY@Example.com", postal_code="100 01")
        assert timeline.reference == "GG-12001"

    def test_postal_code_whitespace_and_case(self, order_service, order_repository):
        order = order_repository.get_by_number("GG-12001")
        order_repository.save(
            order.model_copy(
                update={"id": "ord_uk", "order_number": "GG-20001", "postal_code": "SW1A 1AA"}
            )
        )

        timeline = order_service.get_order_status(email="avery@example.com", postal_code="sw1a1aa")

        assert timeline.reference == "GG-20001"

    @pytest.mark.parametrize(
        "kwargs",
        [{}, {"email": "avery@example.com"}, {"postal_code": "10001"}, {"order_number": "  "}],
    )
    def test_missing_keys(self, order_service, kwargs):
        with pytest.raises(ValidationError):
            order_service.get_order_status(**kwargs)

    def test_invalid_email(self, order_service):
        with pytest.raises(ValidationError):
            order_service.get_order_status(email="not-an-email", postal_code="10001")

    def test_not_found(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.get_order_status(order_number="GG-99999")
        assert get_counter("support.order_status.not_found") == 1

    def test_wrong_postal_code_is_not_found(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.get_order_status(email="avery@example.com", postal_code="94107")

    def test_order_without_history_gets_one_entry(self, order_service, order_repository, now):
        order_repository.save(
            Order(
                id="ord_new",
                order_number="GG-30001",
                customer_email="new@example.com",
                postal_code="10001",
                status="processing",
                items=[OrderItem(title="Ring")],
                created_at=now,
                updated_at=now,
            )
        )

        timeline = order_service.get_order_status(order_number="GG-30001")

        assert len(timeline.entries) == 1
        assert timeline.entries[0].label == "Being crafted"
        assert timeline.entries[0].status == "processing"


class TestCreateReturn:
    def test_resize_inside_window(self, order_service, order_repository, now):
        outcome = order_service.create_return("GG-12001", "Please resize to a 6", now)

        assert outcome.eligible
        assert outcome.kind == ReturnKind.RESIZE
        assert outcome.window_days == 60
        assert outcome.status == "resize-requested"
        assert outcome.rma_id.startswith("RMA-")

        order = order_repository.get_by_number("GG-12001")
        assert order.status == "resize-requested"
        assert order.status_history[-1].label == "Resize requested"

        rows = order_repository.list_return_requests(order.id)
        assert len(rows) == 1
        assert rows[0]["rma_id"] == outcome.rma_id
        assert rows[0]["kind"] == "resize"

    def test_standard_return_outside_window(self, order_service, order_repository, now):
        outcome = order_service.create_return("ord_12001", "changed my mind", now)

        assert not outcome.eligible
        assert outcome.reason_code == IneligibleReason.WINDOW_EXPIRED
        assert outcome.rma_id is None
        assert order_repository.get_by_id("ord_12001").status == "shipped"
        assert order_repository.list_return_requests("ord_12001") == []

    def test_ineligible_public_shape(self, order_service, now):
        public = order_service.create_return("GG-12001", "changed my mind", now).to_public_dict()

        assert public["ineligible"]["code"] == "window_expired"
        assert public["windowDays"] == 30
        assert "rmaId" not in public

    def test_return_inside_window(self, order_service, now):
        outcome = order_service.create_return("GG-12001", "changed my mind", now - timedelta(days=15))

        assert outcome.eligible
        assert outcome.kind == ReturnKind.RETURN
        assert outcome.status == "return-requested"

    def test_engraved_is_final_sale(self, order_service, order_repository, now):
        order = order_repository.get_by_number("GG-12001")
        engraved_items = [item.model_copy(update={"engraved": True}) for item in order.items]
        order_repository.save(order.model_copy(update={"items": engraved_items}))

        outcome = order_service.create_return("GG-12001", "resize", now)

        assert outcome.reason_code == IneligibleReason.NON_RETURNABLE

    def test_open_request_is_not_filed_twice(self, order_service, order_repository, now):
        first = order_service.create_return("GG-12001", "resize", now)
        second = order_service.create_return("GG-12001", "changed my mind", now + timedelta(hours=1))

        assert second.eligible
        assert second.rma_id == first.rma_id
        assert second.kind == ReturnKind.RESIZE
        assert second.window_days == 60
        assert second.status == "resize-requested"
        assert get_counter("support.returns.duplicate.resize") == 1

        order = order_repository.get_by_number("GG-12001")
        assert len(order_repository.list_return_requests(order.id)) == 1
        labels = [entry.label for entry in order.status_history]
        assert labels.count("Resize requested") == 1

    @pytest.mark.parametrize("order_id", ["", "   "])
    def test_order_id_required(self, order_service, order_id):
        with pytest.raises(ValidationError):
            order_service.create_return(order_id, "resize")

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFoundError):
            order_service.create_return("GG-99999", "resize")


def test_generate_reference(now):
    reference = generate_reference("RMA", 6, now)

    assert re.fullmatch(r"RMA-\d{13}-[A-Z0-9]{6}", reference)
    assert reference.split("-")[1] == str(int(now.timestamp() * 1000))
