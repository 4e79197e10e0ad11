"""
API integration tests through FastAPI's TestClient.

The app runs against a temporary SQLite database holding the test catalog
and order GG-12001 (shipped 40 days ago).
"""

from __future__ import annotations

import pytest


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["provider"] == "localDb"
        assert body["database"] == {"ok": True}

    def test_database_health(self, client):
        body = client.get("/health/db").json()

        assert body["status"] == "healthy"
        assert "usage_percent" in body["pool"]
        assert set(body["retention"]) == {
            "widget_shortlists",
            "widget_inspiration",
            "capsule_holds",
            "widget_order_subscriptions",
        }

    def test_root(self, client):
        assert client.get("/").json()["service"] == "Concierge API"


class TestProducts:
    def test_filtered_query(self, client):
        response = client.get(
            "/api/concierge/products", params={"category": "rings", "readyToShip": "true"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 4
        assert body["filters"]["category"] == "ring"
        assert body["suggestions"] == []
        assert body["source"] == "localDb"

    def test_sorted_by_price(self, client):
        body = client.get(
            "/api/concierge/products", params={"sortBy": "price_asc", "limit": 3}
        ).json()

        assert [p["id"] for p in body["products"]] == ["e-studs", "n-pendant", "r-halo"]

    def test_tags_match_any(self, client):
        body = client.get("/api/concierge/products", params={"tags": "halo,gift"}).json()
        assert body["count"] == 4

    def test_empty_result_is_not_an_error(self, client):
        response = client.get("/api/concierge/products", params={"category": "bracelet"})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 0
        assert body["products"] == []
        assert 1 <= len(body["suggestions"]) <= 3
        assert all(s["filters"] != body["filters"] for s in body["suggestions"])

    @pytest.mark.parametrize(
        ("params", "field"),
        [({"priceLt": "0"}, "priceLt"), ({"limit": "100"}, "limit"), ({"sortBy": "cheapest"}, "sortBy")],
    )
    def test_invalid_query(self, client, params, field):
        response = client.get("/api/concierge/products", params=params)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["invalid_fields"] == [field]


class TestMessage:
    def test_track_command(self, client):
        response = client.post(
            "/api/concierge/message", json={"text": "/track GG-12001", "sessionId": "sess-1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["intent"] == "track_order"
        assert body["source"] == "command"
        assert body["modules"][0]["type"] == "order-timeline"

    def test_unknown_text_gets_chooser(self, client):
        body = client.post(
            "/api/concierge/message", json={"text": "hello there", "sessionId": "sess-1"}
        ).json()

        assert body["intent"] == "unknown"
        assert body["modules"][0]["type"] == "intent-chooser"

    def test_missing_session(self, client):
        response = client.post("/api/concierge/message", json={"text": "hi"})

        assert response.status_code == 422
        assert response.json()["error"]["invalid_fields"] == ["sessionId"]


class TestOrderStatus:
    def test_by_order_number(self, client):
        response = client.post("/api/support/order-status", json={"orderNumber": "gg-12001"})

        assert response.status_code == 200
        body = response.json()
        assert body["reference"] == "GG-12001"
        assert [e["label"] for e in body["entries"]] == ["Order placed", "Shipped"]

    def test_by_email_and_postal_code(self, client):
        response = client.post(
            "/api/support/order-status",
            json={"email": "avery@example.com", "postalCode": "100 01"},
        )
        assert response.json()["reference"] == "GG-12001"

    def test_not_found(self, client):
        response = client.post("/api/support/order-status", json={"orderNumber": "GG-99999"})

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "order_not_found",
                "message": "We couldn't find an order matching those details",
            }
        }

    def test_missing_lookup_keys(self, client):
        response = client.post("/api/support/order-status", json={"email": "avery@example.com"})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"


class TestReturns:
    def test_resize_creates_rma(self, client):
        response = client.post(
            "/api/support/returns", json={"orderId": "GG-12001", "reason": "resize"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["rmaId"].startswith("RMA-")
        assert body["status"] == "resize-requested"
        assert body["kind"] == "resize"

        status = client.post("/api/support/order-status", json={"orderNumber": "GG-12001"}).json()
        assert status["entries"][-1]["label"] == "Resize requested"

    def test_repeat_request_returns_same_rma(self, client):
        payload = {"orderId": "GG-12001", "reason": "resize"}
        first = client.post("/api/support/returns", json=payload).json()
        second = client.post("/api/support/returns", json=payload).json()

        assert second["rmaId"] == first["rmaId"]
        status = client.post("/api/support/order-status", json={"orderNumber": "GG-12001"}).json()
        labels = [entry["label"] for entry in status["entries"]]
        assert labels.count("Resize requested") == 1

    def test_return_outside_window(self, client):
        response = client.post(
            "/api/support/returns", json={"orderId": "GG-12001", "reason": "changed my mind"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ineligible"]["code"] == "window_expired"
        assert "rmaId" not in body

    def test_unknown_order(self, client):
        response = client.post("/api/support/returns", json={"orderId": "GG-99999"})
        assert response.status_code == 404

    def test_missing_order_id(self, client):
        response = client.post("/api/support/returns", json={"reason": "resize"})

        assert response.status_code == 422
        assert response.json()["error"]["invalid_fields"] == ["orderId"]


class TestWidgetRecords:
    def test_capsule(self, client):
        response = client.post(
            "/api/support/capsule", json={"sessionId": "sess-1", "productIds": ["r-halo", "r-band"]}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["holdId"].startswith("hold_")
        assert body["expiresAt"]

    def test_shortlist_upsert(self, client):
        payload = {"sessionId": "sess-1", "items": [{"id": "r-halo"}]}
        first = client.post("/api/support/shortlist", json=payload).json()
        payload["items"].append({"id": "r-band"})
        second = client.post("/api/support/shortlist", json=payload).json()

        assert second["shortlistId"] == first["shortlistId"]
        assert second["count"] == 2

    def test_inspiration_needs_items(self, client):
        response = client.post("/api/support/inspiration", json={"sessionId": "sess-1", "items": []})

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "Nothing to save"

    def test_stylist(self, client):
        response = client.post(
            "/api/support/stylist",
            json={"sessionId": "sess-1", "email": "avery@example.com", "notes": "Halo vs solitaire"},
        )

        assert response.status_code == 200
        assert response.json()["ticketId"].startswith("ST-")

    def test_stylist_bad_email(self, client):
        response = client.post("/api/support/stylist", json={"sessionId": "sess-1", "email": "nope"})
        assert response.status_code == 422

    def test_csat(self, client):
        response = client.post("/api/support/csat", json={"sessionId": "sess-1", "rating": 5})

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_csat_rating_out_of_range(self, client):
        response = client.post("/api/support/csat", json={"sessionId": "sess-1", "rating": 9})

        assert response.status_code == 422
        assert response.json()["error"]["invalid_fields"] == ["rating"]

    def test_order_updates(self, client):
        response = client.post(
            "/api/support/order-updates",
            json={"sessionId": "sess-1", "orderNumber": "GG-12001", "channel": "email"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "We'll send email updates for GG-12001 as it moves."
        assert body["subscriptionId"]

    def test_order_updates_unknown_order(self, client):
        response = client.post(
            "/api/support/order-updates", json={"sessionId": "sess-1", "orderNumber": "GG-99999"}
        )
        assert response.status_code == 404


def test_internal_errors_are_generic(client):
    from fastapi.testclient import TestClient

    def explode(*args, **kwargs):
        raise RuntimeError("disk /var/lib/concierge.db is on fire")

    client.app.state.order_service.get_order_status = explode
    quiet_client = TestClient(client.app, raise_server_exceptions=False)

    response = quiet_client.post("/api/support/order-status", json={"orderNumber": "GG-12001"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_error"
    assert "fire" not in response.text
