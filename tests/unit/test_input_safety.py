"""
Tests for input validation, PII redaction and error sanitization.

These helpers sit between shopper input and the database, the logs and the
error responses.
"""

from __future__ import annotations

import logging

import pytest

from concierge.errors import ValidationError
from concierge.observability.logging import EmailMaskingFilter
from concierge.utils.error_sanitizer import generic_message, sanitize_error_message
from concierge.utils.redaction import redact, redact_payload, redact_pii
from concierge.utils.validators import (
    find_order_number,
    normalize_email,
    normalize_postal_code,
    validate_order_number,
    validate_session_id,
)


class TestOrderNumbers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("gg-12001", "GG-12001"), ("#GG-12001", "GG-12001"), (" GG_7 ", "GG_7"), (None, None), ("  ", None)],
    )
    def test_normalized(self, raw, expected):
        assert validate_order_number(raw) == expected

    @pytest.mark.parametrize("raw", ["GG 12001", "GG-1'; --", "G" * 65])
    def test_rejected(self, raw):
        with pytest.raises(ValidationError):
            validate_order_number(raw)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("where is gg-12001?", "GG-12001"),
            ("Order GG-12001 and GG-12002", "GG-12001"),
            ("my order from last week", None),
            (None, None),
        ],
    )
    def test_found_in_text(self, text, expected):
        assert find_order_number(text) == expected


class TestContactFields:
    def test_email_lowercased(self):
        assert normalize_email("  Avery@Example.COM ") == "avery@example.com"
        assert normalize_email("") is None

    @pytest.mark.parametrize("email", ["avery", "avery@", "a b@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError):
            normalize_email(email)

    def test_postal_code_compacted(self):
        assert normalize_postal_code("sw1a 1aa") == "SW1A1AA"
        assert normalize_postal_code("\t10001\n") == "10001"
        assert normalize_postal_code(" ") is None

    @pytest.mark.parametrize("postal_code", ["1", "100-01", "A" * 11])
    def test_invalid_postal_code(self, postal_code):
        with pytest.raises(ValidationError):
            normalize_postal_code(postal_code)

    def test_session_id(self):
        assert validate_session_id(" sess:abc-1 ") == "sess:abc-1"
        for bad in (None, "", "has space", "x" * 129):
            with pytest.raises(ValidationError):
                validate_session_id(bad)


class TestRedaction:
    def test_hash_is_stable_and_case_insensitive(self):
        assert redact("Avery@Example.com ") == redact("avery@example.com")
        assert redact("avery@example.com").startswith("hash:")
        assert len(redact("avery@example.com")) == len("hash:") + 12
        assert redact(None) == "hash:missing"

    def test_free_text_placeholders(self):
        text = "Reach me at jane@example.com or 555-123-4567, card 4111 1111 1111 1111"

        cleaned = redact_pii(text)

        assert cleaned.startswith("Reach me at [EMAIL] or")
        assert "[PHONE]" in cleaned
        assert cleaned.endswith("card [CARD]")
        assert not any(ch.isdigit() for ch in cleaned)

    def test_free_text_truncated(self):
        assert len(redact_pii("a" * 1000, max_length=50)) == 50
        assert redact_pii(None) == ""

    def test_payload(self):
        payload = {"email": "a@example.com", "contact": 5551234567, "text": "a@example.com", "rating": 5}

        cleaned = redact_payload(payload)

        assert cleaned["email"] == redact("a@example.com")
        assert cleaned["contact"] == 5551234567  # only strings are hashed
        assert cleaned["text"] == "[EMAIL]"
        assert cleaned["rating"] == 5
        assert payload["email"] == "a@example.com"


class TestErrorSanitizer:
    def test_shopper_message_passes_through(self):
        assert sanitize_error_message("Order GG-1 was not found", 404) == "Order GG-1 was not found"

    @pytest.mark.parametrize(
        "message",
        [
            "no such table: orders",
            'File "/srv/app/concierge/api/app.py", line 10',
            "sqlite3.OperationalError: database is locked",
            "failed in concierge.storage.retention",
            "Authorization: Bearer abc.def",
        ],
    )
    def test_sensitive_message_replaced(self, message):
        assert sanitize_error_message(message, 400) == generic_message(400)

    def test_internal_errors_always_generic(self):
        assert sanitize_error_message("KeyError: 'price'", 500) == generic_message(500)

    def test_upstream_messages_kept(self):
        message = "The catalog took too long to respond."
        assert sanitize_error_message(message, 504) == message

    def test_long_or_multiline_replaced(self):
        assert sanitize_error_message("x" * 201, 400) == generic_message(400)
        assert sanitize_error_message("one\ntwo", 422) == generic_message(422)

    def test_unknown_status(self):
        assert generic_message(418) == "An error occurred."


class TestEmailMaskingFilter:
    def _record(self, msg, args=()):
        return logging.LogRecord("concierge", logging.INFO, __file__, 1, msg, args, None)

    def test_masks_arguments(self):
        record = self._record("Stylist ticket for %s", ("jane.doe@example.com",))

        assert EmailMaskingFilter().filter(record)
        assert record.getMessage() == "Stylist ticket for j***@example.com"

    def test_leaves_other_messages_alone(self):
        record = self._record("Seeded %d products", (7,))

        EmailMaskingFilter().filter(record)

        assert record.args == (7,)
        assert record.getMessage() == "Seeded 7 products"
