"""
Tests for the product providers.

The stub and local-db providers must agree on filter semantics:
any-overlap tags, half-open price bounds, ready_to_ship equality.
The remote provider is exercised with a fake requests session.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from concierge.catalog.models import ProductFilter, SortBy
from concierge.catalog.providers import (
    SAMPLE_CATALOG,
    LocalDbProductProvider,
    RemoteProductProvider,
    StubProductProvider,
    build_provider,
)
from concierge.catalog.providers.local_db import build_query
from concierge.errors import ConfigurationError, ProviderFetchError, UpstreamTimeoutError

FILTER_CASES = [
    pytest.param(ProductFilter(category="ring", ready_to_ship=True), 4, id="ready-rings"),
    pytest.param(ProductFilter(tags=("halo", "gift")), 4, id="tags-any-overlap"),
    pytest.param(ProductFilter(price_gte=900, price_lt=2500), 3, id="half-open-price"),
    pytest.param(ProductFilter(category="bracelet"), 0, id="empty"),
    pytest.param(ProductFilter(featured_only=True), 2, id="featured-only"),
    pytest.param(ProductFilter(q="halo"), 2, id="keyword"),
]


@pytest.fixture
def stub(catalog_products):
    return StubProductProvider(catalog_products)


@pytest.fixture
def local_db(seeded_db):
    return LocalDbProductProvider(seeded_db)


class TestFilterSemantics:
    @pytest.mark.parametrize(("product_filter", "expected"), FILTER_CASES)
    def test_stub(self, stub, product_filter, expected):
        assert stub.query_products(product_filter).count == expected

    @pytest.mark.parametrize(("product_filter", "expected"), FILTER_CASES)
    def test_local_db(self, local_db, product_filter, expected):
        assert local_db.query_products(product_filter).count == expected

    def test_price_upper_bound_is_exclusive(self, stub, local_db):
        product_filter = ProductFilter(price_lt=900)

        for provider in (stub, local_db):
            ids = {p.id for p in provider.query_products(product_filter).products}
            assert "r-halo" not in ids
            assert ids == {"n-pendant", "e-studs"}

    def test_providers_agree_on_order(self, stub, local_db):
        for sort_by in SortBy:
            product_filter = ProductFilter(sort_by=sort_by)
            stub_ids = [p.id for p in stub.query_products(product_filter).products]
            db_ids = [p.id for p in local_db.query_products(product_filter).products]
            assert stub_ids == db_ids, sort_by

    def test_limit(self, stub, local_db):
        for provider in (stub, local_db):
            assert provider.query_products(ProductFilter(limit=2)).count == 2


class TestLocalDb:
    def test_source_and_tags_round_trip(self, local_db):
        result = local_db.query_products(ProductFilter(q="solitaire"))

        assert result.source == "localDb"
        assert result.products[0].tags == ("engagement", "solitaire")

    def test_price_sort(self, local_db):
        result = local_db.query_products(ProductFilter(category="ring", sort_by=SortBy.PRICE_DESC))
        prices = [p.price for p in result.products]

        assert prices == sorted(prices, reverse=True)

    def test_build_query_is_parameterized(self):
        sql, params = build_query(ProductFilter(category="ring'; DROP TABLE products;--"))

        assert "DROP" not in sql
        assert params[0] == "ring'; DROP TABLE products;--"


def test_stub_defaults_to_sample_catalog():
    provider = StubProductProvider()
    result = provider.query_products(ProductFilter(limit=48))

    assert result.source == "stub"
    assert result.count == len(SAMPLE_CATALOG)


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


class TestRemote:
    def test_sends_filter_and_bearer_token(self):
        session = MagicMock()
        session.get.return_value = _response(
            payload={
                "products": [
                    {
                        "id": "x1",
                        "slug": "remote-ring",
                        "title": "Remote Ring",
                        "price": 1200,
                        "category": "ring",
                        "tags": ["Halo"],
                        "readyToShip": True,
                        "imageUrl": "https://cdn.example.com/x1.jpg",
                    }
                ]
            }
        )
        provider = RemoteProductProvider(
            "https://catalog.example.com/", token="secret", timeout=3, session=session
        )

        result = provider.query_products(ProductFilter(category="ring", price_lt=2000))

        args, kwargs = session.get.call_args
        assert args[0] == "https://catalog.example.com/products"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["params"]["category"] == "ring"
        assert kwargs["params"]["priceLt"] == "2000"
        assert kwargs["timeout"] == 3
        assert result.source == "remote"
        assert result.products[0].ready_to_ship is True
        assert result.products[0].tags == ("halo",)
        assert result.products[0].image_url == "https://cdn.example.com/x1.jpg"

    def test_bare_list_payload(self):
        session = MagicMock()
        session.get.return_value = _response(
            payload=[{"slug": "s", "price": 10, "category": "ring"}]
        )
        provider = RemoteProductProvider("https://catalog.example.com", session=session)

        result = provider.query_products(ProductFilter())

        assert result.products[0].id == "s"
        assert "Authorization" not in session.get.call_args.kwargs["headers"]

    def test_timeout(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        provider = RemoteProductProvider("https://catalog.example.com", session=session)

        with pytest.raises(UpstreamTimeoutError) as exc_info:
            provider.query_products(ProductFilter())
        assert exc_info.value.status_code == 504

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        provider = RemoteProductProvider("https://catalog.example.com", session=session)

        with pytest.raises(ProviderFetchError):
            provider.query_products(ProductFilter())

    def test_non_2xx(self):
        session = MagicMock()
        session.get.return_value = _response(status_code=500, payload={})
        provider = RemoteProductProvider("https://catalog.example.com", session=session)

        with pytest.raises(ProviderFetchError) as exc_info:
            provider.query_products(ProductFilter())
        assert exc_info.value.upstream_status == 500
        assert exc_info.value.status_code == 502

    def test_unreadable_body(self):
        session = MagicMock()
        session.get.return_value = _response(payload={"unexpected": True})
        provider = RemoteProductProvider("https://catalog.example.com", session=session)

        with pytest.raises(ProviderFetchError):
            provider.query_products(ProductFilter())


class TestBuildProvider:
    def test_stub(self, settings):
        assert build_provider(settings.with_overrides(product_provider="stub")).name == "stub"

    def test_local_db(self, settings, db):
        assert build_provider(settings, db).name == "localDb"

    def test_remote(self, settings):
        custom = settings.with_overrides(
            product_provider="remote", remote_base_url="https://catalog.example.com"
        )
        assert build_provider(custom).name == "remote"

    def test_remote_requires_base_url(self, settings):
        with pytest.raises(ConfigurationError):
            build_provider(settings.with_overrides(product_provider="remote"))

    def test_local_db_requires_database(self, settings):
        with pytest.raises(ConfigurationError):
            build_provider(settings)

    def test_unknown_kind(self, settings):
        with pytest.raises(ConfigurationError, match="Unknown product provider"):
            build_provider(settings.with_overrides(product_provider="mongo"))
