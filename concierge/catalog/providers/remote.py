"""
Remote catalog provider.

Calls the storefront's catalog service over HTTP. Failures are mapped to
typed provider errors; there is no retry, the shopper sees the error and
can ask again.
"""

from __future__ import annotations

from typing import Any

import requests

from concierge.catalog.models import Product, ProductFilter, ProductList
from concierge.config import REMOTE_PROVIDER_TIMEOUT_SECONDS
from concierge.errors import ProviderFetchError, UpstreamTimeoutError
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, time_block

logger = get_logger(__name__)


def _product_from_payload(item: dict[str, Any]) -> Product:
    fields: dict[str, Any] = {
        "id": str(item.get("id") or item.get("_id") or item["slug"]),
        "slug": item["slug"],
        "title": item.get("title") or item.get("name") or item["slug"],
        "price": item["price"],
        "category": item["category"],
        "tags": item.get("tags") or (),
        "ready_to_ship": bool(item.get("readyToShip", item.get("ready_to_ship", False))),
        "featured_in_widget": bool(
            item.get("featuredInWidget", item.get("featured_in_widget", False))
        ),
        "metal": item.get("metal"),
        "image_url": item.get("imageUrl") or item.get("image_url"),
    }
    # catalog service sends camelCase; keep the model default when absent
    if item.get("createdAt"):
        fields["created_at"] = item["createdAt"]
    return Product(**fields)


class RemoteProductProvider:
    """GET {base_url}/products with a bearer token."""

    name = "remote"

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = REMOTE_PROVIDER_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def query_products(self, product_filter: ProductFilter) -> ProductList:
        url = f"{self.base_url}/products"
        try:
            with time_block("catalog.remote.latency"):
                response = self.session.get(
                    url,
                    params=product_filter.to_query_params(),
                    headers=self._headers(),
                    timeout=self.timeout,
                )
        except requests.exceptions.Timeout as e:
            counter("catalog.remote.timeout")
            logger.warning("Remote catalog timed out after %.1fs: %s", self.timeout, url)
            raise UpstreamTimeoutError(
                f"Catalog service did not respond within {self.timeout:g}s"
            ) from e
        except requests.exceptions.RequestException as e:
            counter("catalog.remote.error")
            logger.error("Remote catalog request failed: %s", e)
            raise ProviderFetchError("Catalog service is unreachable") from e

        if not response.ok:
            counter("catalog.remote.error")
            logger.error("Remote catalog returned HTTP %d for %s", response.status_code, url)
            raise ProviderFetchError(
                f"Catalog service returned HTTP {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
            items = payload["products"] if isinstance(payload, dict) else payload
            products = [_product_from_payload(item) for item in items]
        except (ValueError, KeyError, TypeError) as e:
            counter("catalog.remote.error")
            logger.error("Remote catalog response could not be parsed: %s", e)
            raise ProviderFetchError(
                "Catalog service returned an unreadable response",
                upstream_status=response.status_code,
            ) from e

        counter("catalog.remote.queries")
        return ProductList(products=products[: product_filter.limit], source=self.name)
