"""
Product provider contract.

Every provider answers the same question (which products match this
filter?) with the same predicate semantics: category equality, any-overlap
tags, half-open price bounds, ready_to_ship equality and featured gating.
"""

from __future__ import annotations

from typing import Protocol

from concierge.catalog.models import Product, ProductFilter, ProductList, SortBy


class ProductProvider(Protocol):
    """Backend that resolves a ProductFilter to products."""

    name: str

    def query_products(self, product_filter: ProductFilter) -> ProductList:
        """Run the filter.

        Args:
            product_filter: Criteria, sort order and limit

        Returns:
            ProductList (possibly empty; an empty result is not an error)

        Raises:
            ProductProviderError: When the backing store cannot be queried
        """
        ...


def sort_products(products: list[Product], sort_by: SortBy) -> list[Product]:
    """In-process sort matching the SQL ORDER BY clauses of the local-db provider."""
    if sort_by == SortBy.PRICE_ASC:
        return sorted(products, key=lambda p: (p.price, p.id))
    if sort_by == SortBy.PRICE_DESC:
        return sorted(products, key=lambda p: (-p.price, p.id))
    if sort_by == SortBy.NEWEST:
        return sorted(products, key=lambda p: (-p.created_at.timestamp(), p.id))
    return sorted(
        products,
        key=lambda p: (not p.featured_in_widget, -p.created_at.timestamp(), p.id),
    )
