"""
Catalog: product models, providers, filter translation and empty-result suggestions.
"""

from concierge.catalog.models import (
    FilterSuggestion,
    Product,
    ProductFilter,
    ProductList,
    SortBy,
)

__all__ = [
    "FilterSuggestion",
    "Product",
    "ProductFilter",
    "ProductList",
    "SortBy",
]
