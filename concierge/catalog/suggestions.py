"""
Empty-result suggestions.

When a product query matches nothing, the shopper is offered explicit
alternatives instead of a silently broadened query. Each suggestion is a
complete filter the widget can apply with one tap.
"""

from __future__ import annotations

from concierge.catalog.models import FilterSuggestion, ProductFilter
from concierge.catalog.translator import CatalogVocabulary, default_vocabulary, raise_ceiling
from concierge.config import MAX_SUGGESTIONS
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter

logger = get_logger(__name__)


def _format_price(value: float) -> str:
    return f"${value:,.0f}"


def _pluralize(category: str) -> str:
    return category if category.endswith("s") else f"{category}s"


def _higher_ceiling(original: ProductFilter) -> FilterSuggestion | None:
    if original.price_lt is None:
        return None
    ceiling = raise_ceiling(original.price_lt)
    if ceiling <= original.price_lt:
        return None
    return FilterSuggestion(
        slug=f"price-under-{int(ceiling)}",
        label=f"Raise budget to under {_format_price(ceiling)}",
        filters=original.model_copy(update={"price_lt": ceiling}),
    )


def _sibling_categories(
    original: ProductFilter, vocabulary: CatalogVocabulary
) -> list[FilterSuggestion]:
    if not original.category:
        return []
    suggestions = []
    for sibling in vocabulary.siblings_of(original.category)[:2]:
        suggestions.append(
            FilterSuggestion(
                slug=f"category-{sibling}",
                label=f"Try {_pluralize(sibling)} instead",
                filters=original.model_copy(update={"category": sibling}),
            )
        )
    return suggestions


def _ready_to_ship(original: ProductFilter) -> FilterSuggestion | None:
    if original.ready_to_ship is not None:
        return None
    return FilterSuggestion(
        slug="ready-to-ship",
        label="Show ready-to-ship pieces",
        filters=original.model_copy(update={"ready_to_ship": True}),
    )


def _relaxation(original: ProductFilter) -> FilterSuggestion:
    """Drop the tags, else the shipping constraint (only reached with ready_to_ship set)."""
    if original.tags:
        return FilterSuggestion(
            slug="clear-tags",
            label="Clear style filters",
            filters=original.model_copy(update={"tags": ()}),
        )
    return FilterSuggestion(
        slug="any-shipping",
        label="Include made-to-order pieces",
        filters=original.model_copy(update={"ready_to_ship": None}),
    )


def suggest_alternatives(
    original: ProductFilter,
    max_suggestions: int = MAX_SUGGESTIONS,
    vocabulary: CatalogVocabulary | None = None,
) -> list[FilterSuggestion]:
    """
    Build up to max_suggestions alternatives for a filter that matched nothing.

    Priority: higher price ceiling, sibling categories, ready-to-ship.
    The fallback relaxation is used only when none of those apply.
    Every suggestion differs from the original; duplicates are dropped.
    """
    vocab = vocabulary or default_vocabulary()
    candidates: list[FilterSuggestion] = []

    ceiling = _higher_ceiling(original)
    if ceiling:
        candidates.append(ceiling)
    candidates.extend(_sibling_categories(original, vocab))
    ready = _ready_to_ship(original)
    if ready:
        candidates.append(ready)

    if not candidates:
        candidates.append(_relaxation(original))

    original_criteria = original.criteria()
    seen: set[tuple] = set()
    suggestions: list[FilterSuggestion] = []
    for candidate in candidates:
        criteria = candidate.filters.criteria()
        if criteria == original_criteria:
            continue
        key = tuple(sorted(criteria.items()))
        if key in seen:
            continue
        seen.add(key)
        suggestions.append(candidate)
        if len(suggestions) >= max_suggestions:
            break

    counter("catalog.suggestions.offered", len(suggestions))
    logger.debug("Suggested %d alternatives for %s", len(suggestions), original_criteria)
    return suggestions
