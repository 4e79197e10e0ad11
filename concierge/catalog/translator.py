"""
Filter/query translator: intent + parameters -> ProductFilter.

Parameters arrive either explicitly (query string, widget filter form,
command arguments) or extracted from free text ("halo rings under $2k that
ship now"). Explicit values always win over extracted ones.

Category synonyms, sibling categories and tag phrases live in the packaged
catalog_rules.yaml.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from concierge.catalog.models import ProductFilter, SortBy
from concierge.config import CATALOG_RULES_PATH, FALLBACK_CATEGORY, ConciergeSettings
from concierge.observability.logging import get_logger

logger = get_logger(__name__)

# "$2,000", "2000", "2k", "2.5k"
_AMOUNT = r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*(k)?"

_BETWEEN_PATTERN = re.compile(rf"\bbetween\s+{_AMOUNT}\s+(?:and|to|-)\s+{_AMOUNT}")
_CEILING_PATTERN = re.compile(
    rf"(?:\b(?:under|below|less than|cheaper than|max(?:imum)?|up to|no more than)|<)\s*{_AMOUNT}"
)
_FLOOR_PATTERN = re.compile(
    rf"(?:\b(?:over|above|more than|at least|min(?:imum)?|starting at)|>)\s*{_AMOUNT}"
)

_READY_TO_SHIP_PATTERNS = (
    re.compile(r"ready[\s-]to[\s-]ship"),
    re.compile(r"ships? (?:now|today|fast|quickly)"),
    re.compile(r"\bin stock\b"),
    re.compile(r"\bquick(?:ly)? ship"),
)

_SORT_PHRASES: tuple[tuple[re.Pattern[str], SortBy], ...] = (
    (re.compile(r"cheapest|lowest price|least expensive|low to high"), SortBy.PRICE_ASC),
    (re.compile(r"most expensive|highest price|high to low|luxury"), SortBy.PRICE_DESC),
    (re.compile(r"\bnew(?:est)?\b|latest|just dropped"), SortBy.NEWEST),
)


def _parse_amount(number: str, thousands: str | None) -> float:
    value = float(number.replace(",", ""))
    if thousands:
        value *= 1000
    return value


@dataclass(frozen=True)
class CatalogVocabulary:
    """Category synonyms, sibling categories and tag phrases."""

    synonyms: dict[str, str] = field(default_factory=dict)  # phrase -> canonical category
    siblings: dict[str, tuple[str, ...]] = field(default_factory=dict)
    tag_phrases: dict[str, str] = field(default_factory=dict)  # phrase -> canonical tag

    @property
    def categories(self) -> frozenset[str]:
        return frozenset(self.synonyms.values())

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> CatalogVocabulary:
        synonyms: dict[str, str] = {}
        for canonical, phrases in (data.get("categories") or {}).items():
            synonyms[canonical.lower()] = canonical.lower()
            for phrase in phrases or []:
                synonyms[str(phrase).lower()] = canonical.lower()

        siblings = {
            str(category).lower(): tuple(str(s).lower() for s in values or [])
            for category, values in (data.get("siblings") or {}).items()
        }

        tag_phrases: dict[str, str] = {}
        for canonical, phrases in (data.get("tags") or {}).items():
            tag_phrases[canonical.lower()] = canonical.lower()
            for phrase in phrases or []:
                tag_phrases[str(phrase).lower()] = canonical.lower()

        return cls(synonyms=synonyms, siblings=siblings, tag_phrases=tag_phrases)

    @classmethod
    def from_yaml(cls, path: Path) -> CatalogVocabulary:
        if not path.exists():
            logger.warning("Catalog rules not found at %s, using empty vocabulary", path)
            return cls()

        with open(path, encoding="utf-8") as f:
            return cls.from_mapping(yaml.safe_load(f) or {})

    def siblings_of(self, category: str) -> tuple[str, ...]:
        return self.siblings.get(category, ())


@lru_cache(maxsize=1)
def default_vocabulary() -> CatalogVocabulary:
    """Vocabulary loaded from the packaged catalog_rules.yaml (cached)."""
    return CatalogVocabulary.from_yaml(CATALOG_RULES_PATH)


def normalize_category(
    raw: str | None,
    fallback: str = FALLBACK_CATEGORY,
    vocabulary: CatalogVocabulary | None = None,
) -> str | None:
    """
    Map a category synonym to its canonical singular form.

    "Rings" -> "ring", "pendants" -> "necklace". Unrecognized values map to
    the fallback category instead of failing. None/blank stays None.
    """
    if raw is None or not raw.strip():
        return None

    vocab = vocabulary or default_vocabulary()
    key = " ".join(raw.lower().split())
    if key in vocab.synonyms:
        return vocab.synonyms[key]

    # "rings" style plurals not listed explicitly
    if key.endswith("s") and key[:-1] in vocab.synonyms:
        return vocab.synonyms[key[:-1]]

    logger.info("Unrecognized category %r, using fallback %r", raw, fallback)
    return fallback


def normalize_tags(
    raw_tags: list[str] | tuple[str, ...] | None,
    vocabulary: CatalogVocabulary | None = None,
) -> tuple[str, ...]:
    """Canonicalize known tag phrases; unknown tags pass through lower-cased."""
    if not raw_tags:
        return ()
    vocab = vocabulary or default_vocabulary()
    tags = set()
    for tag in raw_tags:
        key = " ".join(str(tag).lower().split())
        if key:
            tags.add(vocab.tag_phrases.get(key, key))
    return tuple(sorted(tags))


def _find_phrase(text: str, phrases: dict[str, str]) -> list[str]:
    """Canonical values whose phrase occurs as whole words, longest phrase first."""
    found: list[str] = []
    consumed = text
    for phrase in sorted(phrases, key=len, reverse=True):
        pattern = rf"\b{re.escape(phrase)}\b"
        if re.search(pattern, consumed):
            canonical = phrases[phrase]
            if canonical not in found:
                found.append(canonical)
            consumed = re.sub(pattern, " ", consumed)
    return found


def extract_product_params(
    text: str | None,
    vocabulary: CatalogVocabulary | None = None,
) -> dict[str, Any]:
    """
    Pull filter parameters out of free text.

    Returns only the keys that were found: category, tags, price_lt,
    price_gte, ready_to_ship, sort_by.
    """
    if not text:
        return {}

    vocab = vocabulary or default_vocabulary()
    lowered = " ".join(text.lower().split())
    params: dict[str, Any] = {}

    categories = _find_phrase(lowered, vocab.synonyms)
    if categories:
        params["category"] = categories[0]

    tags = _find_phrase(lowered, vocab.tag_phrases)
    if tags:
        params["tags"] = tuple(sorted(tags))

    between = _BETWEEN_PATTERN.search(lowered)
    if between:
        low = _parse_amount(between.group(1), between.group(2))
        high = _parse_amount(between.group(3), between.group(4))
        params["price_gte"], params["price_lt"] = min(low, high), max(low, high)
    else:
        ceiling = _CEILING_PATTERN.search(lowered)
        if ceiling:
            params["price_lt"] = _parse_amount(ceiling.group(1), ceiling.group(2))
        floor = _FLOOR_PATTERN.search(lowered)
        if floor:
            params["price_gte"] = _parse_amount(floor.group(1), floor.group(2))

    if any(p.search(lowered) for p in _READY_TO_SHIP_PATTERNS):
        params["ready_to_ship"] = True

    for pattern, sort_by in _SORT_PHRASES:
        if pattern.search(lowered):
            params["sort_by"] = sort_by
            break

    return params


# Per-intent defaults applied before extracted and explicit params
INTENT_FILTER_DEFAULTS: dict[str, dict[str, Any]] = {
    "find_product": {},
    # Capsule holds only make sense for pieces that are in stock
    "capsule_reserve": {"ready_to_ship": True},
}


def build_filter(
    intent: str,
    params: dict[str, Any] | None = None,
    settings: ConciergeSettings | None = None,
    *,
    text: str | None = None,
    vocabulary: CatalogVocabulary | None = None,
) -> ProductFilter:
    """
    Build a ProductFilter for an intent.

    Args:
        intent: Resolved intent name
        params: Explicit parameters (category, tags, price_lt, price_gte,
                ready_to_ship, featured_only, sort_by, q, limit)
        settings: Supplies the fallback category and default limit
        text: Optional free text to extract parameters from

    Returns:
        ProductFilter (never raises for unknown categories)
    """
    fallback_category = settings.fallback_category if settings else FALLBACK_CATEGORY
    limit = settings.product_limit_default if settings else None
    vocab = vocabulary or default_vocabulary()
    merged: dict[str, Any] = dict(INTENT_FILTER_DEFAULTS.get(intent, {}))
    merged.update(extract_product_params(text, vocab))

    explicit = {k: v for k, v in (params or {}).items() if v is not None}
    if "category" in explicit:
        explicit["category"] = normalize_category(
            str(explicit["category"]), fallback_category, vocab
        )
    if "tags" in explicit:
        raw_tags = explicit["tags"]
        if isinstance(raw_tags, str):
            raw_tags = raw_tags.split(",")
        explicit["tags"] = normalize_tags(list(raw_tags), vocab)
    merged.update(explicit)

    if limit is not None and "limit" not in merged:
        merged["limit"] = limit

    allowed = set(ProductFilter.model_fields)
    return ProductFilter(**{k: v for k, v in merged.items() if k in allowed})


def raise_ceiling(price_lt: float) -> float:
    """Next ceiling offered for an empty price-capped query: x1.5, rounded up to 500."""
    return float(math.ceil(price_lt * 1.5 / 500) * 500)
