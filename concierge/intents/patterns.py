"""
Intent pattern table.

Intents are declared in a fixed order. That order is part of the matcher's
contract: when two intents score the same, the one declared first wins.

A trigger is either a literal phrase or a compiled regular expression.
Literal phrases match on word boundaries, tolerate a plural suffix, and
also match any registered typo variant of their words.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

UNKNOWN_INTENT = "unknown"

FIND_PRODUCT = "find_product"
TRACK_ORDER = "track_order"
RETURN_EXCHANGE = "return_exchange"
SIZING_REPAIRS = "sizing_repairs"
CARE_WARRANTY = "care_warranty"
FINANCING = "financing"
CAPSULE_RESERVE = "capsule_reserve"
STYLIST_CONTACT = "stylist_contact"
CSAT = "csat"

# Common misspellings shoppers type, keyed by the correct word
TYPO_VARIANTS: dict[str, tuple[str, ...]] = {
    "receive": ("recieve", "recive"),
    "return": ("retrun", "retun", "reutrn"),
    "exchange": ("exhange", "exchnage"),
    "refund": ("refnd",),
    "tracking": ("traking", "trackng"),
    "order": ("oder", "ordr"),
    "financing": ("finacing", "financeing", "fincancing"),
    "warranty": ("warrenty", "waranty", "warrantee"),
    "necklace": ("neckalce", "necklase", "neclace"),
    "bracelet": ("braclet", "bracelett"),
    "earrings": ("earings", "earrigns"),
    "jewelry": ("jewelery", "jewellery"),
    "stylist": ("stilist", "stylest"),
    "appointment": ("appointmnet", "apointment"),
    "feedback": ("feeback", "fedback"),
    "resize": ("resise", "rezise"),
}


@dataclass(frozen=True)
class Trigger:
    """One weighted trigger for an intent."""

    pattern: str
    weight: int = 1
    regex: bool = False
    example: str | None = None  # text the trigger must match; required for regex triggers
    compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        source = self.pattern if self.regex else _literal_pattern(self.pattern)
        object.__setattr__(self, "compiled", re.compile(source, re.IGNORECASE))

    def matches(self, text: str) -> bool:
        return self.compiled.search(text) is not None

    @property
    def sample(self) -> str:
        return self.example or self.pattern


def _word_alternatives(word: str) -> str:
    variants = (word, *TYPO_VARIANTS.get(word, ()))
    return "(?:" + "|".join(re.escape(v) for v in variants) + ")"


def _literal_pattern(phrase: str) -> str:
    words = phrase.lower().split()
    body = r"\s+".join(_word_alternatives(w) for w in words)
    return rf"\b{body}(?:s|es)?\b"


def _t(pattern: str, weight: int = 1) -> Trigger:
    return Trigger(pattern, weight)


def _rx(pattern: str, weight: int, example: str) -> Trigger:
    return Trigger(pattern, weight, regex=True, example=example)


@dataclass(frozen=True)
class IntentDefinition:
    name: str
    label: str
    triggers: tuple[Trigger, ...]
    reply: str  # canned copy used when the intent is resolved without a backend call
    module: str | None = None  # widget module type rendered with the reply


INTENTS: tuple[IntentDefinition, ...] = (
    IntentDefinition(
        name=FIND_PRODUCT,
        label="Shop jewelry",
        triggers=(
            _t("show me", 2),
            _t("looking for", 2),
            _t("recommend", 2),
            _t("browse", 2),
            _t("gift idea", 3),
            _t("engagement ring", 3),
            _t("rings", 2),
            _t("necklace", 2),
            _t("earrings", 2),
            _t("bracelet", 2),
            _t("jewelry", 1),
            _t("ready to ship", 2),
            _rx(r"\b(?:under|below|less than)\s*\$?\s*\d", 2, "something under $2000"),
        ),
        reply="On it. I'll open product recommendations.",
        module="product-grid",
    ),
    IntentDefinition(
        name=TRACK_ORDER,
        label="Track an order",
        triggers=(
            _t("track", 3),
            _t("tracking", 3),
            _t("where is my order", 4),
            _t("order status", 3),
            _t("shipping status", 3),
            _t("delivery", 2),
            _t("when will i receive", 3),
            _t("has it shipped", 3),
            _rx(r"\b[A-Za-z]{2,4}-\d{3,}\b", 1, "GG-12001"),
        ),
        reply="On it. Opening order lookup.",
        module="order-lookup",
    ),
    IntentDefinition(
        name=RETURN_EXCHANGE,
        label="Returns & resizing",
        triggers=(
            _t("return", 3),
            _t("exchange", 3),
            _t("refund", 3),
            _t("send it back", 3),
            _t("resize", 3),
            _t("resizing", 3),
            _t("wrong size", 3),
        ),
        reply="On it. Starting returns & resizing.",
        module="return-form",
    ),
    IntentDefinition(
        name=SIZING_REPAIRS,
        label="Sizing & repairs",
        triggers=(
            _t("ring size", 3),
            _t("sizing", 3),
            _t("size guide", 3),
            _t("what size", 3),
            _t("repair", 3),
            _t("broken", 3),
            _t("loose stone", 3),
            _t("fix", 2),
        ),
        reply="On it. Starting sizing help. Our size guide covers ring sizing at home, "
        "and repairs are booked through the care team.",
        module="sizing-guide",
    ),
    IntentDefinition(
        name=CARE_WARRANTY,
        label="Care & warranty",
        triggers=(
            _t("warranty", 3),
            _t("cleaning", 3),
            _t("clean", 2),
            _t("polish", 2),
            _t("care", 2),
            _t("insurance", 2),
            _t("certificate", 2),
        ),
        reply="On it. Sharing care & warranty info. Every piece carries a lifetime "
        "warranty and a complimentary annual clean.",
        module="care-info",
    ),
    IntentDefinition(
        name=FINANCING,
        label="Financing",
        triggers=(
            _t("financing", 3),
            _t("finance", 3),
            _t("payment plan", 3),
            _t("monthly payment", 3),
            _t("pay over time", 3),
            _t("installment", 3),
            _t("interest rate", 3),
            _t("affirm", 3),
            _t("klarna", 3),
        ),
        reply="On it. Pulling financing options. Plans run 3 to 24 months at checkout.",
        module="financing-options",
    ),
    IntentDefinition(
        name=CAPSULE_RESERVE,
        label="Reserve a capsule",
        triggers=(
            _t("capsule", 3),
            _t("reserve", 3),
            _t("put on hold", 3),
            _t("hold this", 3),
            _t("try at home", 3),
        ),
        reply="I can hold up to three ready-to-ship pieces for you for 7 days.",
        module="capsule-reserve",
    ),
    IntentDefinition(
        name=STYLIST_CONTACT,
        label="Talk to a stylist",
        triggers=(
            _t("stylist", 3),
            _t("human", 3),
            _t("talk to someone", 3),
            _t("real person", 3),
            _t("appointment", 3),
            _t("consultation", 3),
            _t("agent", 2),
        ),
        reply="On it. Bringing in a stylist.",
        module="stylist-contact",
    ),
    IntentDefinition(
        name=CSAT,
        label="Leave feedback",
        triggers=(
            _t("feedback", 3),
            _t("survey", 3),
            _t("leave a review", 3),
            _t("rate my experience", 3),
            _t("rating", 2),
        ),
        reply="Happy to take feedback.",
        module="csat",
    ),
)

INTENT_ORDER: tuple[str, ...] = tuple(i.name for i in INTENTS)
INTENTS_BY_NAME: dict[str, IntentDefinition] = {i.name: i for i in INTENTS}

# Slash command keyword -> intent (None means "show the intent chooser")
COMMANDS: dict[str, str | None] = {
    "track": TRACK_ORDER,
    "return": RETURN_EXCHANGE,
    "resize": RETURN_EXCHANGE,
    "find": FIND_PRODUCT,
    "shop": FIND_PRODUCT,
    "finance": FINANCING,
    "capsule": CAPSULE_RESERVE,
    "stylist": STYLIST_CONTACT,
    "feedback": CSAT,
    "help": None,
}
