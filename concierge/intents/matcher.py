"""
Weighted intent matcher.

Scores free text against the pattern table. Each matching trigger adds its
weight to its intent; the highest total wins and ties resolve to the intent
declared first. Never raises: anything unmatched is UNKNOWN_INTENT.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from concierge.config import INTENT_CONFIDENCE_THRESHOLD
from concierge.intents.patterns import INTENTS, UNKNOWN_INTENT, IntentDefinition


@dataclass(frozen=True)
class IntentMatch:
    """Result of matching one message."""

    intent: str
    score: int = 0
    confidence: float = 0.0
    matched_patterns: tuple[str, ...] = ()
    runner_up: str | None = None
    threshold: float = field(default=INTENT_CONFIDENCE_THRESHOLD, repr=False)

    @property
    def is_unknown(self) -> bool:
        return self.intent == UNKNOWN_INTENT

    @property
    def ambiguous(self) -> bool:
        """Matched, but too close to the runner-up to act on without asking."""
        return not self.is_unknown and self.confidence < self.threshold


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.lower().split())


class IntentMatcher:
    """Matches text against an ordered intent table."""

    def __init__(
        self,
        intents: tuple[IntentDefinition, ...] = INTENTS,
        threshold: float = INTENT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.intents = intents
        self.threshold = threshold

    def match(self, text: str | None) -> IntentMatch:
        normalized = normalize_text(text)
        if not normalized:
            return IntentMatch(UNKNOWN_INTENT, threshold=self.threshold)

        # (score, declaration index, name, matched patterns)
        scored: list[tuple[int, int, str, tuple[str, ...]]] = []
        for index, intent in enumerate(self.intents):
            hits = [t for t in intent.triggers if t.matches(normalized)]
            if hits:
                score = sum(t.weight for t in hits)
                scored.append((score, index, intent.name, tuple(t.pattern for t in hits)))

        if not scored:
            return IntentMatch(UNKNOWN_INTENT, threshold=self.threshold)

        # Highest score first; equal scores keep declaration order
        scored.sort(key=lambda s: (-s[0], s[1]))
        score, _, name, matched = scored[0]
        runner_up_score = scored[1][0] if len(scored) > 1 else 0
        runner_up = scored[1][2] if len(scored) > 1 else None

        return IntentMatch(
            intent=name,
            score=score,
            confidence=round(score / (score + runner_up_score), 4),
            matched_patterns=matched,
            runner_up=runner_up,
            threshold=self.threshold,
        )


_DEFAULT_MATCHER = IntentMatcher()


def match_intent(text: str | None) -> IntentMatch:
    """Match text against the default intent table."""
    return _DEFAULT_MATCHER.match(text)
