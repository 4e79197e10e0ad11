"""
Intents: pattern table, weighted matcher, slash commands and the message resolver.
"""

from concierge.intents.commands import ParsedCommand, parse_command
from concierge.intents.matcher import IntentMatch, IntentMatcher, match_intent
from concierge.intents.patterns import COMMANDS, INTENT_ORDER, INTENTS, UNKNOWN_INTENT

__all__ = [
    "COMMANDS",
    "INTENTS",
    "INTENT_ORDER",
    "UNKNOWN_INTENT",
    "IntentMatch",
    "IntentMatcher",
    "ParsedCommand",
    "match_intent",
    "parse_command",
]
