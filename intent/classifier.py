"""
Intent Classifier — deterministic keyword/regex intent extraction.

Responsibility:
- Convert input_text -> ParsedIntent (oracle kind + parameters)
- Ordered decision list, first matching rule wins:
  financial > weather > space > none
- Pure: no I/O, no model calls, no side effects

Prohibitions:
- Never calls the gateway
- Never touches the transcript
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

from shared.models import OracleKind, ParsedIntent
from shared.oracle_catalog import DEFAULT_CITY, DEFAULT_SYMBOL

logger = logging.getLogger(__name__)

_CITY_AFTER_WEATHER = re.compile(r"weather.*?\bin\s+(\w+)", re.ASCII)
_CITY_BEFORE_WEATHER = re.compile(r"(\w+)\s+weather", re.ASCII)
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

# Words that sit in front of "weather" without naming a place
_NON_CITY_WORDS = frozenset({
    "a", "an", "the", "what", "whats", "s", "is", "show", "get", "me",
    "current", "today", "todays", "local", "my", "some", "any", "check",
})


def _today_iso(today: date | None = None) -> str:
    return (today or datetime.now(timezone.utc).date()).isoformat()


def _contains_any(text: str, *keywords: str) -> bool:
    return any(keyword in text for keyword in keywords)


def _capitalize_first(word: str) -> str:
    return word[:1].upper() + word[1:]


def extract_city(text: str) -> str | None:
    """Return the city named around 'weather', lower-cased, if any."""
    match = _CITY_AFTER_WEATHER.search(text)
    if match:
        return match.group(1)
    match = _CITY_BEFORE_WEATHER.search(text)
    if match and match.group(1) not in _NON_CITY_WORDS:
        return match.group(1)
    return None


def extract_date(text: str) -> str | None:
    match = _ISO_DATE.search(text)
    return match.group(0) if match else None


@dataclass(frozen=True)
class IntentRule:
    """One step of the decision list: predicate on lower-cased text -> intent builder."""

    name: str
    matches: Callable[[str], bool]
    build: Callable[[str, date | None], ParsedIntent]


def _price(symbol: str) -> Callable[[str, date | None], ParsedIntent]:
    def build(_text: str, _today: date | None) -> ParsedIntent:
        return ParsedIntent(kind=OracleKind.PRICE_FEED, parameters={"symbol": symbol})
    return build


def _weather(text: str, _today: date | None) -> ParsedIntent:
    city = extract_city(text) or DEFAULT_CITY
    return ParsedIntent(kind=OracleKind.WEATHER, parameters={"city": _capitalize_first(city)})


def _space(text: str, today: date | None) -> ParsedIntent:
    return ParsedIntent(
        kind=OracleKind.SPACE,
        parameters={"date": extract_date(text) or _today_iso(today)},
    )


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule("ethereum", lambda t: _contains_any(t, "eth", "ethereum"), _price("ETH/USD")),
    IntentRule("bitcoin", lambda t: _contains_any(t, "btc", "bitcoin"), _price("BTC/USD")),
    IntentRule("generic_price", lambda t: "price" in t, _price(DEFAULT_SYMBOL)),
    # Both city patterns require "weather", so the keyword test covers them
    IntentRule("weather", lambda t: _contains_any(t, "weather", "temperature"), _weather),
    IntentRule("space", lambda t: _contains_any(t, "asteroid", "space", "nasa"), _space),
)


def classify(utterance: str, today: date | None = None) -> ParsedIntent | None:
    """Classify an utterance into an oracle intent, or None when nothing matches."""
    text = (utterance or "").lower()
    for rule in INTENT_RULES:
        if rule.matches(text):
            intent = rule.build(text, today)
            logger.debug("Intent rule '%s' matched: %s %s", rule.name, intent.kind.value, intent.parameters)
            return intent
    return None


def default_parameters(kind: OracleKind, today: date | None = None) -> dict[str, str]:
    """Parameters used when a kind is chosen without anything extracted for it."""
    if kind == OracleKind.PRICE_FEED:
        return {"symbol": DEFAULT_SYMBOL}
    if kind == OracleKind.WEATHER:
        return {"city": DEFAULT_CITY}
    if kind == OracleKind.SPACE:
        return {"date": _today_iso(today)}
    return {}


def resolve_intent(
    utterance: str,
    selected: OracleKind | None = None,
    today: date | None = None,
) -> ParsedIntent | None:
    """
    Effective intent: explicit selection first, inferred kind as fallback.
    Inferred parameters are only kept when they belong to the effective kind.
    """
    inferred = classify(utterance, today=today)
    kind = selected or (inferred.kind if inferred else None)
    if kind is None:
        return None

    parameters = default_parameters(kind, today=today)
    if inferred is not None and inferred.kind == kind:
        parameters.update(inferred.parameters)
    return ParsedIntent(kind=kind, parameters=parameters)
