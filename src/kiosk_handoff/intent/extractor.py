"""Rule-based shopping intent extraction.

Turns a free-text shopper message into a ``ParsedIntent`` using
handcrafted keyword patterns.  No external NLP libraries are required.

Each field is resolved against the current message combined with every
earlier user message, so a detail mentioned once ("budget $200") carries
through the rest of the conversation.

Extracted fields
----------------
- occasion     — wedding, work, party, date, casual, other
- style        — formal, business, trendy, classic, sporty, casual
- season       — summer, winter, spring, fall, all-season
- budget       — integer amount or "flexible"
- urgency      — today, this-week, flexible
- preferences  — colors, materials and fits, in first-mention order

Classes
-------
- ParsedMessage    — dataclass holding the extraction result
- IntentExtractor  — parse a message against prior conversation history
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from kiosk_handoff.session.state import ChatMessage, ParsedIntent, Sender


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


@dataclass
class ParsedMessage:
    """Outcome of parsing one shopper message.

    Parameters
    ----------
    intent:
        Structured preferences for the conversation so far.
    tags:
        Hashtags derived from ``intent`` (``#Wedding``, ``#SummerWear`` ...).
    summary:
        One-line natural-language restatement used as the assistant reply.
    confidence:
        Share of intent fields that carry a meaningful value, in [0.1, 0.95].
    """

    intent: ParsedIntent
    tags: list[str] = field(default_factory=list)
    summary: str = ""
    confidence: float = 0.0


# ---------------------------------------------------------------------------
# Compiled patterns (checked in priority order)
# ---------------------------------------------------------------------------

_OCCASION_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("wedding", re.compile(r"\b(wedding|marriage|ceremony|bridal|groom)\b", re.I)),
    ("work", re.compile(r"\b(work|office|business|meeting|interview|professional|corporate)\b", re.I)),
    ("party", re.compile(r"\b(party|celebration|event|gala|festival|gathering)\b", re.I)),
    ("date", re.compile(r"\b(date|romantic|dinner|evening\s+out|night\s+out)\b", re.I)),
    ("casual", re.compile(r"\b(casual|everyday|weekend|daily|regular)\b", re.I)),
)

_STYLE_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("formal", re.compile(r"\b(formal|suit|blazer|dress\s+shirt|tuxedo|tie)\b", re.I)),
    ("business", re.compile(r"\b(business|professional|corporate|executive)\b", re.I)),
    ("trendy", re.compile(r"\b(trendy|fashionable|stylish|modern|contemporary|hip)\b", re.I)),
    ("classic", re.compile(r"\b(classic|traditional|timeless|vintage|conservative)\b", re.I)),
    ("sporty", re.compile(r"\b(sport|athletic|active|gym|workout|athleisure)\b", re.I)),
    ("casual", re.compile(r"\b(casual|relaxed|comfortable|easygoing|laid\s+back)\b", re.I)),
)

_SEASON_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("summer", re.compile(r"\b(summer|hot|lightweight|breathable|beach|sunny|warm\s+weather)\b", re.I)),
    ("winter", re.compile(r"\b(winter|cold|warm|layer|layering|snow|freezing|insulated|wool|fleece)\b", re.I)),
    ("spring", re.compile(r"\b(spring|bloom|mild)\b", re.I)),
    ("fall", re.compile(r"\b(fall|autumn|cooler|crisp)\b", re.I)),
)

_URGENCY_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "today",
        re.compile(
            r"\b(today|right\s+now|asap|as\s+soon\s+as\s+possible|immediately"
            r"|urgently|right\s+away|this\s+evening)\b",
            re.I,
        ),
    ),
    ("this-week", re.compile(r"\b(this\s+week|soon|urgent|quickly|fast|needed\s+soon|hurry)\b", re.I)),
)

# First group of the first matching pattern is the amount.
_BUDGET_AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\$(\d+)"),
    re.compile(r"(\d+)\s*dollars?", re.I),
    re.compile(r"budget\s*(?:of|is)?\s*(\d+)", re.I),
    re.compile(r"around\s*(\d+)", re.I),
    re.compile(r"up\s+to\s*(\d+)", re.I),
    re.compile(r"(\d+)\s*(?:bucks?|usd)", re.I),
    re.compile(r"approximately\s*(\d+)", re.I),
)

_BUDGET_KEYWORD_RULES: tuple[tuple[int, re.Pattern[str]], ...] = (
    (100, re.compile(r"\b(cheap|affordable|budget|inexpensive|economical|low\s+price)\b", re.I)),
    (500, re.compile(r"\b(expensive|luxury|premium|high\s+end|designer|upscale)\b", re.I)),
    (200, re.compile(r"\b(mid\s*range|moderate|medium)\b", re.I)),
)

_COLORS: tuple[str, ...] = (
    "black", "white", "blue", "red", "green", "grey", "gray",
    "brown", "navy", "beige", "tan", "burgundy",
)
_COLOR_RES = tuple((color, re.compile(rf"\b{color}\b", re.I)) for color in _COLORS)
_MATERIAL_RE = re.compile(r"\b(cotton|wool|linen|silk|polyester|denim|leather|suede)\b", re.I)
_FIT_RE = re.compile(r"\b(slim|loose|fitted|relaxed|tailored|baggy|skinny)\b", re.I)

_SEASON_TAGS: dict[str, str] = {"summer": "#SummerWear", "winter": "#WinterWear"}


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------


def _first_rule(text: str, rules: Iterable[tuple[str, re.Pattern[str]]]) -> str | None:
    for value, pattern in rules:
        if pattern.search(text):
            return value
    return None


def extract_budget(text: str) -> int | None:
    """Return the budget stated in ``text``, or None when none is stated."""
    for pattern in _BUDGET_AMOUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            amount = int(match.group(1))
            if amount > 0:
                return amount
    for amount, pattern in _BUDGET_KEYWORD_RULES:
        if pattern.search(text):
            return amount
    return None


def extract_preferences(text: str, known: Iterable[str] = ()) -> list[str]:
    """Return ``known`` followed by any new colors, materials and fits in ``text``."""
    preferences = list(known)
    seen = set(preferences)

    def _add(value: str) -> None:
        if value not in seen:
            seen.add(value)
            preferences.append(value)

    for color, pattern in _COLOR_RES:
        if pattern.search(text):
            _add(color)
    for match in _MATERIAL_RE.finditer(text):
        _add(match.group(1).lower())
    for match in _FIT_RE.finditer(text):
        _add(match.group(1).lower())
    return preferences


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def tags_for_intent(intent: ParsedIntent, *, prefix: str = "#") -> list[str]:
    """Derive de-duplicated tags from ``intent``.

    Parameters
    ----------
    intent:
        The structured intent.
    prefix:
        Marker prepended to every tag; pass ``""`` for bare catalog tags.
    """
    tags: list[str] = []
    if intent.occasion and intent.occasion != "other":
        tags.append(f"#{_capitalize(intent.occasion)}")
    if intent.style:
        tags.append(f"#{_capitalize(intent.style)}")
    if intent.season and intent.season != "all-season":
        tags.append(_SEASON_TAGS.get(intent.season, f"#{_capitalize(intent.season)}Wear"))
    if intent.urgency == "today":
        tags.append("#Urgent")
    if isinstance(intent.budget, int):
        if intent.budget > 300:
            tags.append("#Premium")
        elif intent.budget < 100:
            tags.append("#Budget")
    return [prefix + tag[1:] for tag in dict.fromkeys(tags)]


def summarize_intent(intent: ParsedIntent) -> str:
    """Restate ``intent`` as one sentence, e.g. ``Looking for wedding, casual style``."""
    parts: list[str] = []
    if intent.occasion and intent.occasion != "other":
        parts.append(f"for {intent.occasion}")
    if intent.style:
        parts.append(f"{intent.style} style")
    if intent.season and intent.season != "all-season":
        parts.append(f"suitable for {intent.season}")
    if isinstance(intent.budget, int):
        parts.append(f"within ${intent.budget} budget")
    else:
        parts.append("flexible budget")
    if intent.urgency == "today":
        parts.append("needed today")
    elif intent.urgency == "this-week":
        parts.append("needed this week")
    if intent.preferences:
        parts.append(f"preferences: {', '.join(intent.preferences[:3])}")
    if not parts:
        return "Looking for clothing items"
    return f"Looking {', '.join(parts)}"


def score_confidence(intent: ParsedIntent) -> float:
    """Return the share of meaningful intent fields, clamped to [0.1, 0.95].

    ``casual`` counts as half a field for style and as a default elsewhere.
    """
    defaults = {"other", "flexible", "all-season", "casual"}
    score = 0.0
    max_score = 0.0
    for name in ("occasion", "style", "season", "budget", "urgency"):
        max_score += 1
        value = getattr(intent, name)
        if value and value not in defaults:
            score += 1
        elif name == "style" and value == "casual":
            score += 0.5
    if intent.preferences:
        score += 0.2
        max_score += 0.2
    return min(0.95, max(0.1, score / max_score))


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


def _message_fields(message: ChatMessage | Mapping[str, Any]) -> tuple[str, str]:
    if isinstance(message, ChatMessage):
        return message.sender.value, message.text
    sender = str(message.get("sender") or message.get("role") or "")
    text = str(message.get("text") or message.get("content") or "")
    return sender.lower(), text


class IntentExtractor:
    """Parse shopper messages into structured intent.

    The extractor is stateless; conversation context comes from the
    ``history`` passed to ``parse_message``.

    Example
    -------
    ::

        extractor = IntentExtractor()
        parsed = extractor.parse_message("wedding in summer, budget $200")
        parsed.intent.occasion  # "wedding"
        parsed.tags             # ["#Wedding", "#Casual", "#SummerWear"]
    """

    def parse_message(
        self,
        text: str,
        history: Iterable[ChatMessage | Mapping[str, Any]] = (),
    ) -> ParsedMessage:
        """Extract intent from ``text`` in the context of earlier messages.

        Parameters
        ----------
        text:
            The shopper's new message.
        history:
            Earlier conversation turns, canonical ``ChatMessage`` objects or
            raw ``{text, sender}`` / ``{content, role}`` mappings.  Only user
            turns are considered.

        Returns
        -------
        ParsedMessage
        """
        current = (text or "").lower()
        previous = self._previous_user_text(history)
        combined = f"{previous} {current}" if previous else current

        budget = extract_budget(combined)
        intent = ParsedIntent(
            occasion=_first_rule(combined, _OCCASION_RULES) or "other",
            style=_first_rule(combined, _STYLE_RULES) or "casual",
            season=_first_rule(combined, _SEASON_RULES) or "all-season",
            budget=budget if budget is not None else "flexible",
            urgency=_first_rule(combined, _URGENCY_RULES) or "flexible",
            # earlier preferences keep their position ahead of new ones
            preferences=extract_preferences(combined, extract_preferences(previous)),
        )
        return ParsedMessage(
            intent=intent,
            tags=tags_for_intent(intent),
            summary=summarize_intent(intent),
            confidence=score_confidence(intent),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _previous_user_text(history: Iterable[ChatMessage | Mapping[str, Any]]) -> str:
        texts: list[str] = []
        for message in history:
            sender, body = _message_fields(message)
            body = body.lower()
            if sender == Sender.USER.value and body:
                texts.append(body)
        return " ".join(texts)


__all__ = [
    "IntentExtractor",
    "ParsedMessage",
    "extract_budget",
    "extract_preferences",
    "score_confidence",
    "summarize_intent",
    "tags_for_intent",
]
