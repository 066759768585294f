"""Confirmation detector for pending assistant actions.

Classifies a short user reply as a confirmation, a decline, or neither. The
detector only fires when the user has actions awaiting confirmation, so an
unrelated "yes" elsewhere in a conversation is never misread.

Matching is a single pass over an ordered rule table; the first matching rule
wins. Tiers are listed from highest to lowest confidence.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .actions import Action

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONFIRMATION_LENGTH = 50
PARTIAL_WORD_MAX_WORDS = 3


class ConfirmationType(str, Enum):
    """Verdict for a reply while actions are pending."""

    CONFIRM = "confirm"
    DECLINE = "decline"
    NONE = "none"


@dataclass(frozen=True)
class ConfirmationResult:
    """Outcome of confirmation detection."""

    type: ConfirmationType
    confidence: float
    matched_pattern: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "matched_pattern": self.matched_pattern,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ConfirmationRule:
    """One (pattern, verdict, confidence) entry of the rule table.

    ``max_words`` restricts a rule to messages with at most that many words.
    """

    tier: str
    pattern: re.Pattern[str]
    verdict: ConfirmationType
    confidence: float
    max_words: int | None = None

    def matches(self, normalized: str, word_count: int) -> bool:
        if self.max_words is not None and word_count > self.max_words:
            return False
        return self.pattern.search(normalized) is not None


STRONG_AFFIRMATIVE_PHRASES = (
    "yes",
    "yeah",
    "yep",
    "yup",
    "sure",
    "ok",
    "okay",
    "confirm",
    "confirmed",
    "approve",
    "approved",
    "accept",
    "accepted",
)

ACTION_PHRASES = (
    "go ahead",
    "do it",
    "proceed",
    "execute",
    "run it",
    "make it happen",
    "let's do it",
    "lets do it",
    "sounds good",
    "perfect",
    "great",
    "that's fine",
    "thats fine",
    "fine",
    "alright",
    "all right",
)

DECLINE_PHRASES = (
    "no",
    "nope",
    "nah",
    "cancel",
    "stop",
    "don't",
    "dont",
    "never mind",
    "nevermind",
    "decline",
    "reject",
    "skip",
    "abort",
    "forget it",
    "no thanks",
    "no thank you",
)

CONTEXTUAL_AFFIRMATIVE_PATTERNS = (
    r"^yes,?\s*(please|do it|go ahead)?$",
    r"^yeah,?\s*(sure|do it|go ahead)?$",
    r"^sure,?\s*(thing|go ahead)?$",
    r"^ok,?\s*(do it|go ahead|sounds good)?$",
)

CONTEXTUAL_DECLINE_PATTERNS = (
    r"^no,?\s*(thanks|don't|cancel)?$",
    r"^not?\s*(now|yet|today)$",
)

AFFIRMATIVE_WORDS = (
    "yes",
    "yeah",
    "yep",
    "yup",
    "sure",
    "ok",
    "okay",
    "confirm",
    "proceed",
    "approved",
)

DECLINE_WORDS = ("no", "nope", "nah", "cancel", "stop", "decline", "reject")

NEW_REQUEST_PATTERNS = (
    re.compile(r"^(create|add|make|delete|remove|update|change|set|move|schedule)"),
    re.compile(r"^(help me|can you|please|i want|i need|show me|list|find)"),
    re.compile(r"\?$"),
)


def _exact(phrases: Iterable[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(phrase) for phrase in phrases)
    return re.compile(rf"^(?:{alternation})$")


def _any_word(words: Iterable[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(word) for word in words)
    return re.compile(rf"(?:^|\s)(?:{alternation})(?=\s|$)")


def build_default_rules() -> list[ConfirmationRule]:
    """Build the ordered English rule table."""
    rules = [
        ConfirmationRule(
            "strong_affirmative",
            _exact(STRONG_AFFIRMATIVE_PHRASES),
            ConfirmationType.CONFIRM,
            1.0,
        ),
        ConfirmationRule("action_phrase", _exact(ACTION_PHRASES), ConfirmationType.CONFIRM, 1.0),
        ConfirmationRule("decline", _exact(DECLINE_PHRASES), ConfirmationType.DECLINE, 1.0),
    ]
    rules.extend(
        ConfirmationRule(
            "contextual_affirmative", re.compile(pattern), ConfirmationType.CONFIRM, 0.9
        )
        for pattern in CONTEXTUAL_AFFIRMATIVE_PATTERNS
    )
    rules.extend(
        ConfirmationRule("contextual_decline", re.compile(pattern), ConfirmationType.DECLINE, 0.9)
        for pattern in CONTEXTUAL_DECLINE_PATTERNS
    )
    rules.append(
        ConfirmationRule(
            "partial_word",
            _any_word(AFFIRMATIVE_WORDS),
            ConfirmationType.CONFIRM,
            0.8,
            max_words=PARTIAL_WORD_MAX_WORDS,
        )
    )
    rules.append(
        ConfirmationRule(
            "partial_word",
            _any_word(DECLINE_WORDS),
            ConfirmationType.DECLINE,
            0.8,
            max_words=PARTIAL_WORD_MAX_WORDS,
        )
    )
    return rules


def normalize_message(message: str) -> str:
    """Trim, lowercase and fold typographic apostrophes."""
    return message.strip().lower().replace("’", "'")


class ConfirmationDetector:
    """Classify replies against an ordered rule table."""

    def __init__(
        self,
        rules: Sequence[ConfirmationRule] | None = None,
        max_length: int = DEFAULT_MAX_CONFIRMATION_LENGTH,
    ) -> None:
        """Initialize the detector.

        Args:
            rules: Ordered rules, first match wins (default: English table)
            max_length: Longer normalized messages are never confirmations
        """
        self.rules = list(rules) if rules is not None else build_default_rules()
        self.max_length = max_length

    def detect(self, message: Any, has_pending_actions: bool) -> ConfirmationResult:
        """Detect whether a message confirms or declines pending actions.

        Args:
            message: The user's reply
            has_pending_actions: Whether the user has actions awaiting confirmation

        Returns:
            ConfirmationResult with verdict, confidence and matched tier
        """
        if not has_pending_actions:
            return ConfirmationResult(ConfirmationType.NONE, 0.0, reason="no_pending_actions")

        if not message or not isinstance(message, str):
            return ConfirmationResult(ConfirmationType.NONE, 0.0, reason="invalid_message")

        normalized = normalize_message(message)
        if not normalized:
            return ConfirmationResult(ConfirmationType.NONE, 0.0, reason="invalid_message")

        if len(normalized) > self.max_length:
            return ConfirmationResult(ConfirmationType.NONE, 0.0, reason="message_too_long")

        word_count = len(normalized.split())
        for rule in self.rules:
            if rule.matches(normalized, word_count):
                logger.debug("Confirmation rule %s matched: %s", rule.tier, rule.verdict.value)
                return ConfirmationResult(rule.verdict, rule.confidence, matched_pattern=rule.tier)

        return ConfirmationResult(ConfirmationType.NONE, 0.0, reason="no_match")


def is_likely_new_request(message: Any) -> bool:
    """Check if a message looks like a new request rather than a reply.

    True if the message starts with an action verb or a request opener, or
    ends with a question mark.
    """
    if not message or not isinstance(message, str):
        return False

    normalized = normalize_message(message)
    return any(pattern.search(normalized) for pattern in NEW_REQUEST_PATTERNS)


def describe_pending_actions(actions: Sequence[Action]) -> str:
    """Summarize actions as counts by kind, e.g. "2 create tasks, 1 delete goal"."""
    if not actions:
        return "No pending actions"

    counts: dict[str, int] = {}
    for action in actions:
        label = action.type.value.replace("_", " ")
        counts[label] = counts.get(label, 0) + 1

    return ", ".join(
        f"{count} {label}{'s' if count > 1 else ''}" for label, count in counts.items()
    )


_default_detector = ConfirmationDetector()


def detect_confirmation(message: Any, has_pending_actions: bool) -> ConfirmationResult:
    """Detect confirmation intent with the default English detector."""
    return _default_detector.detect(message, has_pending_actions)
