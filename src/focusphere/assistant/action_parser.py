"""Parser for structured actions embedded in model completions.

ACTIONS block grammar (version 1.0)
-----------------------------------

A completion is free text optionally containing one delimited block::

    completion   := text [ block ] text
    block        := "<ACTIONS>" json-array "</ACTIONS>"
    json-array   := "[" [ action { "," action } ] "]"
    action       := { "type": kind, "data": object }
    kind         := "create_task" | "delete_task" | "create_goal" | "delete_goal"

``create_task.data``: title, category, priority (high|medium|low),
description, due_date (YYYY-MM-DD or null).
``create_goal.data``: title, description, priority, deadline (YYYY-MM-DD or null).
``delete_task.data``: taskId, reason.  ``delete_goal.data``: goalId, reason.

Only the first block is interpreted; every block is removed from the text shown
to the user. A block that cannot be decoded yields no actions and the original
text is returned untouched.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .actions import Action, action_from_dict

logger = logging.getLogger(__name__)

ACTIONS_GRAMMAR_VERSION = "1.0"
ACTIONS_OPEN_TAG = "<ACTIONS>"
ACTIONS_CLOSE_TAG = "</ACTIONS>"

_BLOCK_PATTERN = re.compile(
    re.escape(ACTIONS_OPEN_TAG) + r"(.*?)" + re.escape(ACTIONS_CLOSE_TAG),
    re.DOTALL,
)

# Repairs for the most common model JSON mistakes
_TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")
_BARE_KEY_PATTERN = re.compile(r"([{,]\s*)([A-Za-z_]\w*)(\s*:)")
_ACTION_WORDS_PATTERN = re.compile(r"\b(creat|delet|updat|add|remov)\w*", re.IGNORECASE)


@dataclass
class ParsedResponse:
    """User-facing message plus the actions extracted from a completion."""

    message: str
    actions: list[Action] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "message": self.message,
            "actions": [action.to_dict() for action in self.actions],
        }


def repair_json(raw: str) -> str:
    """Fix common JSON formatting issues in model output.

    Removes trailing commas, quotes bare object keys and wraps a lone
    top-level object in an array.

    Args:
        raw: JSON-ish text from inside an ACTIONS block

    Returns:
        Repaired text (not guaranteed to be valid JSON)
    """
    fixed = _TRAILING_COMMA_PATTERN.sub(r"\1", raw)
    fixed = _BARE_KEY_PATTERN.sub(r'\1"\2"\3', fixed)
    fixed = fixed.strip()
    if fixed.startswith("{"):
        fixed = f"[{fixed}]"
    return fixed


def decode_action_block(raw: str) -> list[Any]:
    """Decode the inner content of an ACTIONS block into a list.

    The content is first decoded as-is; the repair pass only runs when strict
    decoding fails.

    Args:
        raw: Text between the ACTIONS tags

    Returns:
        List of decoded elements (not yet validated)

    Raises:
        ValueError: If the content is not decodable into a list or object
    """
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        decoded = json.loads(repair_json(raw))

    if isinstance(decoded, dict):
        return [decoded]
    if not isinstance(decoded, list):
        raise ValueError(f"ACTIONS block must contain an array, got {type(decoded).__name__}")
    return decoded


class ActionParser:
    """Extract typed actions from model completion text."""

    def parse_response(self, text: str | None) -> ParsedResponse:
        """Split a completion into user-facing message and validated actions.

        Never raises on model output: malformed blocks and invalid elements
        degrade to an absence of actions.

        Args:
            text: Raw completion text from the language model

        Returns:
            ParsedResponse with message and actions in proposal order
        """
        if not isinstance(text, str):
            return ParsedResponse(message="")

        match = _BLOCK_PATTERN.search(text)
        if match is None:
            if _ACTION_WORDS_PATTERN.search(text):
                logger.debug("Completion mentions actions but has no %s block", ACTIONS_OPEN_TAG)
            return ParsedResponse(message=text.strip())

        message = _BLOCK_PATTERN.sub("", text).strip()

        try:
            elements = decode_action_block(match.group(1).strip())
        except (ValueError, RecursionError) as e:
            # json.JSONDecodeError is a ValueError; deep nesting exhausts the decoder stack
            logger.warning("Failed to parse ACTIONS block: %s", e)
            return ParsedResponse(message=text.strip())

        actions: list[Action] = []
        for index, element in enumerate(elements):
            action = action_from_dict(element)
            if action is None:
                logger.debug("Action %d rejected: invalid shape or type", index)
                continue
            actions.append(action)

        if len(actions) < len(elements):
            logger.info("Filtered out %d invalid actions", len(elements) - len(actions))

        logger.debug("Parsed %d valid actions", len(actions))
        return ParsedResponse(message=message, actions=actions)


_default_parser = ActionParser()


def parse_response(text: str | None) -> ParsedResponse:
    """Parse a completion with the default parser."""
    return _default_parser.parse_response(text)
