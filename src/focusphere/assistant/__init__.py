"""Chat action pipeline.

This package implements:
- Typed actions and the ACTIONS block parser
- Confirmation detection for pending actions
- The pending action store with TTL expiry
- Prompt construction, LLM providers and action execution
- The per-turn chat orchestrator
"""

from .action_parser import ActionParser, ParsedResponse, parse_response
from .actions import Action, ActionType, action_from_dict
from .confirmation import (
    ConfirmationDetector,
    ConfirmationResult,
    ConfirmationType,
    describe_pending_actions,
    detect_confirmation,
    is_likely_new_request,
)
from .pending_actions import PendingActionEntry, PendingActionStore
from .prompt import ChatContext, ChatMessage, ChatPrompt, build_chat_prompt
from .executor import ActionExecutor, ActionResult, BatchResult
from .orchestrator import ChatOrchestrator, TurnResult, TurnStatus

__all__ = [
    "Action",
    "ActionExecutor",
    "ActionParser",
    "ActionResult",
    "ActionType",
    "BatchResult",
    "ChatContext",
    "ChatMessage",
    "ChatOrchestrator",
    "ChatPrompt",
    "ConfirmationDetector",
    "ConfirmationResult",
    "ConfirmationType",
    "ParsedResponse",
    "PendingActionEntry",
    "PendingActionStore",
    "TurnResult",
    "TurnStatus",
    "action_from_dict",
    "build_chat_prompt",
    "describe_pending_actions",
    "detect_confirmation",
    "is_likely_new_request",
    "parse_response",
]
