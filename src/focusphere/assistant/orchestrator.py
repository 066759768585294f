"""Per-turn control flow for the chat assistant.

A user is either idle or awaiting confirmation of one pending batch. Each turn
either answers the pending batch (confirm, decline, reprompt) or is sent to the
language model as a new request whose proposed actions become the new batch.
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from focusphere.config import AssistantConfig
from focusphere.logging_utils import log_error, log_info
from focusphere.metrics import MetricsCollector

from .action_parser import ActionParser
from .actions import Action, DeleteGoalAction, DeleteTaskAction, count_destructive
from .confirmation import (
    ConfirmationDetector,
    ConfirmationType,
    describe_pending_actions,
    is_likely_new_request,
)
from .executor import ActionExecutor, BatchResult, format_results
from .llm import LLMError, LLMProvider
from .pending_actions import PendingActionStore
from .prompt import ChatContext, build_chat_prompt

logger = logging.getLogger(__name__)

LLM_FAILURE_REPLY = "Sorry, I couldn't process your message right now. Please try again."
CANCELLED_REPLY = "Okay, I've cancelled the pending actions."
EXPIRED_REPLY = "Those pending actions have expired. Please ask again."


class TurnStatus(str, Enum):
    """Outcome category of a chat turn."""

    OK = "ok"
    NEEDS_CONFIRMATION = "needs_confirmation"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class TurnResult:
    """Result of one chat turn."""

    status: TurnStatus
    reply: str
    branch: str
    pending_summary: str | None = None
    pending_actions: list[Action] = field(default_factory=list)
    executed_results: BatchResult | None = None
    requires_typed_confirmation: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "status": self.status.value,
            "reply": self.reply,
            "pending_summary": self.pending_summary,
            "pending_actions": [action.to_dict() for action in self.pending_actions] or None,
            "executed_results": self.executed_results.to_dict() if self.executed_results else None,
            "requires_typed_confirmation": self.requires_typed_confirmation,
        }


def enrich_delete_actions(actions: Sequence[Action], context: ChatContext) -> list[Action]:
    """Attach context titles to delete actions whose id is in the turn context."""
    task_titles = {task.id: task.title for task in context.tasks}
    goal_titles = {goal.id: goal.title for goal in context.goals}

    enriched: list[Action] = []
    for action in actions:
        if isinstance(action, DeleteTaskAction) and action.task_id in task_titles:
            action = replace(action, title=task_titles[action.task_id])
        elif isinstance(action, DeleteGoalAction) and action.goal_id in goal_titles:
            action = replace(action, title=goal_titles[action.goal_id])
        enriched.append(action)
    return enriched


class ChatOrchestrator:
    """Drive the pending-confirmation state machine for chat turns."""

    def __init__(
        self,
        store: PendingActionStore,
        llm: LLMProvider,
        executor: ActionExecutor,
        config: AssistantConfig | None = None,
        detector: ConfirmationDetector | None = None,
        parser: ActionParser | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Pending action store shared across turns
            llm: Language-model provider for new requests
            executor: Applies confirmed actions
            config: Assistant configuration (default: AssistantConfig())
            detector: Confirmation detector (default: English rules)
            parser: ACTIONS block parser
            metrics: Optional metrics collector
            clock: Returns the current aware datetime (default: UTC wall clock)
        """
        self.config = config or AssistantConfig()
        self.store = store
        self.llm = llm
        self.executor = executor
        self.detector = detector or ConfirmationDetector(
            max_length=self.config.max_confirmation_length
        )
        self.parser = parser or ActionParser()
        self.metrics = metrics
        self._clock = clock or (lambda: datetime.now(UTC))

    def requires_typed_confirmation(self, actions: Sequence[Action]) -> bool:
        """Whether a batch deletes more items than a plain "yes" may approve."""
        return count_destructive(list(actions)) > self.config.destructive_confirm_threshold

    def handle_turn(
        self,
        user_id: str,
        message: str,
        context: ChatContext | None = None,
    ) -> TurnResult:
        """Handle one chat message from a user.

        Args:
            user_id: Authenticated user
            message: The user's message
            context: Tasks, goals and history for prompt construction

        Returns:
            TurnResult with the reply and any pending or executed actions
        """
        context = context or ChatContext()
        pending = self.store.get_actions(user_id)

        if pending:
            result = self._handle_pending_reply(user_id, message, pending)
            if result is not None:
                return self._finish(user_id, result)

        return self._finish(user_id, self._handle_new_request(user_id, message, context))

    def execute_direct(
        self,
        user_id: str,
        actions: Sequence[Action],
        confirm_token: str | None = None,
    ) -> TurnResult:
        """Execute client-approved actions immediately and clear the pending batch.

        Large destructive batches still require the typed confirmation token.
        """
        if self.requires_typed_confirmation(actions) and not self._is_confirm_token(confirm_token):
            return self._finish(
                user_id,
                TurnResult(
                    status=TurnStatus.NEEDS_CONFIRMATION,
                    reply=self._typed_confirmation_prompt(actions),
                    branch="destructive_gate",
                    pending_summary=describe_pending_actions(actions),
                    pending_actions=list(actions),
                    requires_typed_confirmation=True,
                ),
            )

        self.store.clear(user_id)
        return self._finish(user_id, self._execute(user_id, list(actions)))

    def _handle_pending_reply(
        self, user_id: str, message: str, pending: list[Action]
    ) -> TurnResult | None:
        """Answer a pending batch, or return None to treat the message as a new request."""
        typed_required = self.requires_typed_confirmation(pending)

        if typed_required and self._is_confirm_token(message):
            return self._execute_pending(user_id, typed_confirmed=True)

        verdict = self.detector.detect(message, has_pending_actions=True)
        if self.metrics:
            self.metrics.record_confirmation(verdict.type.value)

        if verdict.type is ConfirmationType.CONFIRM:
            if typed_required:
                self.store.touch(user_id)
                return TurnResult(
                    status=TurnStatus.NEEDS_CONFIRMATION,
                    reply=self._typed_confirmation_prompt(pending),
                    branch="destructive_gate",
                    pending_summary=describe_pending_actions(pending),
                    pending_actions=pending,
                    requires_typed_confirmation=True,
                )
            return self._execute_pending(user_id)

        if verdict.type is ConfirmationType.DECLINE:
            self.store.clear(user_id)
            return TurnResult(status=TurnStatus.CANCELLED, reply=CANCELLED_REPLY, branch="decline")

        if is_likely_new_request(message):
            return None

        self.store.touch(user_id)
        summary = describe_pending_actions(pending)
        confirm_hint = (
            f"Type '{self.config.destructive_confirm_token}'" if typed_required else "Reply 'yes'"
        )
        return TurnResult(
            status=TurnStatus.NEEDS_CONFIRMATION,
            reply=(
                f"You have pending actions ({summary}). "
                f"{confirm_hint} to confirm or 'no' to cancel."
            ),
            branch="reprompt",
            pending_summary=summary,
            pending_actions=pending,
            requires_typed_confirmation=typed_required,
        )

    def _handle_new_request(self, user_id: str, message: str, context: ChatContext) -> TurnResult:
        prompt = build_chat_prompt(
            message,
            context,
            now=self._clock(),
            task_limit=self.config.task_context_limit,
            goal_limit=self.config.goal_context_limit,
            history_limit=self.config.history_limit,
        )

        start = time.perf_counter()
        try:
            completion = self.llm.generate(prompt.render(), prompt.system_instruction)
        except LLMError as e:
            log_error(
                logger,
                "LLM request failed",
                user_id=user_id,
                model=e.model,
                retry_after=e.retry_after_seconds,
                error=str(e),
            )
            return TurnResult(status=TurnStatus.ERROR, reply=LLM_FAILURE_REPLY, branch="error")
        finally:
            if self.metrics:
                self.metrics.record_llm_latency((time.perf_counter() - start) * 1000)

        parsed = self.parser.parse_response(completion)
        actions = enrich_delete_actions(parsed.actions, context)

        if not actions:
            return TurnResult(status=TurnStatus.OK, reply=parsed.message, branch="new_request")

        if not self.store.set(user_id, actions, context.conversation_id):
            logger.error("Failed to store %d proposed actions for user %s", len(actions), user_id)
            return TurnResult(status=TurnStatus.OK, reply=parsed.message, branch="new_request")

        summary = describe_pending_actions(actions)
        typed_required = self.requires_typed_confirmation(actions)
        reply = parsed.message or f"I'd like to make these changes: {summary}."
        return TurnResult(
            status=TurnStatus.NEEDS_CONFIRMATION,
            reply=reply,
            branch="new_request",
            pending_summary=summary,
            pending_actions=actions,
            requires_typed_confirmation=typed_required,
        )

    def _execute_pending(self, user_id: str, typed_confirmed: bool = False) -> TurnResult:
        entry = self.store.consume(user_id)
        if entry is None:
            return TurnResult(status=TurnStatus.OK, reply=EXPIRED_REPLY, branch="expired")

        # The batch may have been replaced since it was read for detection
        if not typed_confirmed and self.requires_typed_confirmation(entry.actions):
            self.store.set(user_id, entry.actions, entry.conversation_id)
            logger.warning("Pending batch for user %s changed before execution", user_id)
            return TurnResult(
                status=TurnStatus.NEEDS_CONFIRMATION,
                reply=self._typed_confirmation_prompt(entry.actions),
                branch="destructive_gate",
                pending_summary=describe_pending_actions(entry.actions),
                pending_actions=entry.actions,
                requires_typed_confirmation=True,
            )

        return self._execute(user_id, entry.actions)

    def _execute(self, user_id: str, actions: list[Action]) -> TurnResult:
        batch = self.executor.execute_batch(actions, user_id)
        return TurnResult(
            status=TurnStatus.EXECUTED,
            reply=format_results(batch),
            branch="confirm",
            executed_results=batch,
        )

    def _is_confirm_token(self, message: str | None) -> bool:
        return isinstance(message, str) and message.strip() == self.config.destructive_confirm_token

    def _typed_confirmation_prompt(self, actions: Sequence[Action]) -> str:
        return (
            f"This will delete {count_destructive(list(actions))} items. "
            f"Type '{self.config.destructive_confirm_token}' to confirm or 'no' to cancel."
        )

    def _finish(self, user_id: str, result: TurnResult) -> TurnResult:
        if self.metrics:
            self.metrics.record_turn(result.branch)
        log_info(
            logger,
            "Chat turn handled",
            user_id=user_id,
            branch=result.branch,
            status=result.status.value,
        )
        return result
