"""Execution of confirmed actions against the task/goal mutation layer."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, assert_never

from focusphere.db.repository import TaskGoalRepository

from .actions import (
    Action,
    ActionType,
    CreateGoalAction,
    CreateTaskAction,
    DeleteGoalAction,
    DeleteTaskAction,
)

logger = logging.getLogger(__name__)

_PAST_TENSE = {
    ActionType.CREATE_TASK: "created",
    ActionType.CREATE_GOAL: "created",
    ActionType.DELETE_TASK: "deleted",
    ActionType.DELETE_GOAL: "deleted",
}


@dataclass
class ActionResult:
    """Outcome of executing one action."""

    action_type: ActionType
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "action_type": self.action_type.value,
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class BatchResult:
    """Per-action outcomes of a batch, in execution order."""

    results: list[ActionResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def summary(self) -> dict[str, int]:
        return {"total": len(self.results), "succeeded": self.succeeded, "failed": self.failed}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "results": [result.to_dict() for result in self.results],
            "summary": self.summary,
        }


class ActionExecutor:
    """Apply typed actions for a user through a TaskGoalRepository."""

    def __init__(
        self,
        repository: TaskGoalRepository,
        on_result: Callable[[ActionResult], None] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            repository: Mutation layer for tasks and goals
            on_result: Optional hook called with every ActionResult (metrics)
        """
        self.repository = repository
        self.on_result = on_result

    def execute(self, action: Action, user_id: str) -> ActionResult:
        """Execute a single action.

        Repository failures are captured in the result rather than raised.

        Args:
            action: Action to apply
            user_id: Owner of the affected items

        Returns:
            ActionResult describing success or the failure message
        """
        try:
            data = self._dispatch(action, user_id)
        except Exception as e:
            logger.warning("Action %s failed for user %s: %s", action.type.value, user_id, e)
            result = ActionResult(action_type=action.type, success=False, error=str(e))
        else:
            logger.info("Action %s executed for user %s", action.type.value, user_id)
            result = ActionResult(action_type=action.type, success=True, data=data)

        if self.on_result is not None:
            self.on_result(result)
        return result

    def execute_batch(self, actions: Sequence[Action], user_id: str) -> BatchResult:
        """Execute actions in order; a failure does not stop the remaining ones."""
        batch = BatchResult([self.execute(action, user_id) for action in actions])
        logger.info(
            "Batch execution complete for user %s: %d/%d succeeded",
            user_id,
            batch.succeeded,
            len(batch.results),
        )
        return batch

    def _dispatch(self, action: Action, user_id: str) -> dict[str, Any]:
        if isinstance(action, CreateTaskAction):
            return self.repository.create_task(
                user_id,
                title=action.title,
                category=action.category,
                priority=action.priority,
                description=action.description,
                due_date=action.due_date,
                status=action.status,
            )
        elif isinstance(action, DeleteTaskAction):
            if not action.task_id:
                raise ValueError("Missing required field: taskId")
            return self.repository.delete_task(user_id, action.task_id, action.reason)
        elif isinstance(action, CreateGoalAction):
            return self.repository.create_goal(
                user_id,
                title=action.title,
                description=action.description,
                priority=action.priority,
                deadline=action.deadline,
            )
        elif isinstance(action, DeleteGoalAction):
            if not action.goal_id:
                raise ValueError("Missing required field: goalId")
            return self.repository.delete_goal(user_id, action.goal_id, action.reason)
        else:
            assert_never(action)


def format_results(batch: BatchResult) -> str:
    """Render a batch outcome as a short user-facing sentence."""
    summary = batch.summary
    if summary["total"] == 0:
        return "No actions were executed."

    if summary["failed"] == 0:
        if summary["total"] == 1:
            result = batch.results[0]
            verb = _PAST_TENSE[result.action_type]
            title = (result.data or {}).get("title") or "item"
            return f'Done! Successfully {verb} "{title}".'
        return f"Done! Successfully completed all {summary['total']} actions."

    failures = [result.error or "Unknown error" for result in batch.results if not result.success]
    if summary["succeeded"] == 0:
        return f"Failed to complete any actions. {failures[0]}"

    return (
        f"Completed {summary['succeeded']} of {summary['total']} actions. "
        f"{summary['failed']} failed: {', '.join(failures)}"
    )
