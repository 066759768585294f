"""Typed action variants proposed by the assistant.

An action is one of four closed kinds. Each kind is its own frozen dataclass so
that the executor can dispatch exhaustively over the ``Action`` union.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

PRIORITIES = ("high", "medium", "low")
DEFAULT_PRIORITY = "medium"
DEFAULT_TASK_TITLE = "Untitled Task"
DEFAULT_GOAL_TITLE = "Untitled Goal"
DEFAULT_CATEGORY = "General"
INITIAL_TASK_STATUS = "todo"


class ActionType(str, Enum):
    """Action kinds the assistant may propose."""

    CREATE_TASK = "create_task"
    DELETE_TASK = "delete_task"
    CREATE_GOAL = "create_goal"
    DELETE_GOAL = "delete_goal"


@dataclass(frozen=True)
class CreateTaskAction:
    """Create a new task for the user."""

    type: ClassVar[ActionType] = ActionType.CREATE_TASK

    title: str = DEFAULT_TASK_TITLE
    category: str = DEFAULT_CATEGORY
    priority: str = DEFAULT_PRIORITY
    description: str = ""
    due_date: str | None = None
    status: str = INITIAL_TASK_STATUS

    @property
    def data(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "category": self.category,
            "priority": self.priority,
            "description": self.description,
            "due_date": self.due_date,
            "status": self.status,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape ``{"type": ..., "data": {...}}``."""
        return {"type": self.type.value, "data": self.data}


@dataclass(frozen=True)
class DeleteTaskAction:
    """Delete an existing task referenced by id."""

    type: ClassVar[ActionType] = ActionType.DELETE_TASK

    task_id: str | None = None
    reason: str = ""
    title: str | None = None

    @property
    def data(self) -> dict[str, Any]:
        data: dict[str, Any] = {"taskId": self.task_id, "reason": self.reason}
        if self.title:
            data["title"] = self.title
        return data

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape ``{"type": ..., "data": {...}}``."""
        return {"type": self.type.value, "data": self.data}


@dataclass(frozen=True)
class CreateGoalAction:
    """Create a new goal for the user."""

    type: ClassVar[ActionType] = ActionType.CREATE_GOAL

    title: str = DEFAULT_GOAL_TITLE
    description: str = ""
    priority: str = DEFAULT_PRIORITY
    deadline: str | None = None

    @property
    def data(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "deadline": self.deadline,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape ``{"type": ..., "data": {...}}``."""
        return {"type": self.type.value, "data": self.data}


@dataclass(frozen=True)
class DeleteGoalAction:
    """Delete an existing goal referenced by id."""

    type: ClassVar[ActionType] = ActionType.DELETE_GOAL

    goal_id: str | None = None
    reason: str = ""
    title: str | None = None

    @property
    def data(self) -> dict[str, Any]:
        data: dict[str, Any] = {"goalId": self.goal_id, "reason": self.reason}
        if self.title:
            data["title"] = self.title
        return data

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape ``{"type": ..., "data": {...}}``."""
        return {"type": self.type.value, "data": self.data}


Action = CreateTaskAction | DeleteTaskAction | CreateGoalAction | DeleteGoalAction


def is_destructive(action: Action) -> bool:
    """Return True for actions that remove user data."""
    return isinstance(action, DeleteTaskAction | DeleteGoalAction)


def count_destructive(actions: list[Action]) -> int:
    """Count destructive actions in a batch."""
    return sum(1 for action in actions if is_destructive(action))


def _text(value: Any, default: str) -> str:
    """Coerce a model-supplied value to stripped text, falling back to default."""
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or default


def _priority(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in PRIORITIES:
        return value.strip().lower()
    return DEFAULT_PRIORITY


def _iso_date(value: Any) -> str | None:
    """Return value if it starts with a valid ISO date, else None."""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        logger.debug("Dropping non-ISO date value from action: %r", value)
        return None
    return value


def _reference(data: dict[str, Any], key: str) -> str | None:
    ref = data.get(key)
    if ref is None:
        ref = data.get("id")
    if ref is None:
        return None
    ref = str(ref).strip()
    return ref or None


def action_from_dict(raw: Any) -> Action | None:
    """Validate and normalize one raw action object.

    Args:
        raw: Decoded element of an ACTIONS block (expected ``{"type", "data"}``)

    Returns:
        A typed action with defaults applied, or None if the element fails the
        basic shape check (not an object, ``type`` absent or unknown, ``data``
        absent or not an object).
    """
    if not isinstance(raw, dict):
        return None

    raw_type = raw.get("type")
    data = raw.get("data")
    if not raw_type or not isinstance(data, dict):
        return None

    try:
        action_type = ActionType(raw_type)
    except ValueError:
        return None

    if action_type is ActionType.CREATE_TASK:
        return CreateTaskAction(
            title=_text(data.get("title"), DEFAULT_TASK_TITLE),
            category=_text(data.get("category"), DEFAULT_CATEGORY),
            priority=_priority(data.get("priority")),
            description=_text(data.get("description"), ""),
            due_date=_iso_date(data.get("due_date")),
        )
    if action_type is ActionType.CREATE_GOAL:
        return CreateGoalAction(
            title=_text(data.get("title"), DEFAULT_GOAL_TITLE),
            description=_text(data.get("description"), ""),
            priority=_priority(data.get("priority")),
            deadline=_iso_date(data.get("deadline")),
        )
    if action_type is ActionType.DELETE_TASK:
        return DeleteTaskAction(
            task_id=_reference(data, "taskId"),
            reason=_text(data.get("reason"), ""),
            title=data.get("title") if isinstance(data.get("title"), str) else None,
        )
    return DeleteGoalAction(
        goal_id=_reference(data, "goalId"),
        reason=_text(data.get("reason"), ""),
        title=data.get("title") if isinstance(data.get("title"), str) else None,
    )
