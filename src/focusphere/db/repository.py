"""Task/goal mutation layer used by the assistant executor."""

import logging
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any, Protocol

import duckdb

from focusphere.db import goals, tasks
from focusphere.db.goals import GoalRecord
from focusphere.db.tasks import TaskRecord

logger = logging.getLogger(__name__)

DEFAULT_DUE_DAYS = 2


class ActionNotFoundError(LookupError):
    """Raised when a delete targets a task or goal the user does not own."""

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} not found: {item_id}")


class TaskGoalRepository(Protocol):
    """Mutation and read operations over a user's tasks and goals."""

    def create_task(
        self,
        user_id: str,
        *,
        title: str,
        category: str,
        priority: str,
        description: str,
        due_date: str | None,
        status: str,
    ) -> dict[str, Any]: ...

    def delete_task(self, user_id: str, task_id: str, reason: str = "") -> dict[str, Any]: ...

    def create_goal(
        self,
        user_id: str,
        *,
        title: str,
        description: str,
        priority: str,
        deadline: str | None,
    ) -> dict[str, Any]: ...

    def delete_goal(self, user_id: str, goal_id: str, reason: str = "") -> dict[str, Any]: ...

    def list_tasks(self, user_id: str, limit: int | None = None) -> list[TaskRecord]: ...

    def list_goals(self, user_id: str, limit: int | None = None) -> list[GoalRecord]: ...


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])


class DuckDBTaskGoalRepository:
    """TaskGoalRepository backed by the DuckDB ``tasks`` and ``goals`` tables.

    Each operation runs on its own cursor of the shared connection, so one
    repository may be used from several worker threads.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            conn: Migrated DuckDB connection
            today: Returns the current date (default: date.today)
        """
        self.conn = conn
        self._today = today or date.today

    def create_task(
        self,
        user_id: str,
        *,
        title: str,
        category: str = "General",
        priority: str = "medium",
        description: str = "",
        due_date: str | None = None,
        status: str = "todo",
    ) -> dict[str, Any]:
        """Create a task; a missing due date defaults to two days from today."""
        due = _parse_date(due_date) or self._today() + timedelta(days=DEFAULT_DUE_DAYS)
        with self.conn.cursor() as cursor:
            record = tasks.create_task(
                cursor,
                user_id=user_id,
                title=title,
                description=description,
                category=category,
                priority=priority,
                status=status,
                due_date=due,
            )
        logger.info("Created task %s for user %s", record.id, user_id)
        return record.to_dict()

    def delete_task(self, user_id: str, task_id: str, reason: str = "") -> dict[str, Any]:
        """Delete a task.

        Raises:
            ActionNotFoundError: If the user has no task with this id
        """
        with self.conn.cursor() as cursor:
            record = tasks.get_task(cursor, user_id, task_id)
            if record is None or not tasks.delete_task(cursor, user_id, task_id):
                raise ActionNotFoundError("task", task_id)
        logger.info("Deleted task %s for user %s (reason=%r)", task_id, user_id, reason)
        return {"id": task_id, "title": record.title, "deleted": True}

    def create_goal(
        self,
        user_id: str,
        *,
        title: str,
        description: str = "",
        priority: str = "medium",
        deadline: str | None = None,
    ) -> dict[str, Any]:
        """Create a goal; an empty description becomes ``"Goal: <title>"``."""
        with self.conn.cursor() as cursor:
            record = goals.create_goal(
                cursor,
                user_id=user_id,
                title=title,
                description=description or f"Goal: {title}",
                priority=priority,
                deadline=_parse_date(deadline),
            )
        logger.info("Created goal %s for user %s", record.id, user_id)
        return record.to_dict()

    def delete_goal(self, user_id: str, goal_id: str, reason: str = "") -> dict[str, Any]:
        """Delete a goal.

        Raises:
            ActionNotFoundError: If the user has no goal with this id
        """
        with self.conn.cursor() as cursor:
            record = goals.get_goal(cursor, user_id, goal_id)
            if record is None or not goals.delete_goal(cursor, user_id, goal_id):
                raise ActionNotFoundError("goal", goal_id)
        logger.info("Deleted goal %s for user %s (reason=%r)", goal_id, user_id, reason)
        return {"id": goal_id, "title": record.title, "deleted": True}

    def list_tasks(self, user_id: str, limit: int | None = None) -> list[TaskRecord]:
        with self.conn.cursor() as cursor:
            return tasks.list_tasks(cursor, user_id, limit=limit)

    def list_goals(self, user_id: str, limit: int | None = None) -> list[GoalRecord]:
        with self.conn.cursor() as cursor:
            return goals.list_goals(cursor, user_id, limit=limit)
