"""Goal persistence module."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

import duckdb

from focusphere.db.tasks import new_record_id, utc_now

_GOAL_COLUMNS = (
    "id, user_id, title, description, priority, progress, deadline, created_at, updated_at"
)


@dataclass
class GoalRecord:
    """Represents a stored goal."""

    id: str
    user_id: str
    title: str
    description: str
    priority: str
    progress: int
    deadline: date | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "progress": self.progress,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def _row_to_goal(row: tuple) -> GoalRecord:
    return GoalRecord(
        id=row[0],
        user_id=row[1],
        title=row[2],
        description=row[3],
        priority=row[4],
        progress=row[5],
        deadline=row[6],
        created_at=row[7].replace(tzinfo=UTC),
        updated_at=row[8].replace(tzinfo=UTC),
    )


def create_goal(
    conn: duckdb.DuckDBPyConnection,
    user_id: str,
    title: str,
    description: str = "",
    priority: str = "medium",
    deadline: date | None = None,
) -> GoalRecord:
    """Create a new goal with zero progress.

    Args:
        conn: Database connection.
        user_id: Owner of the goal.
        title: Goal title.
        description: Free-text description.
        priority: One of high, medium, low.
        deadline: Optional deadline.

    Returns:
        Created GoalRecord.
    """
    goal_id = new_record_id()
    now = utc_now()

    conn.execute(
        f"""
        INSERT INTO goals ({_GOAL_COLUMNS})
        VALUES (?, ?, ?, ?, ?, 0, ?, ?, ?)
        """,
        [goal_id, user_id, title, description, priority, deadline, now, now],
    )

    return GoalRecord(
        id=goal_id,
        user_id=user_id,
        title=title,
        description=description,
        priority=priority,
        progress=0,
        deadline=deadline,
        created_at=now.replace(tzinfo=UTC),
        updated_at=now.replace(tzinfo=UTC),
    )


def get_goal(conn: duckdb.DuckDBPyConnection, user_id: str, goal_id: str) -> GoalRecord | None:
    row = conn.execute(
        f"SELECT {_GOAL_COLUMNS} FROM goals WHERE id = ? AND user_id = ?",
        [goal_id, user_id],
    ).fetchone()
    return _row_to_goal(row) if row else None


def list_goals(
    conn: duckdb.DuckDBPyConnection, user_id: str, limit: int | None = None
) -> list[GoalRecord]:
    """List a user's goals, newest first."""
    query = f"SELECT {_GOAL_COLUMNS} FROM goals WHERE user_id = ? ORDER BY created_at DESC, id"
    params: list[Any] = [user_id]
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    return [_row_to_goal(row) for row in conn.execute(query, params).fetchall()]


def delete_goal(conn: duckdb.DuckDBPyConnection, user_id: str, goal_id: str) -> bool:
    """Delete a user's goal.

    Returns:
        True if a goal was deleted, False if none matched.
    """
    if get_goal(conn, user_id, goal_id) is None:
        return False
    conn.execute("DELETE FROM goals WHERE id = ? AND user_id = ?", [goal_id, user_id])
    return True
