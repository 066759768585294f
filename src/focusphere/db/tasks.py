"""Task persistence module."""

import secrets
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

import duckdb

_TASK_COLUMNS = (
    "id, user_id, title, description, category, priority, status, due_date, "
    "created_at, updated_at"
)


def new_record_id() -> str:
    """Generate a 24-character hex record id."""
    return secrets.token_hex(12)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (stored in TIMESTAMP columns)."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass
class TaskRecord:
    """Represents a stored task."""

    id: str
    user_id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    due_date: date | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def _row_to_task(row: tuple) -> TaskRecord:
    return TaskRecord(
        id=row[0],
        user_id=row[1],
        title=row[2],
        description=row[3],
        category=row[4],
        priority=row[5],
        status=row[6],
        due_date=row[7],
        created_at=row[8].replace(tzinfo=UTC),
        updated_at=row[9].replace(tzinfo=UTC),
    )


def create_task(
    conn: duckdb.DuckDBPyConnection,
    user_id: str,
    title: str,
    description: str = "",
    category: str = "General",
    priority: str = "medium",
    status: str = "todo",
    due_date: date | None = None,
) -> TaskRecord:
    """Create a new task.

    Args:
        conn: Database connection.
        user_id: Owner of the task.
        title: Task title.
        description: Free-text description.
        category: Category label.
        priority: One of high, medium, low.
        status: Initial status.
        due_date: Optional due date.

    Returns:
        Created TaskRecord.
    """
    task_id = new_record_id()
    now = utc_now()

    conn.execute(
        f"""
        INSERT INTO tasks ({_TASK_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [task_id, user_id, title, description, category, priority, status, due_date, now, now],
    )

    return TaskRecord(
        id=task_id,
        user_id=user_id,
        title=title,
        description=description,
        category=category,
        priority=priority,
        status=status,
        due_date=due_date,
        created_at=now.replace(tzinfo=UTC),
        updated_at=now.replace(tzinfo=UTC),
    )


def get_task(conn: duckdb.DuckDBPyConnection, user_id: str, task_id: str) -> TaskRecord | None:
    """Get a user's task by id.

    Returns:
        TaskRecord if found and owned by the user, None otherwise.
    """
    row = conn.execute(
        f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ? AND user_id = ?",
        [task_id, user_id],
    ).fetchone()
    return _row_to_task(row) if row else None


def list_tasks(
    conn: duckdb.DuckDBPyConnection, user_id: str, limit: int | None = None
) -> list[TaskRecord]:
    """List a user's tasks, newest first."""
    query = f"SELECT {_TASK_COLUMNS} FROM tasks WHERE user_id = ? ORDER BY created_at DESC, id"
    params: list[Any] = [user_id]
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    return [_row_to_task(row) for row in conn.execute(query, params).fetchall()]


def delete_task(conn: duckdb.DuckDBPyConnection, user_id: str, task_id: str) -> bool:
    """Delete a user's task.

    Returns:
        True if a task was deleted, False if none matched.
    """
    if get_task(conn, user_id, task_id) is None:
        return False
    conn.execute("DELETE FROM tasks WHERE id = ? AND user_id = ?", [task_id, user_id])
    return True
