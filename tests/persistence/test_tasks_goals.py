"""Tests for task and goal persistence and the DuckDB repository."""

from datetime import date

import pytest

from focusphere.db import init_db
from focusphere.db import goals as goals_db
from focusphere.db import tasks as tasks_db
from focusphere.db.repository import ActionNotFoundError, DuckDBTaskGoalRepository


@pytest.fixture
def db_conn():
    conn = init_db(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def repository(db_conn) -> DuckDBTaskGoalRepository:
    return DuckDBTaskGoalRepository(db_conn, today=lambda: date(2026, 3, 2))


class TestTaskRecords:
    """Test the task table helpers."""

    def test_create_and_get(self, db_conn, test_user_id):
        task = tasks_db.create_task(db_conn, test_user_id, "Write report", priority="high")

        assert len(task.id) == 24
        fetched = tasks_db.get_task(db_conn, test_user_id, task.id)
        assert fetched is not None
        assert fetched.title == "Write report"
        assert fetched.priority == "high"
        assert fetched.created_at.tzinfo is not None

    def test_get_is_scoped_to_owner(self, db_conn, test_user_id, test_user_id_2):
        task = tasks_db.create_task(db_conn, test_user_id, "Private")
        assert tasks_db.get_task(db_conn, test_user_id_2, task.id) is None
        assert tasks_db.delete_task(db_conn, test_user_id_2, task.id) is False

    def test_list_with_limit(self, db_conn, test_user_id):
        for i in range(4):
            tasks_db.create_task(db_conn, test_user_id, f"Task {i}")

        assert len(tasks_db.list_tasks(db_conn, test_user_id)) == 4
        assert len(tasks_db.list_tasks(db_conn, test_user_id, limit=2)) == 2

    def test_to_dict(self, db_conn, test_user_id):
        task = tasks_db.create_task(db_conn, test_user_id, "A", due_date=date(2026, 3, 4))
        data = task.to_dict()
        assert data["due_date"] == "2026-03-04"
        assert "user_id" not in data


class TestGoalRecords:
    """Test the goal table helpers."""

    def test_create_starts_at_zero_progress(self, db_conn, test_user_id):
        goal = goals_db.create_goal(db_conn, test_user_id, "Run a 10k")
        assert goal.progress == 0
        assert goals_db.get_goal(db_conn, test_user_id, goal.id).title == "Run a 10k"

    def test_delete(self, db_conn, test_user_id):
        goal = goals_db.create_goal(db_conn, test_user_id, "Run a 10k")
        assert goals_db.delete_goal(db_conn, test_user_id, goal.id) is True
        assert goals_db.delete_goal(db_conn, test_user_id, goal.id) is False
        assert goals_db.list_goals(db_conn, test_user_id) == []


class TestRepository:
    """Test the mutation layer the executor calls."""

    def test_create_task_defaults_due_date(self, repository, test_user_id):
        task = repository.create_task(test_user_id, title="Call mom")
        assert task["due_date"] == "2026-03-04"
        assert task["status"] == "todo"

    def test_create_task_keeps_given_due_date(self, repository, test_user_id):
        task = repository.create_task(test_user_id, title="Call mom", due_date="2026-03-03")
        assert task["due_date"] == "2026-03-03"

    def test_create_goal_default_description(self, repository, test_user_id):
        goal = repository.create_goal(test_user_id, title="Run a 10k", deadline="2026-06-01")
        assert goal["description"] == "Goal: Run a 10k"
        assert goal["deadline"] == "2026-06-01"

    def test_delete_task(self, repository, test_user_id):
        task = repository.create_task(test_user_id, title="Old")
        result = repository.delete_task(test_user_id, task["id"], reason="done")

        assert result == {"id": task["id"], "title": "Old", "deleted": True}
        assert repository.list_tasks(test_user_id) == []

    def test_delete_missing_task_raises(self, repository, test_user_id):
        with pytest.raises(ActionNotFoundError, match="Task not found: nope"):
            repository.delete_task(test_user_id, "nope")

    def test_delete_other_users_goal_raises(self, repository, test_user_id, test_user_id_2):
        goal = repository.create_goal(test_user_id, title="Mine")
        with pytest.raises(ActionNotFoundError) as exc_info:
            repository.delete_goal(test_user_id_2, goal["id"])

        assert exc_info.value.kind == "goal"
        assert len(repository.list_goals(test_user_id)) == 1
