"""Tests for prompt construction."""

from datetime import UTC, date, datetime

from focusphere.assistant.prompt import (
    SYSTEM_INSTRUCTION,
    ChatContext,
    ChatMessage,
    build_chat_prompt,
    format_goal_line,
    format_task_line,
)
from focusphere.db.goals import GoalRecord
from focusphere.db.tasks import TaskRecord

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def make_task(task_id: str, title: str, due_date=None, status: str = "todo") -> TaskRecord:
    return TaskRecord(
        id=task_id,
        user_id="user-123",
        title=title,
        description="",
        category="Work",
        priority="high",
        status=status,
        due_date=due_date,
        created_at=NOW,
        updated_at=NOW,
    )


def make_goal(goal_id: str, title: str) -> GoalRecord:
    return GoalRecord(
        id=goal_id,
        user_id="user-123",
        title=title,
        description="",
        priority="medium",
        progress=40,
        deadline=date(2026, 6, 1),
        created_at=NOW,
        updated_at=NOW,
    )


class TestContextLines:
    """Test compact context line formats."""

    def test_task_line(self) -> None:
        line = format_task_line(make_task("t1", "Report", date(2026, 3, 5)), NOW.date())
        assert line == "ID:t1|T:Report|S:todo|P:high|C:Work|D:2026-03-05"

    def test_overdue_flag(self) -> None:
        line = format_task_line(make_task("t1", "Report", date(2026, 3, 1)), NOW.date())
        assert line.endswith("|OVERDUE")

    def test_completed_never_overdue(self) -> None:
        task = make_task("t1", "Report", date(2026, 3, 1), status="completed")
        assert "OVERDUE" not in format_task_line(task, NOW.date())

    def test_task_without_due_date(self) -> None:
        assert format_task_line(make_task("t1", "Report"), NOW.date()).endswith("|D:None")

    def test_goal_line(self) -> None:
        assert format_goal_line(make_goal("g1", "Ship v2")) == (
            "ID:g1|T:Ship v2|P:40%|Pri:medium|DL:2026-06-01"
        )


class TestBuildChatPrompt:
    """Test the assembled prompt value."""

    def test_render_ends_with_user_message(self) -> None:
        prompt = build_chat_prompt("create a task to call mom tomorrow", ChatContext(), now=NOW)

        rendered = prompt.render()
        assert rendered.endswith("User Message: create a task to call mom tomorrow")
        assert "[TODAY]: 2026-03-02" in rendered
        assert "[TASKS]:\nNone" in rendered
        assert prompt.system_instruction == SYSTEM_INSTRUCTION

    def test_limits_applied(self) -> None:
        context = ChatContext(
            tasks=[make_task(f"t{i}", f"Task {i}") for i in range(12)],
            goals=[make_goal(f"g{i}", f"Goal {i}") for i in range(7)],
            history=[ChatMessage("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(8)],
        )
        prompt = build_chat_prompt("hi", context, now=NOW)

        assert prompt.context.count("ID:t") == 10
        assert prompt.context.count("ID:g") == 5
        assert "U: m0" not in prompt.context
        assert "A: m3" in prompt.context
        assert "U: m4" in prompt.context
        assert "A: m7" in prompt.context

    def test_zero_history_limit(self) -> None:
        context = ChatContext(history=[ChatMessage("user", "earlier")])
        prompt = build_chat_prompt("hi", context, now=NOW, history_limit=0)
        assert "earlier" not in prompt.context

    def test_system_instruction_documents_grammar(self) -> None:
        for kind in ("create_task", "delete_task", "create_goal", "delete_goal"):
            assert kind in SYSTEM_INSTRUCTION
        assert "<ACTIONS>" in SYSTEM_INSTRUCTION
        assert "grammar v1.0" in SYSTEM_INSTRUCTION
