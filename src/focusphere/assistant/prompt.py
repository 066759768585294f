"""Structured prompt construction for the chat assistant.

The prompt is built as a value (:class:`ChatPrompt`) and rendered to text only
at the provider boundary, so the context layout can be tested without a model.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from focusphere.db.goals import GoalRecord
from focusphere.db.tasks import TaskRecord

from .action_parser import ACTIONS_CLOSE_TAG, ACTIONS_GRAMMAR_VERSION, ACTIONS_OPEN_TAG

DEFAULT_HISTORY_LIMIT = 5
DEFAULT_TASK_LIMIT = 10
DEFAULT_GOAL_LIMIT = 5

USER_MESSAGE_PREFIX = "User Message: "

SYSTEM_INSTRUCTION = f"""You are Focusphere AI, a productivity strategist for tasks and goals.

Answer questions about the user's tasks and goals from the [TASKS] and [GOALS] context.
Ask for missing details (title, due date) before proposing to create anything.

## ACTIONS FORMAT (grammar v{ACTIONS_GRAMMAR_VERSION})
Only when the user explicitly wants to create or delete something, append exactly one block:
{ACTIONS_OPEN_TAG}[{{"type":"<kind>","data":{{...}}}}]{ACTIONS_CLOSE_TAG}

Kinds and data fields:
- create_task: title, category, priority (high|medium|low), description,
  due_date (YYYY-MM-DD or null)
- create_goal: title, description, priority (high|medium|low), deadline (YYYY-MM-DD or null)
- delete_task: taskId, reason
- delete_goal: goalId, reason

The block content MUST be a valid JSON array: quote every key and string, no trailing commas.
For delete actions copy the exact id from the "ID:" field of the context line. Never invent ids.
Do not include a block for questions such as "show me", "how many" or "list my".

## CONFIRMATION
Proposed actions are not applied until the user confirms. Use future tense
("I'll create this task. Say 'yes' to confirm."), never "I've created"."""


@dataclass(frozen=True)
class ChatMessage:
    """One prior conversation message."""

    role: str
    content: str


@dataclass
class ChatContext:
    """Per-turn context supplied to the orchestrator."""

    tasks: Sequence[TaskRecord] = field(default_factory=list)
    goals: Sequence[GoalRecord] = field(default_factory=list)
    history: Sequence[ChatMessage] = field(default_factory=list)
    conversation_id: str | None = None


@dataclass(frozen=True)
class ChatPrompt:
    """A rendered-on-demand prompt: system instruction plus context block."""

    system_instruction: str
    context: str
    user_message: str

    def render(self) -> str:
        """Render the user-side prompt text sent to the model."""
        return f"{self.context}\n\n{USER_MESSAGE_PREFIX}{self.user_message}"


def format_task_line(task: TaskRecord, today: date) -> str:
    """Format a task as ``ID:..|T:..|S:..|P:..|C:..|D:..`` with an OVERDUE flag."""
    due = task.due_date.isoformat() if task.due_date else "None"
    line = (
        f"ID:{task.id}|T:{task.title}|S:{task.status}|P:{task.priority}"
        f"|C:{task.category or 'None'}|D:{due}"
    )
    if task.due_date and task.due_date < today and task.status != "completed":
        line += "|OVERDUE"
    return line


def format_goal_line(goal: GoalRecord) -> str:
    deadline = goal.deadline.isoformat() if goal.deadline else "None"
    return (
        f"ID:{goal.id}|T:{goal.title}|P:{goal.progress}%"
        f"|Pri:{goal.priority or 'medium'}|DL:{deadline}"
    )


def build_chat_prompt(
    message: str,
    context: ChatContext,
    now: datetime | None = None,
    task_limit: int = DEFAULT_TASK_LIMIT,
    goal_limit: int = DEFAULT_GOAL_LIMIT,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> ChatPrompt:
    """Build the prompt for a new request.

    Args:
        message: The user's message for this turn
        context: Tasks, goals and recent history for the user
        now: Current time (default: UTC now)
        task_limit: Maximum tasks listed
        goal_limit: Maximum goals listed
        history_limit: Maximum trailing history messages included

    Returns:
        ChatPrompt value
    """
    now = now or datetime.now(UTC)
    today = now.date()

    task_lines = [format_task_line(task, today) for task in list(context.tasks)[:task_limit]]
    goal_lines = [format_goal_line(goal) for goal in list(context.goals)[:goal_limit]]

    history = list(context.history)[-history_limit:] if history_limit > 0 else []
    history_lines = [
        f"{'U' if item.role == 'user' else 'A'}: {item.content}" for item in history
    ]

    sections = [
        f"[SYSTEM_TIME]: {now.isoformat()}",
        f"[TODAY]: {today.isoformat()}",
        "[TASKS]:",
        "\n".join(task_lines) or "None",
        "[GOALS]:",
        "\n".join(goal_lines) or "None",
        "[HISTORY]:",
        "\n".join(history_lines) or "None",
    ]

    return ChatPrompt(
        system_instruction=SYSTEM_INSTRUCTION,
        context="\n".join(sections),
        user_message=message,
    )
