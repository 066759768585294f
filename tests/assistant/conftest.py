"""Shared fixtures for assistant tests."""

import pytest

from focusphere.assistant.llm import LLMError, LLMProvider
from focusphere.db.repository import ActionNotFoundError


class InMemoryRepository:
    """TaskGoalRepository double that records every mutation."""

    def __init__(self) -> None:
        self.tasks: dict[str, dict] = {}
        self.goals: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self._next_id = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"id-{self._next_id}"

    def create_task(self, user_id, **fields):
        self.calls.append(("create_task", user_id, fields))
        task = {"id": self._new_id(), **fields}
        self.tasks[task["id"]] = task
        return task

    def delete_task(self, user_id, task_id, reason=""):
        self.calls.append(("delete_task", user_id, task_id))
        if task_id not in self.tasks:
            raise ActionNotFoundError("task", task_id)
        return self.tasks.pop(task_id)

    def create_goal(self, user_id, **fields):
        self.calls.append(("create_goal", user_id, fields))
        goal = {"id": self._new_id(), **fields}
        self.goals[goal["id"]] = goal
        return goal

    def delete_goal(self, user_id, goal_id, reason=""):
        self.calls.append(("delete_goal", user_id, goal_id))
        if goal_id not in self.goals:
            raise ActionNotFoundError("goal", goal_id)
        return self.goals.pop(goal_id)

    def list_tasks(self, user_id, limit=None):
        return []

    def list_goals(self, user_id, limit=None):
        return []


class ScriptedLLMProvider(LLMProvider):
    """Provider returning queued completions (or raising queued errors)."""

    name = "scripted"

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.system_instructions: list[str | None] = []

    def generate(self, prompt_text: str, system_instruction: str | None = None) -> str:
        self.prompts.append(prompt_text)
        self.system_instructions.append(system_instruction)
        if not self.responses:
            return "Okay."
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def quota_error() -> LLMError:
    return LLMError("AI service unavailable", model="gpt-4o-mini", retry_after_seconds=30)


@pytest.fixture
def make_llm():
    """Factory for providers that replay the given completions in order."""
    return ScriptedLLMProvider
