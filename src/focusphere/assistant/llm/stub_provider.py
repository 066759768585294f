"""Stub LLM provider for fixture-first development and testing."""

import json
from datetime import date, timedelta

from focusphere.assistant.action_parser import ACTIONS_CLOSE_TAG, ACTIONS_OPEN_TAG
from focusphere.assistant.llm.provider import LLMProvider
from focusphere.assistant.prompt import USER_MESSAGE_PREFIX

DEFAULT_REPLY = (
    "I'm running in mock mode. This is a simulated response for testing "
    "without using API quota."
)
CREATE_TASK_REPLY = "I'll create that task for you. Say 'yes' to confirm."


class StubLLMProvider(LLMProvider):
    """Deterministic provider that never touches the network.

    Replies with a canned ``create_task`` proposal when the user message
    mentions both "create" and "task", and a plain text reply otherwise.
    """

    name = "stub"

    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate(self, prompt_text: str, system_instruction: str | None = None) -> str:
        self.prompts.append(prompt_text)

        # Only the user's own words decide the canned branch, not the context block
        _, _, user_message = prompt_text.rpartition(USER_MESSAGE_PREFIX)
        lowered = user_message.lower()

        if "create" in lowered and "task" in lowered:
            action = {
                "type": "create_task",
                "data": {
                    "title": "Mock Task",
                    "category": "Work",
                    "priority": "medium",
                    "due_date": (date.today() + timedelta(days=2)).isoformat(),
                },
            }
            block = f"{ACTIONS_OPEN_TAG}{json.dumps([action])}{ACTIONS_CLOSE_TAG}"
            return f"{CREATE_TASK_REPLY}\n{block}"

        return DEFAULT_REPLY
