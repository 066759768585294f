"""Tests for the assistant HTTP API."""

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from focusphere import __version__, api
from focusphere.api import app, get_pending_store, reset_app_state
from focusphere.assistant.actions import CreateTaskAction
from focusphere.assistant.executor import ActionExecutor
from focusphere.assistant.llm import LLMProvider
from focusphere.assistant.orchestrator import ChatOrchestrator
from focusphere.config import clear_config_cache
from focusphere.metrics import get_metrics_collector

USER = {"X-User-Id": "user-123"}
OTHER_USER = {"X-User-Id": "user-456"}


@pytest.fixture
def client():
    """Create a test client over fresh in-memory state."""
    clear_config_cache()
    reset_app_state()
    get_metrics_collector().reset()
    with TestClient(app) as test_client:
        yield test_client
    reset_app_state()
    clear_config_cache()


def chat(client: TestClient, message: str, headers=USER):
    return client.post("/v1/ai/chat", json={"message": message}, headers=headers)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__, "llm_provider": "stub"}

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-7"})
        assert response.headers["X-Request-ID"] == "req-7"


class TestChatFlow:
    """Propose, confirm and decline over HTTP with the stub model."""

    def test_plain_reply(self, client):
        response = chat(client, "how am I doing")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["pending_actions"] is None

    def test_create_then_confirm(self, client):
        proposal = chat(client, "create a task to call mom tomorrow")
        assert proposal.status_code == 200
        data = proposal.json()
        assert data["status"] == "needs_confirmation"
        assert data["pending_summary"] == "1 create task"
        assert data["pending_actions"][0]["data"]["title"] == "Mock Task"

        confirm = chat(client, "yep")
        data = confirm.json()
        assert data["status"] == "executed"
        assert data["executed_results"]["summary"] == {"total": 1, "succeeded": 1, "failed": 0}

        tasks = client.get("/v1/tasks", headers=USER).json()
        assert [task["title"] for task in tasks] == ["Mock Task"]
        assert client.get("/v1/tasks", headers=OTHER_USER).json() == []

    def test_decline(self, client):
        chat(client, "create a task for friday")
        data = chat(client, "no").json()

        assert data["status"] == "cancelled"
        assert client.get("/v1/tasks", headers=USER).json() == []

    def test_empty_message_rejected(self, client):
        response = chat(client, "   ")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_oversized_message_rejected(self, client):
        assert chat(client, "x" * 2001).status_code == 422

    def test_history_accepted(self, client):
        response = client.post(
            "/v1/ai/chat",
            json={
                "message": "and then?",
                "conversation_id": "conv-1",
                "conversation_history": [
                    {"role": "user", "content": "hi"},
                    {"role": "assistant", "content": "Hello!"},
                ],
            },
            headers=USER,
        )
        assert response.status_code == 200


class TestPendingEndpoints:
    def test_pending_lifecycle(self, client):
        empty = client.get("/v1/ai/pending-actions", headers=USER).json()
        assert empty == {"has_pending": False, "summary": "No pending actions", "metadata": None}

        chat(client, "create a task to call mom")
        pending = client.get("/v1/ai/pending-actions", headers=USER).json()
        assert pending["has_pending"] is True
        assert pending["summary"] == "1 create task"
        assert pending["metadata"]["action_types"] == ["create_task"]

        cleared = client.delete("/v1/ai/pending-actions", headers=USER).json()
        assert cleared == {"cleared": True}
        assert client.delete("/v1/ai/pending-actions", headers=USER).json() == {"cleared": False}

    def test_stats(self, client):
        get_pending_store().set("someone", [CreateTaskAction(title="A")])
        chat(client, "hello")

        data = client.get("/v1/ai/stats").json()
        assert data["pending_store"] == {"total_entries": 1, "ttl_minutes": 5.0}
        assert data["metrics"]["turn_counts"] == {"new_request": 1}


class TestExecuteActions:
    """Client-approved direct execution."""

    def test_execute_creates_goal(self, client):
        response = client.post(
            "/v1/ai/execute-actions",
            json={"actions": [{"type": "create_goal", "data": {"title": "Run a 10k"}}]},
            headers=USER,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "executed"

        [goal] = client.get("/v1/goals", headers=USER).json()
        assert goal["title"] == "Run a 10k"
        assert goal["description"] == "Goal: Run a 10k"
        assert goal["progress"] == 0

    def test_execute_clears_pending(self, client):
        chat(client, "create a task to call mom")
        client.post(
            "/v1/ai/execute-actions",
            json={"actions": [{"type": "create_task", "data": {"title": "Call mom"}}]},
            headers=USER,
        )
        assert get_pending_store().has_pending("user-123") is False

    def test_large_delete_requires_token(self, client):
        actions = [{"type": "delete_task", "data": {"taskId": f"t-{i}"}} for i in range(6)]

        gated = client.post("/v1/ai/execute-actions", json={"actions": actions}, headers=USER)
        assert gated.status_code == 400
        assert gated.json()["error"] == "typed_confirmation_required"

        allowed = client.post(
            "/v1/ai/execute-actions",
            json={"actions": actions, "confirm_token": "DELETE"},
            headers=USER,
        )
        assert allowed.status_code == 200
        assert allowed.json()["executed_results"]["summary"]["failed"] == 6

    def test_unknown_type_rejected(self, client):
        response = client.post(
            "/v1/ai/execute-actions",
            json={"actions": [{"type": "archive_task", "data": {}}]},
            headers=USER,
        )
        assert response.status_code == 422

    def test_empty_batch_rejected(self, client):
        response = client.post("/v1/ai/execute-actions", json={"actions": []}, headers=USER)
        assert response.status_code == 422


class SlowLLMProvider(LLMProvider):
    """Provider that blocks like a slow network call."""

    name = "slow"

    def __init__(self, delay: float) -> None:
        self.delay = delay

    def generate(self, prompt_text: str, system_instruction: str | None = None) -> str:
        time.sleep(self.delay)
        return "Here is your plan."


@pytest.fixture
def fresh_state():
    clear_config_cache()
    reset_app_state()
    yield
    reset_app_state()
    clear_config_cache()


class TestConcurrency:
    """A slow model call for one user does not stall other users."""

    @pytest.mark.asyncio
    async def test_slow_turn_does_not_block_other_users(self, fresh_state, monkeypatch):
        orchestrator = ChatOrchestrator(
            store=get_pending_store(),
            llm=SlowLLMProvider(delay=1.0),
            executor=ActionExecutor(api.get_repository()),
        )
        monkeypatch.setattr(api, "_orchestrator", orchestrator)

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:

            async def other_user_request():
                await asyncio.sleep(0.1)
                start = time.perf_counter()
                response = await http.get("/v1/ai/pending-actions", headers=OTHER_USER)
                return response, time.perf_counter() - start

            slow, (fast, elapsed) = await asyncio.gather(
                http.post("/v1/ai/chat", json={"message": "plan my week"}, headers=USER),
                other_user_request(),
            )

        assert slow.status_code == 200
        assert slow.json()["reply"] == "Here is your plan."
        assert fast.status_code == 200
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_concurrent_turns_share_database(self, fresh_state):
        """Turns for different users run in parallel against one database."""
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            for headers in (USER, OTHER_USER):
                await http.post(
                    "/v1/ai/chat", json={"message": "create a task please"}, headers=headers
                )

            confirms = await asyncio.gather(
                http.post("/v1/ai/chat", json={"message": "yes"}, headers=USER),
                http.post("/v1/ai/chat", json={"message": "yes"}, headers=OTHER_USER),
            )
            assert [r.json()["status"] for r in confirms] == ["executed", "executed"]

            for headers in (USER, OTHER_USER):
                tasks = (await http.get("/v1/tasks", headers=headers)).json()
                assert [task["title"] for task in tasks] == ["Mock Task"]
