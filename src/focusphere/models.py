"""Pydantic request/response models for the assistant API."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    """Conversation message author."""

    USER = "user"
    ASSISTANT = "assistant"


class HistoryMessage(BaseModel):
    """One prior conversation message."""

    role: ChatRole
    content: str = Field(..., max_length=4000)


class ChatRequest(BaseModel):
    """Chat turn request."""

    message: str = Field(..., max_length=2000)
    conversation_id: str | None = None
    conversation_history: list[HistoryMessage] = Field(default_factory=list)


class ActionPayload(BaseModel):
    """A proposed action in wire form."""

    type: Literal["create_task", "delete_task", "create_goal", "delete_goal"]
    data: dict[str, Any] = Field(default_factory=dict)


class ActionResultModel(BaseModel):
    """Outcome of one executed action."""

    action_type: str
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    timestamp: str


class BatchSummary(BaseModel):
    total: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class BatchResultModel(BaseModel):
    """Per-action outcomes of an executed batch."""

    results: list[ActionResultModel] = Field(default_factory=list)
    summary: BatchSummary


class ChatResponse(BaseModel):
    """Chat turn response."""

    status: Literal["ok", "needs_confirmation", "executed", "cancelled", "error"]
    reply: str
    pending_summary: str | None = None
    pending_actions: list[ActionPayload] | None = None
    executed_results: BatchResultModel | None = None
    requires_typed_confirmation: bool = False


class ExecuteActionsRequest(BaseModel):
    """Direct execution of client-approved actions."""

    actions: list[ActionPayload] = Field(..., min_length=1)
    confirm_token: str | None = None


class PendingActionsResponse(BaseModel):
    """Pending batch status for the current user."""

    has_pending: bool
    summary: str
    metadata: dict[str, Any] | None = None


class ClearPendingResponse(BaseModel):
    cleared: bool


class StatsResponse(BaseModel):
    """Pending store statistics plus metrics snapshot."""

    pending_store: dict[str, Any]
    metrics: dict[str, Any]


class TaskItem(BaseModel):
    id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    due_date: str | None = None
    created_at: str
    updated_at: str


class GoalItem(BaseModel):
    id: str
    title: str
    description: str
    priority: str
    progress: int = Field(..., ge=0, le=100)
    deadline: str | None = None
    created_at: str
    updated_at: str


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str
    llm_provider: str
