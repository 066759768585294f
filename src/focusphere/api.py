"""FastAPI backend for the Focusphere chat assistant."""

import logging
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from focusphere import __version__
from focusphere.assistant.actions import action_from_dict
from focusphere.assistant.confirmation import describe_pending_actions
from focusphere.assistant.executor import ActionExecutor, ActionResult
from focusphere.assistant.llm import get_llm_provider
from focusphere.assistant.orchestrator import (
    LLM_FAILURE_REPLY,
    ChatOrchestrator,
    TurnResult,
    TurnStatus,
)
from focusphere.assistant.pending_actions import PendingActionStore
from focusphere.assistant.prompt import ChatContext, ChatMessage
from focusphere.auth import CurrentUser
from focusphere.config import get_config
from focusphere.db import init_db
from focusphere.db.repository import DuckDBTaskGoalRepository
from focusphere.logging_utils import clear_request_id, set_request_id
from focusphere.metrics import get_metrics_collector
from focusphere.models import (
    ChatRequest,
    ChatResponse,
    ClearPendingResponse,
    ExecuteActionsRequest,
    GoalItem,
    HealthResponse,
    PendingActionsResponse,
    StatsResponse,
    TaskItem,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Process-wide components (initialized lazily)
_db_conn = None
_pending_store: PendingActionStore | None = None
_orchestrator: ChatOrchestrator | None = None
_state_lock = threading.RLock()


def get_db():
    """Get or initialize database connection.

    Uses DUCKDB_PATH environment variable or defaults to data/focusphere.db.
    Tests set DUCKDB_PATH=:memory: in conftest.py for isolation.
    """
    global _db_conn
    with _state_lock:
        if _db_conn is None:
            _db_conn = init_db()
        return _db_conn


def get_repository() -> DuckDBTaskGoalRepository:
    return DuckDBTaskGoalRepository(get_db())


def get_pending_store() -> PendingActionStore:
    """Get or create the process-wide pending action store."""
    global _pending_store
    with _state_lock:
        if _pending_store is None:
            config = get_config()
            _pending_store = PendingActionStore(
                ttl_seconds=config.pending_ttl_seconds,
                sweep_interval_seconds=config.sweep_interval_seconds,
            )
        return _pending_store


def _record_action_result(result: ActionResult) -> None:
    get_metrics_collector().record_action(result.action_type.value, result.success)


def get_orchestrator() -> ChatOrchestrator:
    """Get or create the chat orchestrator wired to the configured components."""
    global _orchestrator
    with _state_lock:
        if _orchestrator is None:
            config = get_config()
            _orchestrator = ChatOrchestrator(
                store=get_pending_store(),
                llm=get_llm_provider(config),
                executor=ActionExecutor(get_repository(), on_result=_record_action_result),
                config=config,
                metrics=get_metrics_collector(),
            )
        return _orchestrator


def reset_app_state() -> None:
    """Drop lazily created components (useful for testing)."""
    global _db_conn, _pending_store, _orchestrator
    with _state_lock:
        if _pending_store is not None:
            _pending_store.shutdown()
        _db_conn = None
        _pending_store = None
        _orchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store = get_pending_store()
    store.start()
    try:
        yield
    finally:
        store.shutdown()


app = FastAPI(
    title="Focusphere Assistant API",
    version=__version__,
    description="Chat assistant that proposes task and goal actions for confirmation",
    lifespan=lifespan,
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Bind a request ID to the logging context for the duration of a request."""
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPExceptions and return Error schema."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": str(exc.detail),
        },
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(version=__version__, llm_provider=get_config().llm_provider)


def _run_chat_turn(user_id: str, request: ChatRequest) -> TurnResult:
    """Load context and run one turn (blocking: database and model calls)."""
    config = get_config()
    repository = get_repository()
    context = ChatContext(
        tasks=repository.list_tasks(user_id, limit=config.task_context_limit),
        goals=repository.list_goals(user_id, limit=config.goal_context_limit),
        history=[
            ChatMessage(role=item.role.value, content=item.content)
            for item in request.conversation_history
        ],
        conversation_id=request.conversation_id,
    )
    return get_orchestrator().handle_turn(user_id, request.message, context)


@app.post("/v1/ai/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, user_id: CurrentUser) -> ChatResponse:
    """Handle one chat turn for the authenticated user.

    Raises:
        HTTPException: 400 for an empty message, 502 when the language model fails.
    """
    if not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "message": "Message is required"},
        )

    result = await run_in_threadpool(_run_chat_turn, user_id, request)

    if result.status is TurnStatus.ERROR:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "llm_unavailable", "message": LLM_FAILURE_REPLY},
        )

    return ChatResponse(**result.to_dict())


@app.post("/v1/ai/execute-actions", response_model=ChatResponse)
async def execute_actions(request: ExecuteActionsRequest, user_id: CurrentUser) -> ChatResponse:
    """Execute client-approved actions immediately.

    Raises:
        HTTPException: 400 if a large delete batch lacks the typed confirmation token.
    """
    actions = [action_from_dict(payload.model_dump()) for payload in request.actions]
    valid_actions = [action for action in actions if action is not None]

    result = await run_in_threadpool(
        get_orchestrator().execute_direct, user_id, valid_actions, request.confirm_token
    )

    if result.requires_typed_confirmation:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "typed_confirmation_required", "message": result.reply},
        )

    return ChatResponse(**result.to_dict())


@app.get("/v1/ai/pending-actions", response_model=PendingActionsResponse)
async def get_pending_actions(user_id: CurrentUser) -> PendingActionsResponse:
    """Describe the user's pending batch without exposing payloads."""
    store = get_pending_store()
    metadata = store.get_metadata(user_id)
    return PendingActionsResponse(
        has_pending=metadata is not None,
        summary=describe_pending_actions(store.get_actions(user_id)),
        metadata=metadata,
    )


@app.delete("/v1/ai/pending-actions", response_model=ClearPendingResponse)
async def clear_pending_actions(user_id: CurrentUser) -> ClearPendingResponse:
    return ClearPendingResponse(cleared=get_pending_store().clear(user_id))


@app.get("/v1/ai/stats", response_model=StatsResponse)
async def get_stats() -> StatsResponse:
    """Pending store statistics and metrics snapshot for diagnostics."""
    return StatsResponse(
        pending_store=get_pending_store().get_stats(),
        metrics=get_metrics_collector().get_snapshot(),
    )


@app.get("/v1/tasks", response_model=list[TaskItem])
def list_tasks(user_id: CurrentUser) -> list[TaskItem]:
    return [TaskItem(**task.to_dict()) for task in get_repository().list_tasks(user_id)]


@app.get("/v1/goals", response_model=list[GoalItem])
def list_goals(user_id: CurrentUser) -> list[GoalItem]:
    return [GoalItem(**goal.to_dict()) for goal in get_repository().list_goals(user_id)]
