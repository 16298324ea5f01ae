"""
Assistant API endpoints.

Thin adapters over AssistantSessionManager:
- POST /api/ai/chat: run a turn; failures come back as {"error": ...}
- POST /api/ai/clear-history: reset the conversation
- GET /api/ai/status: whether a backend credential is configured
"""

import structlog
from fastapi import APIRouter, Depends, Request

from ..agent.session_manager import AssistantSessionManager
from ..models.assistant import (
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    StatusResponse,
)
from .dependencies.rate_limit import rate_limit_llm

logger = structlog.get_logger()

router = APIRouter(prefix="/api/ai", tags=["assistant"])


def get_assistant(request: Request) -> AssistantSessionManager:
    """Dependency to get the session manager from app state."""
    assistant: AssistantSessionManager = request.app.state.assistant
    return assistant


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
@rate_limit_llm
async def chat(
    request: Request,
    payload: ChatRequest,
    assistant: AssistantSessionManager = Depends(get_assistant),
) -> ChatResponse:
    """
    Send a message to the assistant.

    Always answers 200: backend and configuration failures are reported in
    the `error` field so the client can show them in the conversation.
    """
    result = await assistant.chat(payload.message)
    if not result.ok:
        logger.warning("Chat turn returned error", error=result.error)
    return result


@router.post("/clear-history", response_model=ClearHistoryResponse)
async def clear_history(
    assistant: AssistantSessionManager = Depends(get_assistant),
) -> ClearHistoryResponse:
    """Forget the current conversation."""
    await assistant.clear_history()
    return ClearHistoryResponse()


@router.get("/status", response_model=StatusResponse)
async def status(
    assistant: AssistantSessionManager = Depends(get_assistant),
) -> StatusResponse:
    """Report whether the assistant is configured."""
    result = assistant.status()
    logger.info("AI status check", configured=result.configured)
    return result
