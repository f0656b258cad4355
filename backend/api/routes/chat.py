"""
Chat endpoints
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_rag_orchestrator
from api.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from domain.rag.orchestrator import RagOrchestrator
from core.config import settings
from core.exceptions import RagResponseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


@router.post(
    "/respond",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 499: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def respond(
    chat_request: ChatRequest,
    orchestrator: RagOrchestrator = Depends(get_rag_orchestrator),
):
    """
    Answer a shopper's question grounded in the store knowledge base.

    Args:
        chat_request: ChatRequest containing:
            - query: str - The shopper's question
            - context: ConversationContext - Page, user and product context plus message history
            - options: ChatOptions - Threshold, chunk count, re-ranking toggle,
                       response mode (standard/detailed/concise) and safety level

    Returns:
        ChatResponse containing the response text, confidence, sources used,
        retrieval stats and response metadata.

    Raises:
        HTTPException: detail is {"code", "message"}; 400 for invalid_query and
            safety_check_failed, 499 for request_cancelled, 500 for rag_engine_error
    """
    options = chat_request.options.to_rag_options(
        default_threshold=settings.rag_similarity_threshold,
        default_max_chunks=settings.rag_max_final_chunks,
    )
    try:
        result = await orchestrator.generate_rag_response(
            query=chat_request.query,
            context=chat_request.context,
            options=options,
        )
    except RagResponseError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    return ChatResponse.model_validate(result.model_dump())
