"""
Application startup and initialization logic
"""

import logging
from fastapi import FastAPI, HTTPException

from domain.llm.factory import create_llm_client
from domain.rag.embedding.client import JinaEmbeddingClient
from domain.rag.orchestrator import RagOrchestrator
from domain.rag.retrieval.retriever import Retriever
from domain.rag.retrieval.reranker import Reranker
from domain.rag.context.builder import ContextBuilder
from domain.rag.generation.prompt import PromptBuilder
from domain.rag.generation.model_selector import ModelSelector
from domain.rag.safety import SafetyChecker
from domain.rag.postprocess import ResponsePostProcessor
from storage import BaseVectorStore, InMemoryCache, InMemoryVectorStore
from services.plan_service import StaticPlanService
from core.config import settings
from core.exceptions import EmbeddingError, LLMError, StorageError

logger = logging.getLogger(__name__)


def raise_startup_error(message: str, error: Exception = None) -> None:
    """Helper to raise HTTPException for startup errors."""
    detail = f"{message}: {error}" if error else message
    raise HTTPException(status_code=500, detail=detail)


def create_vector_store(backend_type: str = None) -> BaseVectorStore:
    """Vector store for the configured backend"""
    backend_type = backend_type or settings.vector_store_backend
    if backend_type == "memory":
        return InMemoryVectorStore()

    # ChromaDB is only loaded when one of its backends is selected
    from storage.single_vector_store import SingleVectorStore
    return SingleVectorStore(backend_type=backend_type)


async def initialize_rag_system(app: FastAPI):
    """
    Initialize RAG components (stores, clients, pipeline) and wire the orchestrator.
    """
    try:
        vector_store = create_vector_store()
    except StorageError as e:
        raise_startup_error("Failed to initialize vector store", e)

    try:
        embedding_client = JinaEmbeddingClient(task="retrieval.query")
    except EmbeddingError as e:
        raise_startup_error("Failed to initialize embedding client", e)

    try:
        llm_client = create_llm_client()
    except LLMError as e:
        raise_startup_error("Failed to initialize LLM client", e)

    cache = InMemoryCache()
    retriever = Retriever(
        embedding_client=embedding_client,
        vector_store=vector_store,
        cache=cache,
        cache_ttl=settings.rag_cache_ttl,
    )
    rag_orchestrator = RagOrchestrator(
        retriever=retriever,
        llm_client=llm_client,
        plan_service=StaticPlanService(),
        reranker=Reranker(),
        context_builder=ContextBuilder(),
        prompt_builder=PromptBuilder(),
        model_selector=ModelSelector(),
        safety_checker=SafetyChecker(),
        post_processor=ResponsePostProcessor(),
    )

    app.state.vector_store = vector_store
    app.state.cache = cache
    app.state.embedding_client = embedding_client
    app.state.llm_client = llm_client
    app.state.rag_orchestrator = rag_orchestrator
    logger.info(
        f"RAG system initialized (vector store: {settings.vector_store_backend}, "
        f"plan: {settings.plan_tier})"
    )


async def cleanup_rag_system(app: FastAPI):
    """Cleanup RAG system resources (HTTP connections of the embedding and LLM clients)."""
    for name in ("embedding_client", "llm_client"):
        client = getattr(app.state, name, None)
        if client is None:
            continue
        try:
            await client.close()
            logger.info(f"{name} cleaned up")
        except Exception as e:
            logger.error(f"Error during {name} cleanup: {e}", exc_info=True)
