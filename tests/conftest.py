"""
Pytest configuration and shared fixtures.

Collaborators that would hit the network (embedding API, LLM) are replaced by
in-process fakes so the pipeline runs end to end without external services.
"""

from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

import pytest

from domain.llm.base import BaseLLMClient
from domain.rag.embedding.client import BaseEmbeddingClient
from domain.rag.orchestrator import RagOrchestrator
from domain.rag.retrieval.retriever import Retriever
from domain.rag.types import Chunk, GenerationResult, RawMatch, SearchResponse
from services.plan_service import StaticPlanService
from storage.base import BaseVectorStore
from storage.cache import InMemoryCache

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

DEFAULT_RESPONSE = (
    "You can return any unused item within 30 days of delivery for a full refund. "
    "Start a return from your order history page."
)


class FakeEmbeddingClient(BaseEmbeddingClient):
    """Returns a fixed vector and counts calls"""

    def __init__(self, vector: List[float] = None, error: Exception = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls = 0

    async def generate_embedding(self, text: str) -> List[float]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.vector


def make_search_vector_store(matches: List[RawMatch] = None, total: int = None, error: Exception = None):
    """AsyncMock vector store whose search returns the given matches"""
    store = AsyncMock(spec=BaseVectorStore)
    if error is not None:
        store.search_similar.side_effect = error
    else:
        matches = matches or []
        store.search_similar.return_value = SearchResponse(
            matches=matches, total=len(matches) if total is None else total
        )
    return store


def make_llm_client(response: str = DEFAULT_RESPONSE, model: str = "test-model", error: Exception = None):
    client = AsyncMock(spec=BaseLLMClient)
    if error is not None:
        client.generate_response.side_effect = error
    else:
        client.generate_response.return_value = GenerationResult(
            response=response, model=model, generation_time=0.25
        )
    return client


@pytest.fixture
def make_chunk():
    """Factory for Chunk instances with sensible defaults"""

    def _make_chunk(**overrides) -> Chunk:
        data = {
            "content": "Items can be returned within 30 days of delivery.",
            "content_type": "policy",
            "source_title": "Return Policy",
            "source_url": "https://shop.example.com/returns",
            "similarity_score": 0.8,
        }
        data.update(overrides)
        return Chunk(**data)

    return _make_chunk


@pytest.fixture
def policy_match():
    return RawMatch(
        chunk_id="policy-1",
        content=(
            "Our return policy allows returns of unused items within 30 days of delivery. "
            "Refunds are issued to the original payment method."
        ),
        content_type="policy",
        source_title="Return Policy",
        source_url="https://shop.example.com/returns",
        score=0.9,
        metadata={"source_id": "page-12", "summary": "30 day returns"},
        last_modified=datetime(2025, 5, 20, tzinfo=timezone.utc),
    )


@pytest.fixture
def product_match():
    return RawMatch(
        chunk_id="product-1",
        content="The Blue Hoodie is made of organic cotton.",
        content_type="product",
        source_title="Blue Hoodie",
        source_url="https://shop.example.com/products/blue-hoodie",
        score=0.5,
        metadata={"source_id": "42"},
    )


@pytest.fixture
def embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def build_orchestrator():
    """Factory wiring a RagOrchestrator around fakes; returns (orchestrator, fakes)"""

    def _build(
        matches: List[RawMatch] = None,
        search_error: Exception = None,
        embedding_error: Exception = None,
        llm_client=None,
        plan_tier: str = "free",
        enabled_features: List[str] = None,
        cache=None,
        request_timeout: float = 5.0,
        vector_store: BaseVectorStore = None,
    ):
        embedding_client = FakeEmbeddingClient(error=embedding_error)
        if vector_store is None:
            vector_store = make_search_vector_store(matches, error=search_error)
        llm_client = llm_client or make_llm_client()
        retriever = Retriever(
            embedding_client=embedding_client,
            vector_store=vector_store,
            cache=cache if cache is not None else InMemoryCache(),
            cache_ttl=300,
        )
        orchestrator = RagOrchestrator(
            retriever=retriever,
            llm_client=llm_client,
            plan_service=StaticPlanService(plan_tier, enabled_features or []),
            request_timeout=request_timeout,
        )
        fakes = {
            "embedding_client": embedding_client,
            "vector_store": vector_store,
            "llm_client": llm_client,
        }
        return orchestrator, fakes

    return _build
