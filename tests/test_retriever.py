"""Tests for the cache-assisted Retriever."""

import pytest

from conftest import FakeEmbeddingClient, make_search_vector_store
from core.exceptions import EmbeddingError, InvalidQueryError, RetrievalError, StorageError
from domain.rag.retrieval.retriever import Retriever, match_to_chunk
from domain.rag.types import ConversationContext, RawMatch, RetrievalOptions
from storage.cache import InMemoryCache


def raw(chunk_id, score, content_type="faq", content=None):
    return RawMatch(
        chunk_id=chunk_id,
        content=content if content is not None else f"Content of {chunk_id}.",
        content_type=content_type,
        source_title=chunk_id.title(),
        score=score,
    )


OPTIONS = RetrievalOptions(similarity_threshold=0.7, max_candidates=5)


def test_match_to_chunk_clamps_score_and_keeps_id():
    chunk = match_to_chunk(raw("a", 1.0000001))
    assert chunk.similarity_score == 1.0
    assert chunk.metadata["chunk_id"] == "a"


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
async def test_blank_query_rejected(query):
    embedding_client = FakeEmbeddingClient()
    retriever = Retriever(embedding_client, make_search_vector_store())

    with pytest.raises(InvalidQueryError):
        await retriever.retrieve(query, None, OPTIONS)

    assert embedding_client.calls == 0


@pytest.mark.asyncio
async def test_miss_searches_with_padding_and_filters_by_threshold():
    embedding_client = FakeEmbeddingClient(vector=[0.5, 0.5])
    store = make_search_vector_store([raw("low", 0.4), raw("top", 0.95), raw("mid", 0.75)], total=12)
    retriever = Retriever(embedding_client, store, cache=InMemoryCache())

    outcome = await retriever.retrieve("return policy", None, OPTIONS)

    store.search_similar.assert_awaited_once_with([0.5, 0.5], top_k=6)
    assert [c.metadata["chunk_id"] for c in outcome.chunks] == ["top", "mid"]
    assert outcome.total_found == 12
    assert outcome.cache_hit is False


@pytest.mark.asyncio
async def test_page_context_does_not_narrow_the_search():
    store = make_search_vector_store([])
    retriever = Retriever(FakeEmbeddingClient(), store)
    context = ConversationContext(page_context={"type": "product"}, product_context={"id": "42"})

    await retriever.retrieve("what is your return policy", context, OPTIONS)

    _, kwargs = store.search_similar.call_args
    assert kwargs == {"top_k": 6}


@pytest.mark.asyncio
async def test_results_capped_at_max_candidates():
    matches = [raw(f"m{i}", 0.9 - i * 0.01) for i in range(6)]
    retriever = Retriever(FakeEmbeddingClient(), make_search_vector_store(matches))

    outcome = await retriever.retrieve("q", None, OPTIONS)

    assert len(outcome.chunks) == 5
    scores = [c.similarity_score for c in outcome.chunks]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_cache_hit_skips_collaborators():
    embedding_client = FakeEmbeddingClient()
    store = make_search_vector_store([raw("top", 0.9)])
    retriever = Retriever(embedding_client, store, cache=InMemoryCache())

    first = await retriever.retrieve("return policy", None, OPTIONS)
    second = await retriever.retrieve("return policy", None, OPTIONS)

    assert embedding_client.calls == 1
    assert store.search_similar.await_count == 1
    assert first.cache_hit is False
    assert second.cache_hit is True
    assert second.chunks == first.chunks


@pytest.mark.asyncio
async def test_different_options_miss_the_cache():
    embedding_client = FakeEmbeddingClient()
    retriever = Retriever(embedding_client, make_search_vector_store([raw("top", 0.9)]), cache=InMemoryCache())

    await retriever.retrieve("return policy", None, OPTIONS)
    await retriever.retrieve("return policy", None, RetrievalOptions(similarity_threshold=0.5, max_candidates=5))

    assert embedding_client.calls == 2


@pytest.mark.asyncio
async def test_blank_matches_are_skipped():
    retriever = Retriever(FakeEmbeddingClient(), make_search_vector_store([raw("blank", 0.9, content="   "), raw("ok", 0.8)]))

    outcome = await retriever.retrieve("q", None, OPTIONS)

    assert [c.metadata["chunk_id"] for c in outcome.chunks] == ["ok"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "embedding_error, search_error",
    [
        (EmbeddingError("Jina API error: 503"), None),
        (None, StorageError("collection missing")),
        (None, RuntimeError("boom")),
    ],
)
async def test_collaborator_failures_become_retrieval_errors(embedding_error, search_error):
    retriever = Retriever(
        FakeEmbeddingClient(error=embedding_error),
        make_search_vector_store(error=search_error),
        cache=InMemoryCache(),
    )

    with pytest.raises(RetrievalError):
        await retriever.retrieve("q", None, OPTIONS)


@pytest.mark.asyncio
async def test_failures_are_not_cached():
    cache = InMemoryCache()
    retriever = Retriever(FakeEmbeddingClient(error=EmbeddingError("down")), make_search_vector_store(), cache=cache)

    with pytest.raises(RetrievalError):
        await retriever.retrieve("q", None, OPTIONS)

    assert len(cache) == 0
