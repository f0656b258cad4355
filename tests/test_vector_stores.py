"""Tests for the vector store backends and record normalization."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from core.exceptions import StorageError
from storage.base import record_to_match
from storage.memory_vector_store import InMemoryVectorStore
from storage.single_vector_store import SingleVectorStore, build_where_clause, create_chroma_client


class TestRecordToMatch:

    def test_lifts_well_known_keys(self):
        match = record_to_match(
            "c1",
            "Returns within 30 days.",
            {
                "content_type": "policy",
                "source_title": "Return Policy",
                "source_url": "https://shop.example.com/returns",
                "last_modified": "2025-05-20T10:00:00Z",
                "source_id": "12",
            },
            0.87,
        )

        assert match.content_type == "policy"
        assert match.source_title == "Return Policy"
        assert match.last_modified == datetime(2025, 5, 20, 10, 0, tzinfo=timezone.utc)
        assert match.metadata == {"source_id": "12"}
        assert match.score == 0.87

    def test_epoch_and_bad_timestamps(self):
        assert record_to_match("c", "x", {"last_modified": 0}, 0.5).last_modified == datetime(
            1970, 1, 1, tzinfo=timezone.utc
        )
        assert record_to_match("c", "x", {"last_modified": "yesterday"}, 0.5).last_modified is None

    def test_defaults_without_metadata(self):
        match = record_to_match("c", "x", None, 0.5)
        assert match.content_type == "unknown"
        assert match.metadata == {}


class TestInMemoryVectorStore:

    @pytest_asyncio.fixture
    async def store(self):
        store = InMemoryVectorStore()
        await store.add("policy", [1.0, 0.0], "Return policy.", {"content_type": "policy", "page_type": "policy"})
        await store.add("hoodie", [0.0, 1.0], "Blue hoodie.", {"content_type": "product", "related_products": ["42"]})
        await store.add("mixed", [0.7, 0.7], "Hoodie returns.", {"content_type": "faq", "related_products": ["42", "7"]})
        return store

    @pytest.mark.asyncio
    async def test_ranks_by_cosine_similarity(self, store):
        response = await store.search_similar([1.0, 0.0], top_k=2)

        assert [m.chunk_id for m in response.matches] == ["policy", "mixed"]
        assert response.matches[0].score == pytest.approx(1.0, abs=1e-6)
        assert response.total == 3

    @pytest.mark.asyncio
    async def test_filter_with_list_values(self, store):
        response = await store.search_similar([1.0, 0.0], top_k=5, filter={"related_products": ["42"]})
        assert {m.chunk_id for m in response.matches} == {"hoodie", "mixed"}
        assert response.total == 2

    @pytest.mark.asyncio
    async def test_filter_with_scalar_value(self, store):
        response = await store.search_similar([0.0, 1.0], top_k=5, filter={"page_type": "policy"})
        assert [m.chunk_id for m in response.matches] == ["policy"]

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.delete("policy")
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_empty_embedding_rejected(self):
        with pytest.raises(StorageError):
            await InMemoryVectorStore().add("x", [], "content")

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_storage_error(self, store):
        with pytest.raises(StorageError):
            await store.search_similar([1.0, 0.0, 0.0])


class TestChromaWhereClause:

    def test_empty(self):
        assert build_where_clause(None) is None
        assert build_where_clause({}) is None
        assert build_where_clause({"related_products": []}) is None

    def test_single_key(self):
        assert build_where_clause({"page_type": "product"}) == {"page_type": "product"}

    def test_list_and_multiple_keys(self):
        assert build_where_clause({"page_type": "product", "related_products": ["42"]}) == {
            "$and": [{"page_type": "product"}, {"related_products": {"$in": ["42"]}}]
        }


@pytest.mark.asyncio
async def test_chroma_search_converts_distances():
    chroma = MagicMock()
    store = SingleVectorStore(backend_type="chromadb_embedded", collection_name="kb", client=chroma)
    store.collection.query.return_value = {
        "ids": [["c1", "c2"]],
        "documents": [["Return policy.", "Hoodie."]],
        "metadatas": [[{"content_type": "policy"}, {"content_type": "product"}]],
        "distances": [[0.1, 0.4]],
    }

    response = await store.search_similar([0.1, 0.2], top_k=3, filter={"page_type": "policy"})

    assert [m.chunk_id for m in response.matches] == ["c1", "c2"]
    assert [m.score for m in response.matches] == pytest.approx([0.9, 0.6])
    assert response.matches[0].content_type == "policy"
    kwargs = store.collection.query.call_args.kwargs
    assert kwargs["n_results"] == 3
    assert kwargs["where"] == {"page_type": "policy"}


def test_chroma_collection_uses_cosine_space():
    chroma = MagicMock()
    SingleVectorStore(backend_type="chromadb_embedded", collection_name="kb", client=chroma)
    chroma.get_or_create_collection.assert_called_once_with(name="kb", metadata={"hnsw:space": "cosine"})


def test_unknown_chroma_backend_is_storage_error():
    with pytest.raises(StorageError):
        create_chroma_client("postgres")
