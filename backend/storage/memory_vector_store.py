"""
In-process vector store (numpy cosine search) for development and tests
"""

import logging
from typing import List, Dict, Any, Optional, Tuple

from storage.base import BaseVectorStore, record_to_match
from domain.rag.retrieval.similarity import batch_cosine_similarity
from domain.rag.types import SearchResponse
from core.exceptions import StorageError

logger = logging.getLogger(__name__)


def _matches_filter(metadata: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Equality filter; list values match if any element is contained in the metadata value"""
    if not filter:
        return True
    for key, expected in filter.items():
        actual = metadata.get(key)
        if isinstance(expected, list):
            actual_values = actual if isinstance(actual, list) else [actual]
            if not set(map(str, expected)) & set(map(str, actual_values)):
                return False
        elif actual != expected:
            return False
    return True


class InMemoryVectorStore(BaseVectorStore):
    """Keeps vectors in a dict; search is a brute-force cosine scan"""

    def __init__(self):
        # chunk_id -> (embedding, content, metadata)
        self._records: Dict[str, Tuple[List[float], str, Dict[str, Any]]] = {}
        logger.info("Initialized InMemoryVectorStore")

    async def add(
        self,
        chunk_id: str,
        embedding: List[float],
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add a vector to the store"""
        if not embedding:
            raise StorageError(f"Empty embedding for chunk {chunk_id}")
        self._records[chunk_id] = (list(embedding), content, dict(metadata or {}))

    async def delete(self, chunk_id: str) -> None:
        """Delete a vector from the store"""
        self._records.pop(chunk_id, None)

    async def search_similar(
        self,
        query_vector: List[float],
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None
    ) -> SearchResponse:
        try:
            candidates = [
                (chunk_id, record)
                for chunk_id, record in self._records.items()
                if _matches_filter(record[2], filter)
            ]
            scores = batch_cosine_similarity(
                query_vector, [record[0] for _, record in candidates]
            )
            ranked = sorted(
                zip(candidates, scores), key=lambda item: item[1], reverse=True
            )

            matches = [
                record_to_match(chunk_id, record[1], record[2], score)
                for (chunk_id, record), score in ranked[:top_k]
            ]
            return SearchResponse(matches=matches, total=len(candidates))
        except Exception as e:
            logger.error(f"Error searching in-memory vectors: {e}")
            raise StorageError(f"Failed to search vectors: {e}")

    def __len__(self) -> int:
        return len(self._records)
