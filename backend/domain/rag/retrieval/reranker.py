"""
Multi-signal re-ranking of retrieved chunks
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from domain.rag.retrieval.scoring import calculate_rerank_score
from domain.rag.types import Chunk, ConversationContext

logger = logging.getLogger(__name__)


class Reranker:
    """Composite scoring: similarity, content type, freshness, quality and context match"""

    def __init__(self, clock=None):
        # Injectable "now" for freshness scoring
        self._clock = clock

    def rerank(
        self,
        query: str,
        chunks: List[Chunk],
        context: Optional[ConversationContext] = None,
        max_chunks: int = 8,
    ) -> List[Chunk]:
        """
        Rerank chunks by composite score.

        Args:
            query: Original user query
            chunks: Candidates from retrieval
            context: Conversation/page context
            max_chunks: Maximum number of chunks to keep

        Returns:
            New Chunk instances annotated with `rerank_score`, sorted by descending
            score (ties: higher similarity first, then input order), at most max_chunks.
        """
        if not chunks or max_chunks <= 0:
            return []

        start_time = time.perf_counter()
        now: Optional[datetime] = self._clock() if self._clock else None

        reranked = [
            chunk.model_copy(
                update={"rerank_score": calculate_rerank_score(chunk, query, context, now)}
            )
            for chunk in chunks
        ]

        # sort() is stable, so equal keys keep input order
        reranked.sort(key=lambda c: (c.rerank_score, c.similarity_score), reverse=True)
        final_chunks = reranked[:max_chunks]

        logger.info(
            f"Re-ranking: {len(chunks)} -> {len(final_chunks)} chunks "
            f"in {(time.perf_counter() - start_time) * 1000:.1f}ms"
        )
        return final_chunks
