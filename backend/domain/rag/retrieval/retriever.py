"""
Retriever: query -> embedding -> similarity search -> normalized chunks, cache assisted
"""

import logging
import time
from typing import List, Optional

from pydantic import ValidationError

from domain.rag.cancellation import CancellationScope
from domain.rag.embedding.client import BaseEmbeddingClient
from domain.rag.types import Chunk, ConversationContext, RawMatch, RetrievalOptions, RetrievalOutcome
from storage.base import BaseVectorStore
from storage.cache import BaseCache, generate_cache_key
from core.config import settings
from core.exceptions import InvalidQueryError, RetrievalError, RequestCancelledError, UpstreamTimeoutError

logger = logging.getLogger(__name__)


def match_to_chunk(match: RawMatch) -> Chunk:
    """Build a Chunk from a raw match, clamping the score into [0, 1]"""
    metadata = dict(match.metadata)
    if match.chunk_id and "chunk_id" not in metadata:
        metadata["chunk_id"] = match.chunk_id
    return Chunk(
        content=match.content,
        content_type=match.content_type or "unknown",
        source_title=match.source_title,
        source_url=match.source_url,
        similarity_score=min(1.0, max(0.0, match.score)),
        metadata=metadata,
        last_modified=match.last_modified,
    )


class Retriever:
    """
    Similarity retrieval with a TTL cache in front of it.

    Cache hits skip both the embedding and the search collaborators.
    """

    def __init__(
        self,
        embedding_client: BaseEmbeddingClient,
        vector_store: BaseVectorStore,
        cache: Optional[BaseCache] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.cache = cache
        self.cache_ttl = settings.rag_cache_ttl if cache_ttl is None else cache_ttl

    async def retrieve(
        self,
        query: str,
        context: Optional[ConversationContext] = None,
        options: Optional[RetrievalOptions] = None,
        scope: Optional[CancellationScope] = None,
    ) -> RetrievalOutcome:
        """
        Retrieve chunks for a query.

        Args:
            query: Raw user query
            context: Conversation/page context; it shapes re-ranking, never the search
            options: Similarity threshold and candidate count
            scope: Deadline/cancel scope applied to the network calls

        Returns:
            RetrievalOutcome with chunks ordered by descending similarity

        Raises:
            InvalidQueryError: Empty or whitespace-only query
            RetrievalError: Embedding or search collaborator failed
            UpstreamTimeoutError: Request deadline elapsed
            RequestCancelledError: Caller cancelled the request
        """
        if not query or not query.strip():
            raise InvalidQueryError("Query cannot be empty")

        options = options or RetrievalOptions(
            similarity_threshold=settings.rag_similarity_threshold,
            max_candidates=settings.rag_max_initial_retrieval,
        )
        scope = scope or CancellationScope()
        start_time = time.perf_counter()

        cache_key = generate_cache_key("retrieval", query, options.model_dump())

        cached = await self._read_cache(cache_key)
        if cached is not None:
            logger.info(f"Retrieval cache hit ({len(cached.chunks)} chunks)")
            return cached.model_copy(
                update={"cache_hit": True, "search_time": time.perf_counter() - start_time}
            )

        try:
            embedding = await scope.run(
                self.embedding_client.generate_embedding(query), "embedding generation"
            )
            if not embedding:
                raise RetrievalError("Failed to generate embedding for query")

            # Padded by one for possible self-matches upstream
            search = await scope.run(
                self.vector_store.search_similar(embedding, top_k=options.max_candidates + 1),
                "similarity search",
            )
        except (RequestCancelledError, UpstreamTimeoutError, RetrievalError):
            raise
        except Exception as e:
            logger.error(f"Retrieval collaborator failed: {e}")
            raise RetrievalError(f"Knowledge base search failed: {e}") from e

        chunks = self._normalize(search.matches, options)
        outcome = RetrievalOutcome(
            chunks=chunks,
            total_found=search.total,
            search_time=time.perf_counter() - start_time,
            cache_hit=False,
        )

        await self._write_cache(cache_key, outcome)
        logger.info(
            f"Retrieval complete: {len(chunks)} chunks above {options.similarity_threshold} "
            f"(found {search.total}) in {outcome.search_time:.3f}s"
        )
        return outcome

    def _normalize(self, matches: List[RawMatch], options: RetrievalOptions) -> List[Chunk]:
        chunks = []
        for match in matches:
            if match.score < options.similarity_threshold:
                continue
            try:
                chunks.append(match_to_chunk(match))
            except ValidationError as e:
                # Blank content cannot ground an answer
                logger.warning(f"Skipping malformed match {match.chunk_id!r}: {e.error_count()} errors")
        chunks.sort(key=lambda c: c.similarity_score, reverse=True)
        return chunks[:options.max_candidates]

    async def _read_cache(self, key: str) -> Optional[RetrievalOutcome]:
        if self.cache is None:
            return None
        cached = await self.cache.get(key)
        if cached is None:
            return None
        return RetrievalOutcome.model_validate(cached)

    async def _write_cache(self, key: str, outcome: RetrievalOutcome) -> None:
        if self.cache is None:
            return
        await self.cache.set(key, outcome.model_dump(mode="json"), self.cache_ttl)
