"""
Response post-processing: confidence, sources and stats
"""

from typing import List, Optional

from pydantic import ValidationError

from core.exceptions import PipelineError
from domain.rag.types import (
    Chunk,
    GenerationResult,
    ModelSelection,
    RagResult,
    ResponseMetadata,
    RetrievalStats,
    SourceReference,
)

NO_CONTEXT_CONFIDENCE = 0.3

# Source-count multipliers; a single source is trusted less
SINGLE_SOURCE_FACTOR = 0.85
TWO_SOURCE_FACTOR = 1.0
MULTI_SOURCE_FACTOR = 1.1

MIN_RESPONSE_CHARS = 50
MAX_RESPONSE_CHARS = 2000
EMPTY_RESPONSE_PENALTY = 0.5
LENGTH_PENALTY = 0.95


def calculate_average_relevance(chunks: List[Chunk]) -> float:
    if not chunks:
        return 0.0
    return sum(c.relevance for c in chunks) / len(chunks)


def calculate_response_confidence(chunks: List[Chunk], response: str) -> float:
    """
    Confidence in [0, 1] that the response is grounded in the chunks.

    Average relevance scaled by the number of sources, with a penalty for empty
    or implausibly short/long responses. No chunks gives a fixed low value.
    """
    if not chunks:
        return NO_CONTEXT_CONFIDENCE

    confidence = calculate_average_relevance(chunks)

    if len(chunks) == 1:
        confidence *= SINGLE_SOURCE_FACTOR
    elif len(chunks) == 2:
        confidence *= TWO_SOURCE_FACTOR
    else:
        confidence *= MULTI_SOURCE_FACTOR

    length = len((response or "").strip())
    if length == 0:
        confidence *= EMPTY_RESPONSE_PENALTY
    elif length < MIN_RESPONSE_CHARS or length > MAX_RESPONSE_CHARS:
        confidence *= LENGTH_PENALTY

    return max(0.0, min(1.0, confidence))


def extract_sources_used(chunks: List[Chunk]) -> List[SourceReference]:
    return [
        SourceReference(
            type=chunk.content_type,
            title=chunk.source_title,
            url=chunk.source_url or None,
            relevance=chunk.relevance,
        )
        for chunk in chunks
    ]


def distinct_content_types(chunks: List[Chunk]) -> List[str]:
    types: List[str] = []
    for chunk in chunks:
        if chunk.content_type not in types:
            types.append(chunk.content_type)
    return types


class ResponsePostProcessor:
    """Turns raw model output plus the used chunks into a RagResult"""

    def process(
        self,
        generation: GenerationResult,
        used_chunks: List[Chunk],
        selection: ModelSelection,
        response_mode: str,
        chunks_considered: int,
        cache_hit: bool = False,
        plan_tier: Optional[str] = None,
    ) -> RagResult:
        response = generation.response.strip()
        try:
            return self._build_result(
                response, generation, used_chunks, selection, response_mode,
                chunks_considered, cache_hit, plan_tier,
            )
        except ValidationError as e:
            raise PipelineError(f"Could not assemble RAG result: {e}") from e

    @staticmethod
    def _build_result(
        response: str,
        generation: GenerationResult,
        used_chunks: List[Chunk],
        selection: ModelSelection,
        response_mode: str,
        chunks_considered: int,
        cache_hit: bool,
        plan_tier: Optional[str],
    ) -> RagResult:
        return RagResult(
            response=response,
            confidence=calculate_response_confidence(used_chunks, response),
            sources_used=extract_sources_used(used_chunks),
            retrieval_stats=RetrievalStats(
                chunks_considered=chunks_considered,
                chunks_used=len(used_chunks),
                average_relevance=calculate_average_relevance(used_chunks),
                content_types=distinct_content_types(used_chunks),
                cache_hit=cache_hit,
            ),
            # Reaching this stage implies the safety check passed
            safety_passed=True,
            response_metadata=ResponseMetadata(
                response_mode=response_mode,
                model_used=generation.model or selection.model,
                generation_time=generation.generation_time,
                temperature=selection.temperature,
                max_tokens=selection.max_tokens,
                plan_tier=plan_tier,
            ),
        )
