"""
Context window assembly: token-budgeted, sentence-aware
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional

from domain.rag.types import Chunk, ContextItem, ContextWindow, ContextWindowMetadata
from core.config import settings

logger = logging.getLogger(__name__)

# Whitespace that follows sentence-ending punctuation
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


def truncate_content_intelligently(text: str, max_chars: int) -> str:
    """
    Shorten text to at most max_chars without splitting a sentence.

    Whole leading sentences are kept while they fit. If even the first sentence
    is longer than max_chars it is returned on its own, so the result is never
    empty for non-empty input and never longer than the input.
    """
    text = text.strip()
    if len(text) <= max_chars:
        return text

    sentence_ends = [m.start() for m in _SENTENCE_BOUNDARY_RE.finditer(text)]
    sentence_ends.append(len(text))

    fitting = [end for end in sentence_ends if end <= max_chars]
    cut = fitting[-1] if fitting else sentence_ends[0]
    return text[:cut]


def estimate_tokens(char_count: int, chars_per_token: Optional[int] = None) -> int:
    """Rough token estimate; monotonic in character count"""
    chars_per_token = chars_per_token or settings.rag_chars_per_token
    return math.ceil(char_count / chars_per_token)


class ContextBuilder:
    """Assembles re-ranked chunks into a ContextWindow"""

    def __init__(
        self,
        max_context_tokens: Optional[int] = None,
        max_chunk_chars: Optional[int] = None,
        chars_per_token: Optional[int] = None,
    ):
        self.max_context_tokens = max_context_tokens or settings.rag_max_context_tokens
        self.max_chunk_chars = max_chunk_chars or settings.rag_max_chunk_chars
        self.chars_per_token = chars_per_token or settings.rag_chars_per_token

    def build(
        self,
        query: str,
        chunks: List[Chunk],
        user_context: Optional[Dict[str, Any]] = None,
        max_chunks: Optional[int] = None,
    ) -> ContextWindow:
        """
        Build the context window for a query.

        Chunks are taken in the given order. The first chunk is always admitted;
        assembly stops at the first later chunk that no longer fits the token
        budget, so the items are always a prefix of `chunks`.

        Args:
            query: User query
            chunks: Re-ranked chunks
            user_context: Opaque user context summary, passed through as is
            max_chunks: Upper bound on admitted chunks

        Returns:
            ContextWindow
        """
        max_chunks = settings.rag_max_final_chunks if max_chunks is None else max_chunks
        budget_chars = self.max_context_tokens * self.chars_per_token

        items: List[ContextItem] = []
        context_types: List[str] = []
        used_chars = 0
        truncated_count = 0

        for chunk in chunks[:max_chunks]:
            limit = min(self.max_chunk_chars, budget_chars - used_chars)
            if items and limit <= 0:
                break

            content = truncate_content_intelligently(chunk.content, max(limit, 1))
            if items and used_chars + len(content) > budget_chars:
                break

            truncated = content != chunk.content.strip()
            truncated_count += int(truncated)
            used_chars += len(content)

            items.append(
                ContextItem(
                    content=content,
                    type=chunk.content_type,
                    source=chunk.source_title or chunk.source_url or "Unknown source",
                    relevance_score=chunk.relevance,
                    truncated=truncated,
                    metadata={**chunk.metadata, "url": chunk.source_url},
                )
            )
            if chunk.content_type not in context_types:
                context_types.append(chunk.content_type)

        window = ContextWindow(
            query=query,
            relevant_content=items,
            metadata=ContextWindowMetadata(
                total_chunks=len(items),
                estimated_tokens=estimate_tokens(used_chars, self.chars_per_token),
                truncated_chunks=truncated_count,
                context_types=context_types,
            ),
            user_context=user_context if user_context is not None else {},
        )

        logger.debug(
            f"Context window: {len(items)} chunks, ~{window.metadata.estimated_tokens} tokens, "
            f"{truncated_count} truncated"
        )
        return window
