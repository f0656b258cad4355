"""
Retrieval and re-ranking
"""

from domain.rag.retrieval.retriever import Retriever, match_to_chunk
from domain.rag.retrieval.reranker import Reranker
from domain.rag.retrieval.similarity import cosine_similarity, batch_cosine_similarity

__all__ = [
    "Retriever",
    "Reranker",
    "match_to_chunk",
    "cosine_similarity",
    "batch_cosine_similarity",
]
