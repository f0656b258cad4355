"""
Query embedding
"""

from domain.rag.embedding.client import BaseEmbeddingClient, JinaEmbeddingClient

__all__ = [
    "BaseEmbeddingClient",
    "JinaEmbeddingClient",
]
