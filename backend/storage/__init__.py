"""
Vector storage and cache layer
"""

from storage.base import BaseVectorStore, record_to_match
from storage.cache import BaseCache, InMemoryCache, generate_cache_key
from storage.memory_vector_store import InMemoryVectorStore

__all__ = [
    "BaseVectorStore",
    "BaseCache",
    "InMemoryCache",
    "InMemoryVectorStore",
    "generate_cache_key",
    "record_to_match",
]
