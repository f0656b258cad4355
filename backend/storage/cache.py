"""
Key-value cache with TTL used for retrieval results
"""

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from core.config import settings

logger = logging.getLogger(__name__)


def generate_cache_key(
    operation: str,
    query: str,
    options: Optional[Dict[str, Any]] = None,
    prefix: Optional[str] = None,
) -> str:
    """
    Build a deterministic cache key for an operation over a query and options.

    Options are serialized as canonical JSON (sorted keys) so dict ordering never
    changes the key.
    """
    prefix = settings.rag_cache_prefix if prefix is None else prefix
    material = json.dumps(
        {"query": query, "options": options or {}},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return f"{prefix}{operation}_{digest}"


class BaseCache(ABC):
    """
    Abstract cache facade.

    Implementations must tolerate concurrent get/set; a race between two misses
    only produces redundant work.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Store a value for ttl seconds"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present"""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry"""
        pass


class InMemoryCache(BaseCache):
    """Process-local cache; expired entries are purged lazily on read"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}  # key -> (value, expires_at)

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            logger.debug(f"[CACHE] Expired: {key}")
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        if ttl <= 0:
            return
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()
        logger.info("[CACHE] Cleared")

    def __len__(self) -> int:
        return len(self._entries)
