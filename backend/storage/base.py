"""
Abstract base classes for storage
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from domain.rag.types import RawMatch, SearchResponse


class BaseVectorStore(ABC):
    """Abstract base class for similarity-search backends"""

    @abstractmethod
    async def search_similar(
        self,
        query_vector: List[float],
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None
    ) -> SearchResponse:
        """
        Query the store.

        Returns:
            SearchResponse with matches ordered by descending similarity and the
            number of matches the backend found.
        """
        pass

    @abstractmethod
    async def add(
        self,
        chunk_id: str,
        embedding: List[float],
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add a vector with its content and metadata to the store"""
        pass

    @abstractmethod
    async def delete(self, chunk_id: str) -> None:
        """Delete a vector from the store"""
        pass


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes, ISO-8601 strings or unix epoch seconds"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def record_to_match(
    chunk_id: str,
    content: str,
    metadata: Optional[Dict[str, Any]],
    score: float
) -> RawMatch:
    """
    Normalize a stored record into a RawMatch.

    Well-known keys (content_type, source_title, source_url, last_modified) are
    lifted out of the metadata; everything else stays as annotations.
    """
    metadata = dict(metadata or {})
    content_type = metadata.pop("content_type", None) or "unknown"
    source_title = metadata.pop("source_title", None) or ""
    source_url = metadata.pop("source_url", None) or ""
    last_modified = _parse_timestamp(metadata.pop("last_modified", None))

    return RawMatch(
        chunk_id=chunk_id,
        content=content or "",
        content_type=str(content_type),
        source_title=str(source_title),
        source_url=str(source_url),
        score=float(score),
        metadata=metadata,
        last_modified=last_modified,
    )
