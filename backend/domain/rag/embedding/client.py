"""
Query embedding clients: abstract interface + async Jina API client
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Literal

import httpx

from core.config import settings
from core.exceptions import EmbeddingError
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

# Allowed task types for Jina Embedding API
TaskType = Literal["retrieval.query", "retrieval.passage"]


class BaseEmbeddingClient(ABC):
    """Turns text into a dense embedding vector"""

    @abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        """
        Embed a single text.

        Raises:
            EmbeddingError: If the embedding cannot be produced
        """
        pass

    async def close(self) -> None:
        """Release network resources (no-op by default)"""
        return None


class JinaEmbeddingClient(BaseEmbeddingClient):
    """Async client for Jina Embedding API"""

    def __init__(
        self,
        task: TaskType = "retrieval.query",
        api_key: str = None,
        api_url: str = None,
        model: str = None,
        timeout: int = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if task not in ("retrieval.query", "retrieval.passage"):
            raise ValueError(
                f"Invalid task: {task}. Must be one of: 'retrieval.query', 'retrieval.passage'"
            )

        self.task = task
        self.api_key = api_key or settings.jina_api_key
        if not self.api_key:
            raise EmbeddingError("Jina API key not set. Set JINA_API_KEY environment variable or pass api_key parameter.")

        self.api_url = api_url or settings.jina_api_url
        self.model = model or settings.jina_model
        self.timeout = timeout or settings.jina_timeout

        # Connection pool
        self._client: Optional[httpx.AsyncClient] = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @retry_with_backoff(max_retries=settings.jina_max_retries, base_delay=1.0, retry_on=(httpx.TransportError,))
    async def _make_api_call(self, payload: Dict[str, Any]) -> httpx.Response:
        """Make a single API call; transport failures are retried."""
        client = await self._get_client()
        response = await client.post(self.api_url, json=payload, headers=self._headers)
        response.raise_for_status()
        return response

    async def generate_embedding(self, text: str) -> List[float]:
        """Generate the embedding vector for one text."""

        if not text or not text.strip():
            raise EmbeddingError("text to embed must not be empty")

        payload = {
            "model": self.model,
            "task": self.task,
            "truncate": True,
            "input": [text],
        }

        try:
            response = await self._make_api_call(payload)
            embedding = response.json()["data"][0]["embedding"]
        except httpx.HTTPStatusError as e:
            logger.error(f"Jina API error: {e.response.status_code} - {e.response.text}")
            raise EmbeddingError(f"Jina API error: {e.response.status_code}")
        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}")

        if not embedding:
            raise EmbeddingError("Jina API returned an empty embedding")

        return embedding

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None
