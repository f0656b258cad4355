"""
Groq LLM client implementation
"""

import logging
import time
from typing import Optional

from groq import AsyncGroq

from domain.llm.base import BaseLLMClient
from domain.rag.types import GenerationResult
from core.exceptions import LLMError

logger = logging.getLogger(__name__)


class GroqClient(BaseLLMClient):
    """Groq chat completions client"""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None, client=None):
        if client is not None:
            self.client = client
            return
        try:
            self.client = AsyncGroq(api_key=api_key, timeout=timeout)
        except Exception as e:
            raise LLMError(f"Failed to initialize Groq client: {e}")

    async def generate_response(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        stream: bool = False,
    ) -> GenerationResult:
        """Single-turn completion; streamed deltas are accumulated"""
        start_time = time.perf_counter()
        params = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            if stream:
                parts = []
                response_model = model
                completion = await self.client.chat.completions.create(stream=True, **params)
                async for chunk in completion:
                    response_model = getattr(chunk, "model", None) or response_model
                    if chunk.choices and chunk.choices[0].delta.content:
                        parts.append(chunk.choices[0].delta.content)
                text = "".join(parts)
            else:
                completion = await self.client.chat.completions.create(**params)
                response_model = getattr(completion, "model", None) or model
                text = (completion.choices[0].message.content or "") if completion.choices else ""
        except Exception as e:
            logger.error(f"Error calling Groq API: {e}")
            raise LLMError(f"Groq API call failed: {e}") from e

        return GenerationResult(
            response=text,
            model=response_model,
            generation_time=time.perf_counter() - start_time,
        )

    async def close(self) -> None:
        await self.client.close()
