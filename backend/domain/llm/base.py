"""
Abstract base class for LLM clients
"""

from abc import ABC, abstractmethod

from domain.rag.types import GenerationResult


class BaseLLMClient(ABC):
    """Abstract base class for all LLM clients"""

    @abstractmethod
    async def generate_response(
        self,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        stream: bool = False,
    ) -> GenerationResult:
        """
        Generate a completion for a single prompt.

        Args:
            prompt: Full prompt text
            model: Provider model name
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            stream: Stream the completion and accumulate it

        Returns:
            GenerationResult with response text, model used and elapsed seconds

        Raises:
            LLMError: If the request fails
        """
        pass

    async def close(self) -> None:
        """Release client resources"""
        return None
