"""LLM protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.answer import Completion


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for LLM client.

    Adapters translate provider failures into ``LLMUnavailableError``.
    """

    async def complete(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Completion:
        """Complete a prompt.

        Args:
            prompt: Full prompt text.
            max_tokens: Response token limit (adapter default if None).
            temperature: Sampling temperature (adapter default if None).

        Returns:
            Normalized completion.
        """
        ...
