import logging
import time

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from ragengine.core.errors import LLMUnavailableError
from ragengine.core.models.answer import Completion

logger = logging.getLogger(__name__)


class OpenAICompatibleClient:
    """LLM client for any OpenAI-compatible chat API (OpenAI, Ollama, vLLM)."""

    def __init__(
        self,
        base_url: str | None = "http://localhost:11434/v1",
        model: str = "qwen2.5:7b",
        api_key: str = "ollama",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize client.

        Args:
            base_url: API base URL.
            model: Model name.
            api_key: API key (any value for Ollama).
            max_tokens: Default max response tokens.
            temperature: Default sampling temperature.
            timeout: Request timeout in seconds.
            client: Preconfigured SDK client.
        """
        self._client = client or AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Completion:
        """Complete a prompt as a single user message.

        Args:
            prompt: Prompt text.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.

        Returns:
            Normalized completion.
        """
        started = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
            )
        except openai.APIError as e:
            logger.error(f"LLM request failed: {e}")
            raise LLMUnavailableError(str(e)) from e

        latency = time.perf_counter() - started
        choice = response.choices[0]
        usage = response.usage

        return Completion(
            text=choice.message.content or "",
            model=response.model or self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency=latency,
            finish_reason=choice.finish_reason,
        )


class AzureOpenAIClient(OpenAICompatibleClient):
    """LLM client for Azure OpenAI deployments."""

    def __init__(
        self,
        endpoint: str,
        deployment: str = "gpt-4o",
        api_key: str = "",
        api_version: str = "2024-05-01-preview",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        timeout: float = 60.0,
    ):
        """Initialize client.

        Args:
            endpoint: Azure resource endpoint.
            deployment: Chat deployment name.
            api_key: Azure API key.
            api_version: Azure API version.
            max_tokens: Default max response tokens.
            temperature: Default sampling temperature.
            timeout: Request timeout in seconds.
        """
        super().__init__(
            model=deployment,
            max_tokens=max_tokens,
            temperature=temperature,
            client=AsyncAzureOpenAI(
                azure_endpoint=endpoint,
                api_key=api_key,
                api_version=api_version,
                timeout=timeout,
            ),
        )
