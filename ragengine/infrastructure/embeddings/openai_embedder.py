import logging

import numpy as np
import openai
from openai import AzureOpenAI, OpenAI

from ragengine.core.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Hosted embeddings via the OpenAI (or Azure OpenAI) embeddings API."""

    def __init__(
        self,
        model: str = "text-embedding-3-large",
        api_key: str = "",
        base_url: str | None = None,
        azure_endpoint: str | None = None,
        api_version: str = "2024-05-01-preview",
        timeout: float = 30.0,
    ):
        """Initialize client.

        Args:
            model: Embedding model (deployment name on Azure).
            api_key: API key.
            base_url: Custom OpenAI-compatible base URL.
            azure_endpoint: Azure resource endpoint; selects the Azure client.
            api_version: Azure API version.
            timeout: Request timeout in seconds.
        """
        if azure_endpoint:
            self._client = AzureOpenAI(
                api_key=api_key,
                azure_endpoint=azure_endpoint,
                api_version=api_version,
                timeout=timeout,
            )
        else:
            self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._model = model

    def _embed(self, texts: list[str]) -> np.ndarray:
        try:
            response = self._client.embeddings.create(model=self._model, input=texts)
        except openai.APIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingUnavailableError(str(e)) from e

        rows = sorted(response.data, key=lambda d: d.index)
        return np.array([row.embedding for row in rows], dtype=np.float32)

    def embed_query(self, text: str) -> np.ndarray:
        return self._embed([text])[0]

    def embed_passages(self, texts: list[str]) -> np.ndarray:
        return self._embed(texts)
