"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable
import numpy as np


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service.

    Dimensionality must stay constant for the lifetime of one vector index.
    """

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a search query.

        Args:
            text: Query text.

        Returns:
            1-D vector.
        """
        ...

    def embed_passages(self, texts: list[str]) -> np.ndarray:
        """Embed document passages.

        Args:
            texts: Passages to embed.

        Returns:
            2-D array, one row per passage.
        """
        ...
