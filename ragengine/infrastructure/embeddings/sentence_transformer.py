import logging
from functools import cached_property

import numpy as np
from sentence_transformers import SentenceTransformer

from ragengine.core.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedding model.

    E5-family models expect "query: " / "passage: " prefixes; pass empty
    prefixes for models that do not.
    """

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        query_prefix: str = "query: ",
        passage_prefix: str = "passage: ",
    ):
        self._model_name = model_name
        self._query_prefix = query_prefix
        self._passage_prefix = passage_prefix

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def _encode(self, texts: list[str]) -> np.ndarray:
        try:
            return self.model.encode(texts, convert_to_numpy=True)
        except (OSError, RuntimeError) as e:
            raise EmbeddingUnavailableError(f"{self._model_name}: {e}") from e

    def embed_query(self, text: str) -> np.ndarray:
        return self._encode([f"{self._query_prefix}{text}"])[0]

    def embed_passages(self, texts: list[str]) -> np.ndarray:
        return self._encode([f"{self._passage_prefix}{t}" for t in texts])
