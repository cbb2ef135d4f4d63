import hashlib
import logging
import re

import numpy as np

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class HashingEmbedder:
    """Deterministic bag-of-words pseudo-embedding.

    Each lower-cased word token is hashed into one of ``dimension`` buckets and
    the count vector is L2-normalized. Needs no model or network, but recall is
    far below a real embedding model: it only matches shared words.
    """

    def __init__(self, dimension: int = 384):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _bucket(self, token: str) -> int:
        digest = hashlib.md5(token.encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "little") % self._dimension

    def _embed(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float32)
        for token in _TOKEN_RE.findall(text.lower()):
            vector[self._bucket(token)] += 1.0
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector

    def embed_query(self, text: str) -> np.ndarray:
        return self._embed(text)

    def embed_passages(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, self._dimension), dtype=np.float32)
        return np.vstack([self._embed(t) for t in texts])
