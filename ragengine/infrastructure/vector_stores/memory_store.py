import logging
import threading
from typing import Optional

import numpy as np

from ragengine.core.errors import DimensionMismatchError
from ragengine.core.models.document import Chunk, VectorHit
from ragengine.core.models.filters import SearchFilters

logger = logging.getLogger(__name__)


def _normalize(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    return vector / norm if norm > 0 else vector


class InMemoryVectorStore:
    """In-process vector store with a linear cosine scan.

    Fine up to a few thousand chunks. Stored vectors are L2-normalized on
    insert, so similarity is a plain dot product.
    """

    def __init__(self, similarity_threshold: float = 0.3):
        """Initialize store.

        Args:
            similarity_threshold: Matches below this similarity are excluded.
        """
        self._threshold = similarity_threshold
        self._lock = threading.RLock()
        self._chunks: dict[str, Chunk] = {}
        self._vectors: dict[str, np.ndarray] = {}
        self._metadatas: dict[str, dict] = {}
        self._dimension: Optional[int] = None

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def add(self, chunks: list[Chunk], metadatas: list[dict]) -> None:
        """Add embedded chunks."""
        if len(chunks) != len(metadatas):
            raise ValueError("chunks and metadatas must have the same length")

        with self._lock:
            dimension = self._dimension
            vectors = []
            for chunk in chunks:
                if chunk.embedding is None:
                    raise ValueError(f"Chunk {chunk.id} has no embedding")
                vector = np.asarray(chunk.embedding, dtype=np.float32).ravel()
                if dimension is None:
                    dimension = vector.shape[0]
                elif vector.shape[0] != dimension:
                    raise DimensionMismatchError(dimension, vector.shape[0])
                vectors.append(_normalize(vector))

            for chunk, vector, meta in zip(chunks, vectors, metadatas):
                self._chunks[chunk.id] = chunk
                self._vectors[chunk.id] = vector
                self._metadatas[chunk.id] = dict(meta)
            self._dimension = dimension

        logger.debug(f"Added {len(chunks)} chunks (total={self.count()})")

    def query(
        self,
        query_embedding: np.ndarray,
        n_results: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[VectorHit]:
        """Search by embedding."""
        query = np.asarray(query_embedding, dtype=np.float32).ravel()

        with self._lock:
            if not self._vectors:
                return []
            if query.shape[0] != self._dimension:
                raise DimensionMismatchError(self._dimension, query.shape[0])

            ids = [
                chunk_id
                for chunk_id, meta in self._metadatas.items()
                if filters is None or filters.matches(meta)
            ]
            if not ids:
                return []
            matrix = np.vstack([self._vectors[i] for i in ids])
            chunks = [self._chunks[i] for i in ids]
            metas = [self._metadatas[i] for i in ids]

        scores = matrix @ _normalize(query)
        order = np.argsort(-scores, kind="stable")

        hits = []
        for idx in order:
            score = float(scores[idx])
            if score < self._threshold:
                break
            hits.append(VectorHit(chunk=chunks[idx], similarity=score, metadata=metas[idx]))
            if len(hits) >= n_results:
                break
        return hits

    def delete_document(self, document_id: str) -> int:
        with self._lock:
            ids = [i for i, c in self._chunks.items() if c.document_id == document_id]
            for chunk_id in ids:
                del self._chunks[chunk_id]
                del self._vectors[chunk_id]
                del self._metadatas[chunk_id]
        if ids:
            logger.info(f"Deleted {len(ids)} chunks of {document_id}")
        return len(ids)

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)
