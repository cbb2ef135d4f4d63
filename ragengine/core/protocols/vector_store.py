"""Vector store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from ..models.document import Chunk, VectorHit
from ..models.filters import SearchFilters


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector storage.

    Implementations apply filters before ranking and drop every match below
    their similarity threshold.
    """

    @property
    def dimension(self) -> Optional[int]:
        """Vector dimension, or None while empty."""
        ...

    def add(self, chunks: list[Chunk], metadatas: list[dict]) -> None:
        """Add embedded chunks to the store.

        Args:
            chunks: Chunks with embeddings attached.
            metadatas: Flat filterable metadata, one per chunk.
        """
        ...

    def query(
        self,
        query_embedding: np.ndarray,
        n_results: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[VectorHit]:
        """Search by embedding.

        Args:
            query_embedding: Query vector.
            n_results: Number of results to return.
            filters: Metadata predicates.

        Returns:
            Matches sorted by similarity (descending).
        """
        ...

    def delete_document(self, document_id: str) -> int:
        """Delete all chunks of a document, returning how many were removed."""
        ...

    def count(self) -> int:
        """Get chunk count."""
        ...
