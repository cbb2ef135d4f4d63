import logging
from typing import Optional

import numpy as np
import requests

from ragengine.core.errors import DimensionMismatchError, IndexUnavailableError
from ragengine.core.models.document import Chunk, VectorHit
from ragengine.core.models.filters import SearchFilters

logger = logging.getLogger(__name__)

# Chunk fields persisted alongside the document-level filter metadata.
_CHUNK_FIELDS = ("document_id", "start_offset", "end_offset", "chunk_index")


class ChromaVectorStore:
    """Vector store using ChromaDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_name: str = "documents",
        tenant: str = "default_tenant",
        database: str = "default_database",
        similarity_threshold: float = 0.3,
        timeout: float = 10.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_name: Collection name.
            tenant: Tenant name.
            database: Database name.
            similarity_threshold: Matches below this similarity are excluded.
            timeout: HTTP timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._collection_id: Optional[str] = None
        self._dimension: Optional[int] = None
        self._threshold = similarity_threshold
        self._timeout = timeout
        self._session = requests.Session()

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send request, mapping outages to IndexUnavailableError."""
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Chroma request failed: {e}")
            raise IndexUnavailableError(f"Chroma unreachable: {e}") from e

        if resp.status_code >= 500 or resp.status_code == 429:
            raise IndexUnavailableError(f"Chroma error {resp.status_code}: {resp.text[:200]}")
        return resp

    def _check_dimension(self, resp: requests.Response, actual: int) -> None:
        if resp.status_code >= 400 and "dimension" in resp.text.lower():
            raise DimensionMismatchError(self._dimension or -1, actual)
        resp.raise_for_status()

    def _ensure_collection(self) -> str:
        """Get or create collection, return ID."""
        if self._collection_id:
            return self._collection_id

        resp = self._request("GET", self._collections_url)
        if resp.status_code == 200:
            for col in resp.json():
                if col["name"] == self._collection_name:
                    self._collection_id = col["id"]
                    self._dimension = col.get("dimension")
                    return self._collection_id

        resp = self._request(
            "POST",
            self._collections_url,
            json={"name": self._collection_name, "metadata": {"hnsw:space": "cosine"}},
        )
        resp.raise_for_status()
        self._collection_id = resp.json()["id"]
        logger.info(f"Created collection: {self._collection_name}")
        return self._collection_id

    def add(self, chunks: list[Chunk], metadatas: list[dict]) -> None:
        """Add embedded chunks to collection."""
        if not chunks:
            return
        col_id = self._ensure_collection()

        embeddings = [np.asarray(c.embedding, dtype=np.float32).ravel().tolist() for c in chunks]
        dimension = len(embeddings[0])
        if self._dimension is not None and dimension != self._dimension:
            raise DimensionMismatchError(self._dimension, dimension)

        stored = []
        for chunk, meta in zip(chunks, metadatas):
            record = dict(meta)
            record.update({name: getattr(chunk, name) for name in _CHUNK_FIELDS})
            if chunk.section_label:
                record["section_label"] = chunk.section_label
            stored.append(record)

        resp = self._request(
            "POST",
            f"{self._collections_url}/{col_id}/add",
            json={
                "ids": [c.id for c in chunks],
                "embeddings": embeddings,
                "documents": [c.text for c in chunks],
                "metadatas": stored,
            },
        )
        self._check_dimension(resp, dimension)
        self._dimension = dimension

    def query(
        self,
        query_embedding: np.ndarray,
        n_results: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[VectorHit]:
        """Search by embedding."""
        col_id = self._ensure_collection()
        vector = np.asarray(query_embedding, dtype=np.float32).ravel().tolist()
        if self._dimension is not None and len(vector) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(vector))

        body = {
            "query_embeddings": [vector],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        where = filters.to_chroma_where() if filters else None
        if where:
            body["where"] = where

        resp = self._request("POST", f"{self._collections_url}/{col_id}/query", json=body)
        self._check_dimension(resp, len(vector))

        data = resp.json()
        hits = []

        if data.get("ids") and data["ids"][0]:
            for i, chunk_id in enumerate(data["ids"][0]):
                similarity = 1.0 - data["distances"][0][i]
                if similarity < self._threshold:
                    continue
                meta = data["metadatas"][0][i] or {}
                chunk = Chunk(
                    id=chunk_id,
                    document_id=meta.get("document_id", ""),
                    text=data["documents"][0][i],
                    start_offset=int(meta.get("start_offset", 0)),
                    end_offset=int(meta.get("end_offset", 0)),
                    chunk_index=int(meta.get("chunk_index", i)),
                    section_label=meta.get("section_label"),
                )
                hits.append(VectorHit(chunk=chunk, similarity=similarity, metadata=meta))

        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits

    def delete_document(self, document_id: str) -> int:
        """Delete all chunks of a document."""
        col_id = self._ensure_collection()
        before = self.count()
        resp = self._request(
            "POST",
            f"{self._collections_url}/{col_id}/delete",
            json={"where": {"document_id": document_id}},
        )
        resp.raise_for_status()
        removed = max(0, before - self.count())
        logger.info(f"Deleted {removed} chunks of {document_id}")
        return removed

    def count(self) -> int:
        """Get chunk count."""
        col_id = self._ensure_collection()
        resp = self._request("GET", f"{self._collections_url}/{col_id}/count")
        resp.raise_for_status()
        return int(resp.json())
