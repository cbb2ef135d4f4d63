"""Retriever - query embedding, vector search, re-ranking and context assembly."""

import logging
import time
from typing import Callable, Optional

from ..models.document import Document, RetrievalResponse, SearchResult
from ..models.filters import SearchFilters
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..strategies.scoring import KeywordBlendStrategy, ScoringStrategy, query_terms

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DIMENSION = 384


class Retriever:
    """Retrieves ranked, document-joined passages for a query."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        document_lookup: Callable[[str], Optional[Document]],
        max_chunks: int = 5,
        fallback_embedder: Callable[[int], EmbedderProtocol] | None = None,
        strategies: list[ScoringStrategy] | None = None,
        snippet_chars: int = 200,
    ):
        """Initialize retriever.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            document_lookup: Resolves a document id to its Document.
            max_chunks: Number of results to return.
            fallback_embedder: Factory building a degraded embedder for a
                given dimension, used when the main embedder fails.
            strategies: Custom scoring strategies.
            snippet_chars: Context snippet length.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._document_lookup = document_lookup
        self._max_chunks = max_chunks
        self._fallback_factory = fallback_embedder
        self._snippet_chars = snippet_chars

        self._strategies = strategies or [KeywordBlendStrategy()]

    @property
    def max_chunks(self) -> int:
        return self._max_chunks

    def _embed_query(self, query: str):
        """Embed query, degrading to the fallback embedder on failure.

        Returns:
            Tuple of (vector, used_fallback).
        """
        try:
            return self._embedder.embed_query(query), False
        except Exception as e:
            if self._fallback_factory is None:
                raise
            dimension = self._vector_store.dimension or DEFAULT_FALLBACK_DIMENSION
            logger.warning(
                f"Embedding provider failed ({e}); using bag-of-words fallback "
                f"(dim={dimension}), retrieval quality is degraded"
            )
            return self._fallback_factory(dimension).embed_query(query), True

    def retrieve(self, query: str, filters: SearchFilters | None = None) -> RetrievalResponse:
        """Retrieve relevant passages.

        Args:
            query: Search query.
            filters: Document metadata predicates.

        Returns:
            Retrieval response; empty results mean no relevant context.

        Raises:
            IndexUnavailableError: Vector backend unreachable.
            DimensionMismatchError: Query vector does not fit the index.
        """
        started = time.perf_counter()

        query_embedding, used_fallback = self._embed_query(query)

        hits = self._vector_store.query(
            query_embedding=query_embedding,
            n_results=self._max_chunks * 2,
            filters=filters,
        )

        terms = query_terms(query)
        results: list[SearchResult] = []
        for hit in hits:
            document = self._document_lookup(hit.chunk.document_id)
            if document is None or not document.is_ready:
                continue
            results.append(
                SearchResult(
                    chunk=hit.chunk,
                    document=document,
                    similarity=hit.similarity,
                    relevance_score=hit.similarity,
                    context_snippet=self._extract_snippet(hit.chunk.text, terms),
                )
            )

        for strategy in self._strategies:
            results = strategy.apply(query, results)

        results = results[: self._max_chunks]
        elapsed = time.perf_counter() - started

        logger.info(
            f"Retrieve: {len(results)}/{len(hits)} passages for '{query[:50]}' "
            f"in {elapsed * 1000:.0f}ms" + (" [fallback embedding]" if used_fallback else "")
        )

        return RetrievalResponse(
            results=results,
            context=self._format_context(results),
            sources=self._get_unique_sources(results),
            embedding_fallback=used_fallback,
            search_time=elapsed,
        )

    def _extract_snippet(self, content: str, terms: list[str]) -> str:
        """Window of the chunk centred on the densest query-term match."""
        length = self._snippet_chars
        if len(content) <= length:
            return content

        content_lower = content.lower()
        best_pos = 0
        best_matches = 0
        starts = list(range(0, len(content) - length, 50)) + [len(content) - length]
        for pos in starts:
            window = content_lower[pos : pos + length]
            matches = sum(1 for t in terms if t in window)
            if matches > best_matches:
                best_matches = matches
                best_pos = pos

        if best_matches == 0:
            return content[:length]

        window = content_lower[best_pos : best_pos + length]
        hit = best_pos + min(window.find(t) for t in terms if t in window)
        start = max(0, min(hit - length // 2, len(content) - length))
        return content[start : start + length]

    def _format_context(self, results: list[SearchResult]) -> str:
        """Format results as labelled context for the LLM."""
        if not results:
            return ""

        parts = []
        for i, r in enumerate(results, 1):
            department = r.document.metadata.department or "Unknown Department"
            parts.append(
                f'[Source {i} from "{r.document.name}" ({department})]:\n{r.context_snippet}'
            )

        return "\n\n".join(parts)

    def _get_unique_sources(self, results: list[SearchResult]) -> list[str]:
        """Get unique source document names."""
        seen = set()
        sources = []
        for r in results:
            if r.document.name not in seen:
                seen.add(r.document.name)
                sources.append(r.document.name)
        return sources
