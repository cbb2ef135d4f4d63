"""RAG engine - public façade over ingestion, query and delivery."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ..errors import DocumentNotFoundError, InputError, QueryTimeoutError
from ..models.answer import Answer
from ..models.document import (
    Chunk,
    Document,
    DocumentMetadata,
    DocumentStatus,
    source_type_for,
)
from ..models.filters import SearchFilters
from ..protocols.embedder import EmbedderProtocol
from ..protocols.frame_sink import FrameSinkProtocol
from ..protocols.text_extractor import TextExtractorProtocol
from ..protocols.vector_store import VectorStoreProtocol
from .chunked_transport import ChunkedTransport, new_message_id
from .chunker import Chunker
from .document_registry import DocumentRegistry
from .generator import Generator
from .response_cache import ResponseCache
from .retriever import Retriever

logger = logging.getLogger(__name__)


@dataclass
class EngineStats:
    document_count: int
    chunk_count: int
    cache_entries: int


def new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:16]}"


class RagEngine:
    """Document ingestion and grounded question answering.

    Documents move ``processing -> ready`` or ``processing -> error``. Chunks
    reach the vector store only after every embedding succeeded, so queries
    never see a partially indexed document.
    """

    def __init__(
        self,
        extractor: TextExtractorProtocol,
        chunker: Chunker,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        retriever: Retriever,
        generator: Generator,
        cache: ResponseCache,
        transport: ChunkedTransport,
        registry: DocumentRegistry,
        embedding_concurrency: int = 4,
        embedding_batch_size: int = 16,
        query_timeout: float | None = None,
    ):
        """Initialize engine.

        Args:
            extractor: Bytes to text.
            chunker: Text to chunks.
            embedder: Passage embedding service.
            vector_store: Vector store.
            retriever: Query-side retrieval; must resolve documents via ``registry``.
            generator: Answer generation.
            cache: Response cache.
            transport: Chunked delivery of answers.
            registry: Document registry shared with the retriever.
            embedding_concurrency: Max concurrent embedding calls.
            embedding_batch_size: Passages per embedding call.
            query_timeout: Default generation timeout in seconds.
        """
        if embedding_concurrency <= 0 or embedding_batch_size <= 0:
            raise ValueError("embedding_concurrency and embedding_batch_size must be positive")
        self._extractor = extractor
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store
        self._retriever = retriever
        self._generator = generator
        self._cache = cache
        self._transport = transport
        self._registry = registry
        self._embedding_concurrency = embedding_concurrency
        self._embedding_batch_size = embedding_batch_size
        self._query_timeout = query_timeout

    # Ingestion

    def _resolve_hint(self, name: str, mime_hint: Optional[str]) -> str:
        if mime_hint and self._extractor.supports(mime_hint):
            return mime_hint
        if self._extractor.supports(name):
            return name
        raise InputError(f"Unsupported file type: {mime_hint or name}")

    async def add_document(
        self,
        name: str,
        data: bytes,
        metadata: DocumentMetadata | dict | None = None,
        mime_hint: Optional[str] = None,
    ) -> Document:
        """Ingest a document.

        Args:
            name: File name.
            data: Raw file bytes.
            metadata: Document metadata.
            mime_hint: Mime type; the file name is used if absent or unknown.

        Returns:
            The ready document.

        Raises:
            InputError: Empty, unsupported or unreadable document; nothing is created.
            DependencyError: Embedding or index backend failed; the document
                is kept with status ``error``.
        """
        if not data:
            raise InputError(f"Document {name!r} is empty")

        if not isinstance(metadata, DocumentMetadata):
            try:
                metadata = DocumentMetadata.from_dict(metadata)
            except (TypeError, ValueError) as e:
                raise InputError(f"Invalid metadata: {e}") from e

        hint = self._resolve_hint(name, mime_hint)
        try:
            text = await asyncio.to_thread(self._extractor.extract, data, hint)
        except Exception as e:
            raise InputError(f"Could not extract text from {name!r}: {e}") from e

        document_id = new_document_id()
        chunks = self._chunker.split(text, document_id)
        if not chunks:
            raise InputError(f"Document {name!r} has no indexable text")

        document = Document(
            id=document_id,
            name=name,
            source_type=source_type_for(name),
            size_bytes=len(data),
            metadata=metadata,
        )
        self._registry.add(document)
        logger.info(f"Ingesting {name} as {document_id}: {len(chunks)} chunks")

        try:
            embedded = await self._embed_chunks(chunks)
            metas = [document.index_metadata() for _ in embedded]
            await asyncio.to_thread(self._vector_store.add, embedded, metas)
        except (Exception, asyncio.CancelledError) as e:
            document.status = DocumentStatus.ERROR
            document.error_detail = str(e) or type(e).__name__
            logger.error(f"Ingestion of {name} ({document_id}) failed: {document.error_detail}")
            raise

        document.chunk_count = len(embedded)
        document.status = DocumentStatus.READY
        logger.info(f"Document {name} ({document_id}) ready with {len(embedded)} chunks")
        return document

    async def _embed_chunks(self, chunks: list[Chunk]) -> list[Chunk]:
        """Embed chunks in batches with bounded concurrency, keeping order."""
        semaphore = asyncio.Semaphore(self._embedding_concurrency)
        size = self._embedding_batch_size
        batches = [chunks[i : i + size] for i in range(0, len(chunks), size)]

        async def embed_batch(batch: list[Chunk]) -> list[Chunk]:
            async with semaphore:
                vectors = await asyncio.to_thread(
                    self._embedder.embed_passages, [c.text for c in batch]
                )
            vectors = np.asarray(vectors)
            if vectors.shape[0] != len(batch):
                raise ValueError(f"Embedder returned {vectors.shape[0]} vectors for {len(batch)} passages")
            return [chunk.with_embedding(vector) for chunk, vector in zip(batch, vectors)]

        embedded_batches = await asyncio.gather(*(embed_batch(b) for b in batches))
        return [chunk for batch in embedded_batches for chunk in batch]

    async def remove_document(self, document_id: str) -> None:
        """Delete a document and its vectors.

        Raises:
            DocumentNotFoundError: Unknown id.
            InputError: Document is still processing.
        """
        document = self._registry.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        if document.status is DocumentStatus.PROCESSING:
            raise InputError(f"Document {document_id} is still processing")

        removed = await asyncio.to_thread(self._vector_store.delete_document, document_id)
        self._registry.remove(document_id)
        self._cache.clear()
        logger.info(f"Removed {document.name} ({document_id}), {removed} chunks")

    def get_document(self, document_id: str) -> Optional[Document]:
        return self._registry.get(document_id)

    def list_documents(self) -> list[Document]:
        return self._registry.list()

    def stats(self) -> EngineStats:
        return EngineStats(
            document_count=self._registry.count(),
            chunk_count=self._registry.chunk_count(),
            cache_entries=len(self._cache),
        )

    # Query

    @staticmethod
    def _coerce_filters(filters: SearchFilters | dict[str, Any] | None) -> SearchFilters | None:
        if filters is None or isinstance(filters, SearchFilters):
            return filters
        return SearchFilters.from_dict(filters)

    async def query(
        self,
        question: str,
        filters: SearchFilters | dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Answer:
        """Answer a question from the indexed documents.

        Args:
            question: User question.
            filters: Document metadata predicates.
            timeout: Generation timeout; engine default if None.

        Returns:
            Answer. Without relevant context, the fixed no-information answer.

        Raises:
            InputError: Blank question or unsupported filter.
            DependencyError: Embedding/index/LLM outage or timeout.
        """
        if not question or not question.strip():
            raise InputError("Question is empty")
        filters = self._coerce_filters(filters)

        key = self._cache.make_key(question, filters)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info(f"Cache hit for '{question[:50]}'")
            return cached.answer.as_cache_hit()

        retrieval = await asyncio.to_thread(self._retriever.retrieve, question, filters)

        timeout = self._query_timeout if timeout is None else timeout
        try:
            answer = await asyncio.wait_for(self._generator.generate(question, retrieval), timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {timeout}s for '{question[:50]}'")
            raise QueryTimeoutError(f"Generation exceeded {timeout}s") from e

        if answer.has_information and not retrieval.embedding_fallback:
            self._cache.put(key, answer)
        return answer

    async def ask_and_deliver(
        self,
        question: str,
        sink: FrameSinkProtocol,
        message_id: Optional[str] = None,
        filters: SearchFilters | dict[str, Any] | None = None,
    ) -> tuple[Answer, str]:
        """Answer a question and stream the answer to a frame sink.

        Returns:
            Tuple of (answer, delivered message id).

        Raises:
            TransportError: Delivery failed after retry.
        """
        answer = await self.query(question, filters)
        delivered_id = await self._transport.send(message_id or new_message_id(), answer.answer, sink)
        return answer, delivered_id
