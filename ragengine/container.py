import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


def _build_embedder(settings: Settings):
    backend = settings.embedding_backend
    if backend == "sentence_transformer":
        from .infrastructure.embeddings.sentence_transformer import (
            SentenceTransformerEmbedder,
        )

        return SentenceTransformerEmbedder(settings.embedding_model)
    if backend == "openai":
        from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(
            model=settings.embedding_model,
            api_key=settings.embedding_api_key,
            base_url=settings.embedding_base_url,
            azure_endpoint=settings.azure_endpoint or None,
            api_version=settings.azure_api_version,
        )
    if backend == "hashing":
        from .infrastructure.embeddings.hashing import HashingEmbedder

        return HashingEmbedder(settings.embedding_dimension)
    raise ValueError(f"Unknown embedding backend: {backend}")


def _build_vector_store(settings: Settings):
    backend = settings.vector_backend
    if backend == "memory":
        from .infrastructure.vector_stores.memory_store import InMemoryVectorStore

        return InMemoryVectorStore(similarity_threshold=settings.similarity_threshold)
    if backend == "chroma":
        from .infrastructure.vector_stores.chroma_store import ChromaVectorStore

        return ChromaVectorStore(
            host=settings.chroma_host,
            port=settings.chroma_port,
            collection_name=settings.chroma_collection,
            similarity_threshold=settings.similarity_threshold,
        )
    raise ValueError(f"Unknown vector backend: {backend}")


def _build_llm(settings: Settings):
    from .infrastructure.llm.openai_client import AzureOpenAIClient, OpenAICompatibleClient

    provider = settings.llm_provider
    if provider == "openai":
        return OpenAICompatibleClient(
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    if provider == "azure":
        return AzureOpenAIClient(
            endpoint=settings.azure_endpoint,
            deployment=settings.llm_model,
            api_key=settings.llm_api_key,
            api_version=settings.azure_api_version,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    raise ValueError(f"Unknown LLM provider: {provider}")


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.text_extractor import TextExtractorProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.chunked_transport import ChunkedTransport
    from .core.services.chunker import Chunker
    from .core.services.document_registry import DocumentRegistry
    from .core.services.generator import Generator
    from .core.services.rag_engine import RagEngine
    from .core.services.response_cache import ResponseCache
    from .core.services.retriever import Retriever
    from .infrastructure.embeddings.hashing import HashingEmbedder
    from .infrastructure.text_extractors import CompositeExtractor

    container = Container()

    container.register(EmbedderProtocol, lambda: _build_embedder(settings), singleton=True)
    container.register(VectorStoreProtocol, lambda: _build_vector_store(settings), singleton=True)
    container.register(LLMProtocol, lambda: _build_llm(settings), singleton=True)
    container.register(TextExtractorProtocol, CompositeExtractor, singleton=True)
    container.register(DocumentRegistry, DocumentRegistry, singleton=True)

    container.register(
        Chunker,
        lambda: Chunker(
            max_chunk_chars=settings.max_chunk_chars,
            overlap_chars=settings.chunk_overlap_chars,
            min_chunk_chars=settings.min_chunk_chars,
        ),
        singleton=True,
    )

    container.register(
        Retriever,
        lambda: Retriever(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            document_lookup=container.resolve(DocumentRegistry).get,
            max_chunks=settings.max_chunks_per_query,
            fallback_embedder=HashingEmbedder,
        ),
        singleton=True,
    )

    container.register(
        Generator,
        lambda: Generator(
            llm=container.resolve(LLMProtocol),
            max_chunks=settings.max_chunks_per_query,
        ),
        singleton=True,
    )

    container.register(
        ResponseCache,
        lambda: ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        ),
        singleton=True,
    )

    container.register(
        ChunkedTransport,
        lambda: ChunkedTransport(
            max_frame_bytes=settings.max_frame_bytes,
            max_answer_bytes=settings.max_answer_bytes,
            bytes_per_second=settings.frame_bytes_per_second,
        ),
        singleton=True,
    )

    container.register(
        RagEngine,
        lambda: RagEngine(
            extractor=container.resolve(TextExtractorProtocol),
            chunker=container.resolve(Chunker),
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            retriever=container.resolve(Retriever),
            generator=container.resolve(Generator),
            cache=container.resolve(ResponseCache),
            transport=container.resolve(ChunkedTransport),
            registry=container.resolve(DocumentRegistry),
            embedding_concurrency=settings.embedding_concurrency,
            embedding_batch_size=settings.embedding_batch_size,
            query_timeout=settings.query_timeout_seconds,
        ),
        singleton=True,
    )

    logger.info(
        f"Container configured: embeddings={settings.embedding_backend}, "
        f"index={settings.vector_backend}, llm={settings.llm_provider}"
    )
    return container
