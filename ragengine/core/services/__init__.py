"""Core business services."""
from .chunker import Chunker
from .retriever import Retriever
from .generator import Generator
from .response_cache import ResponseCache
from .chunked_transport import ChunkedTransport, FrameAssembler
from .document_registry import DocumentRegistry
from .rag_engine import EngineStats, RagEngine

__all__ = [
    "Chunker",
    "Retriever",
    "Generator",
    "ResponseCache",
    "ChunkedTransport",
    "FrameAssembler",
    "DocumentRegistry",
    "EngineStats",
    "RagEngine",
]
