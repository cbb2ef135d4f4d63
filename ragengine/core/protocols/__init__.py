"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .vector_store import VectorStoreProtocol
from .llm import LLMProtocol
from .text_extractor import TextExtractorProtocol
from .frame_sink import FrameSinkProtocol

__all__ = [
    "EmbedderProtocol",
    "VectorStoreProtocol",
    "LLMProtocol",
    "TextExtractorProtocol",
    "FrameSinkProtocol",
]
