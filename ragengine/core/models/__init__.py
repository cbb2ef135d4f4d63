"""Domain models."""
from .document import (
    Chunk,
    Document,
    DocumentMetadata,
    DocumentStatus,
    RetrievalResponse,
    SearchResult,
    VectorHit,
)
from .answer import Answer, AnswerAnalytics, AnswerMetadata, CachedResponse, Completion
from .filters import SearchFilters
from .frame import Frame

__all__ = [
    "Chunk",
    "Document",
    "DocumentMetadata",
    "DocumentStatus",
    "RetrievalResponse",
    "SearchResult",
    "VectorHit",
    "Answer",
    "AnswerAnalytics",
    "AnswerMetadata",
    "CachedResponse",
    "Completion",
    "SearchFilters",
    "Frame",
]
