"""Document domain models."""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import numpy as np


class DocumentStatus(Enum):
    """Ingestion lifecycle: processing -> ready | error."""
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


CONFIDENTIALITY_LEVELS = ("public", "internal", "confidential")

SOURCE_TYPES = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".txt": "txt",
    ".html": "html",
    ".htm": "html",
    ".md": "md",
    ".markdown": "md",
}


def source_type_for(name: str) -> str:
    """Map file name to source type, defaulting to txt."""
    lower = name.lower()
    for suffix, source_type in SOURCE_TYPES.items():
        if lower.endswith(suffix):
            return source_type
    return "txt"


@dataclass
class DocumentMetadata:
    """Operator-supplied document metadata."""
    author: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    version: Optional[str] = None
    confidentiality: str = "internal"

    @classmethod
    def from_dict(cls, data: dict | None) -> "DocumentMetadata":
        data = dict(data or {})
        known = {k: data.pop(k) for k in list(data) if k in cls.__dataclass_fields__}
        if data:
            raise ValueError(f"Unknown metadata fields: {sorted(data)}")
        meta = cls(**known)
        if meta.confidentiality not in CONFIDENTIALITY_LEVELS:
            raise ValueError(f"Invalid confidentiality: {meta.confidentiality!r}")
        meta.tags = list(meta.tags)
        return meta


@dataclass
class Document:
    """Uploaded document tracked by the engine."""
    id: str
    name: str
    source_type: str
    size_bytes: int
    metadata: DocumentMetadata
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: DocumentStatus = DocumentStatus.PROCESSING
    error_detail: Optional[str] = None
    chunk_count: int = 0

    @property
    def is_ready(self) -> bool:
        return self.status is DocumentStatus.READY

    def index_metadata(self) -> dict:
        """Flat metadata stored with every chunk for filtering."""
        meta = {
            "document_id": self.id,
            "source": self.name,
            "source_type": self.source_type,
            "confidentiality": self.metadata.confidentiality,
            "uploaded_at": self.uploaded_at.timestamp(),
        }
        if self.metadata.department:
            meta["department"] = self.metadata.department
        if self.metadata.category:
            meta["category"] = self.metadata.category
        return meta


@dataclass(frozen=True)
class Chunk:
    """Document chunk for indexing.

    ``text`` is exactly ``document_text[start_offset:end_offset]``.
    """
    id: str
    document_id: str
    text: str
    start_offset: int
    end_offset: int
    chunk_index: int
    section_label: Optional[str] = None
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def estimated_tokens(self) -> int:
        return math.ceil(len(self.text) / 4)

    def with_embedding(self, embedding: np.ndarray) -> "Chunk":
        if self.embedding is not None:
            raise ValueError(f"Chunk {self.id} already has an embedding")
        return replace(self, embedding=embedding)


@dataclass
class VectorHit:
    """Raw vector store match, before joining with its document."""
    chunk: Chunk
    similarity: float
    metadata: dict = field(default_factory=dict)


@dataclass
class SearchResult:
    """Ranked retrieval result."""
    chunk: Chunk
    document: Document
    similarity: float
    relevance_score: float
    context_snippet: str


@dataclass
class RetrievalResponse:
    """Retriever output for the generator and presentation layer."""
    results: list[SearchResult]
    context: str
    sources: list[str]
    embedding_fallback: bool = False
    search_time: float = 0.0
