"""Answer and LLM completion models."""
from dataclasses import dataclass, field, replace
from typing import Optional

from .document import SearchResult


@dataclass
class Completion:
    """Normalized LLM result, whatever the provider."""
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency: float = 0.0
    finish_reason: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class AnswerMetadata:
    total_chunks: int = 0
    search_time: float = 0.0
    processing_time: float = 0.0
    tokens_used: int = 0
    model: str = "unknown"
    cache_hit: bool = False
    embedding_fallback: bool = False


@dataclass
class AnswerAnalytics:
    query_type: str = "general_query"
    document_types: list[str] = field(default_factory=list)
    departments: list[str] = field(default_factory=list)
    response_quality: str = "low"  # "high" | "medium" | "low"


@dataclass
class Answer:
    """Grounded answer returned by the engine."""
    answer: str
    sources: list[SearchResult]
    confidence: float
    metadata: AnswerMetadata = field(default_factory=AnswerMetadata)
    analytics: AnswerAnalytics = field(default_factory=AnswerAnalytics)

    @property
    def has_information(self) -> bool:
        return bool(self.sources)

    def as_cache_hit(self) -> "Answer":
        return replace(self, metadata=replace(self.metadata, cache_hit=True))


@dataclass(frozen=True)
class CachedResponse:
    cache_key: str
    answer: Answer
    created_at: float
