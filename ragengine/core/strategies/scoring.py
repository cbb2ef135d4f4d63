
import logging
import re
from abc import ABC, abstractmethod

from ..models.document import SearchResult

logger = logging.getLogger(__name__)

_TERM_RE = re.compile(r"\w+")


def query_terms(query: str) -> list[str]:
    """Unique lower-cased word terms of a query, in order."""
    seen: dict[str, None] = {}
    for term in _TERM_RE.findall(query.lower()):
        seen.setdefault(term, None)
    return list(seen)


def keyword_overlap_ratio(terms: list[str], text: str) -> float:
    """Fraction of terms literally present in text (case-insensitive)."""
    if not terms:
        return 0.0
    text_lower = text.lower()
    return sum(1 for t in terms if t in text_lower) / len(terms)


class ScoringStrategy(ABC):
    """Base class for scoring strategies."""

    @abstractmethod
    def apply(self, query: str, results: list[SearchResult]) -> list[SearchResult]:
        """Apply strategy to results."""
        ...


class KeywordBlendStrategy(ScoringStrategy):
    """Blend vector similarity with literal keyword overlap."""

    def __init__(self, similarity_weight: float = 0.8, keyword_weight: float = 0.2):
        """Initialize strategy.

        Args:
            similarity_weight: Weight of cosine similarity.
            keyword_weight: Weight of the keyword overlap ratio.
        """
        self._similarity_weight = similarity_weight
        self._keyword_weight = keyword_weight

    def apply(self, query: str, results: list[SearchResult]) -> list[SearchResult]:
        """Set relevance scores and sort descending."""
        if not results:
            return results

        terms = query_terms(query)
        for r in results:
            overlap = keyword_overlap_ratio(terms, r.chunk.text)
            score = r.similarity * self._similarity_weight + overlap * self._keyword_weight
            r.relevance_score = min(max(score, 0.0), 1.0)

        results.sort(key=lambda r: r.relevance_score, reverse=True)

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{r.relevance_score:.2f}" for r in results[:3])
            logger.debug(f"Relevance top-3 scores: [{top_scores}]")

        return results
