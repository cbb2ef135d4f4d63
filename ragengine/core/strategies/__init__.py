"""Scoring and filtering strategies."""
from .scoring import KeywordBlendStrategy, ScoringStrategy, keyword_overlap_ratio, query_terms

__all__ = [
    "KeywordBlendStrategy",
    "ScoringStrategy",
    "keyword_overlap_ratio",
    "query_terms",
]
