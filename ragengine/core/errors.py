"""Error taxonomy for the RAG engine.

Callers branch on the kind:

- ``InputError``: the request itself is wrong, nothing was created.
- ``DependencyError``: an embedding, LLM or index backend is unreachable,
  rate-limited or too slow; retrying later may succeed.
- ``DimensionMismatchError``: vectors from incompatible embedding models were
  mixed in one index; retrying never helps.
- ``TransportError``: frame delivery failed after the whole-message retry.
"""


class RagError(Exception):
    """Base class for all engine errors."""


class InputError(RagError):
    """Malformed request: empty document, unsupported type or filter."""


class UnsupportedFilterError(InputError):
    """Unknown filter key or invalid filter value."""


class DocumentNotFoundError(InputError):
    """No document with the given id."""


class DependencyError(RagError):
    """External backend failed; the caller decides whether to retry."""


class EmbeddingUnavailableError(DependencyError):
    pass


class LLMUnavailableError(DependencyError):
    pass


class IndexUnavailableError(DependencyError):
    pass


class QueryTimeoutError(DependencyError):
    """Generation did not finish within the caller's deadline."""


class DimensionMismatchError(RagError):
    """Query or chunk vector does not match the index dimension."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Embedding dimension mismatch: index={expected}, got={actual}")
        self.expected = expected
        self.actual = actual


class TransportError(RagError):
    """Frame delivery failed."""


class FrameRejectedError(TransportError):
    """The sink refused a single frame (transient)."""
