"""Text extractor protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class TextExtractorProtocol(Protocol):
    """Protocol for converting uploaded bytes to plain text."""

    def supports(self, mime_hint: str) -> bool:
        """Check whether the mime type or file name is handled."""
        ...

    def extract(self, data: bytes, mime_hint: str) -> str:
        """Extract plain text.

        Args:
            data: Raw file bytes.
            mime_hint: Mime type or file name.

        Returns:
            Extracted text.
        """
        ...
