"""Chunker - splits document text into overlapping, semantically bounded chunks."""

import logging
import re
from typing import Optional

from ..models.document import Chunk

logger = logging.getLogger(__name__)

# Blank lines or a markdown heading marker at line start.
_BOUNDARY_RE = re.compile(r"\n[ \t]*\n\s*|^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
_BREAK_RE = re.compile(r"[.!?](?=\s)|\n")

_MAX_LABEL_CHARS = 120


class Chunker:
    """Section-first chunker with a sentence-aware sliding window."""

    def __init__(
        self,
        max_chunk_chars: int = 1000,
        overlap_chars: int = 200,
        min_chunk_chars: int = 50,
    ):
        """Initialize chunker.

        Args:
            max_chunk_chars: Maximum chunk length in characters.
            overlap_chars: Overlap between consecutive windows of a long section.
            min_chunk_chars: Chunks shorter than this are dropped as noise.
        """
        if max_chunk_chars <= 0:
            raise ValueError("max_chunk_chars must be positive")
        if not 0 <= overlap_chars < max_chunk_chars:
            raise ValueError("overlap_chars must be in [0, max_chunk_chars)")
        if not 0 <= min_chunk_chars < max_chunk_chars:
            raise ValueError("min_chunk_chars must be in [0, max_chunk_chars)")
        self._max = max_chunk_chars
        self._overlap = overlap_chars
        self._min = min_chunk_chars

    def split(self, text: str, document_id: str) -> list[Chunk]:
        """Split text into unembedded chunks.

        Args:
            text: Full document text.
            document_id: Owning document id.

        Returns:
            Chunks in document order. Empty for blank text.
        """
        spans: list[tuple[int, int, Optional[str]]] = []

        for number, (start, end, heading) in enumerate(self._sections(text), 1):
            if end - start <= self._max:
                spans.append((start, end, heading))
                continue
            label = heading or f"Section {number}"
            for w_start, w_end in self._windows(text, start, end):
                spans.append((w_start, w_end, label))

        kept = [s for s in spans if s[1] - s[0] >= self._min]

        if not kept and spans:
            # Short documents are kept whole rather than discarded.
            start, end = _trim(text, spans[0][0], spans[-1][1])
            if end - start <= self._max:
                kept = [(start, end, spans[0][2])]

        chunks = [
            Chunk(
                id=f"{document_id}_chunk_{i}",
                document_id=document_id,
                text=text[start:end],
                start_offset=start,
                end_offset=end,
                chunk_index=i,
                section_label=label,
            )
            for i, (start, end, label) in enumerate(kept)
        ]

        if len(kept) < len(spans):
            logger.debug(f"Dropped {len(spans) - len(kept)} short chunk(s) from {document_id}")
        return chunks

    def _sections(self, text: str) -> list[tuple[int, int, Optional[str]]]:
        """Trimmed section spans with the heading label, if any.

        A heading standing alone before a blank line is joined to the section
        that follows it, which takes its label.
        """
        sections: list[tuple[int, int, Optional[str]]] = []
        pending: Optional[tuple[int, int, Optional[str]]] = None
        pos = 0
        is_heading = False

        for match in [*_BOUNDARY_RE.finditer(text), None]:
            start, end = _trim(text, pos, match.start() if match else len(text))
            if start < end:
                label = _heading_label(text, start, end) if is_heading else None
                if is_heading and "\n" not in text[start:end]:
                    if pending:
                        sections.append(pending)
                    pending = (start, end, label)
                elif pending and not is_heading:
                    sections.append((pending[0], end, pending[2]))
                    pending = None
                else:
                    if pending:
                        sections.append(pending)
                        pending = None
                    sections.append((start, end, label))

            if match is None:
                break
            pos = match.end()
            is_heading = "#" in match.group()

        if pending:
            sections.append(pending)
        return sections

    def _windows(self, text: str, start: int, end: int) -> list[tuple[int, int]]:
        """Sliding windows over an oversized section."""
        windows = []
        pos = start

        while pos < end:
            w_end = min(pos + self._max, end)
            if w_end < end:
                breaks = list(_BREAK_RE.finditer(text[pos:w_end]))
                if breaks:
                    break_at = pos + breaks[-1].end()
                    if break_at - pos > self._max * 0.5:
                        w_end = break_at

            c_start, c_end = _trim(text, pos, w_end)
            if c_end > c_start:
                windows.append((c_start, c_end))

            if w_end >= end:
                break
            next_pos = w_end - self._overlap
            pos = next_pos if next_pos > pos else w_end

        return windows


def _trim(text: str, start: int, end: int) -> tuple[int, int]:
    """Move span edges inward past whitespace."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def _heading_label(text: str, start: int, end: int) -> Optional[str]:
    return text[start:end].split("\n", 1)[0].strip()[:_MAX_LABEL_CHARS] or None
