"""Thread-safe registry of documents known to the engine."""

import threading
from typing import Optional

from ..models.document import Document, DocumentStatus


class DocumentRegistry:

    def __init__(self):
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}

    def add(self, document: Document) -> None:
        with self._lock:
            if document.id in self._documents:
                raise ValueError(f"Document {document.id} already registered")
            self._documents[document.id] = document

    def get(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def remove(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.pop(document_id, None)

    def list(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def chunk_count(self) -> int:
        with self._lock:
            return sum(
                d.chunk_count for d in self._documents.values() if d.status is DocumentStatus.READY
            )
