import asyncio
import threading
import time

import pytest

from ragengine.core.errors import EmbeddingUnavailableError, FrameRejectedError
from ragengine.core.models.answer import Completion
from ragengine.core.services.chunked_transport import ChunkedTransport
from ragengine.core.services.chunker import Chunker
from ragengine.core.services.document_registry import DocumentRegistry
from ragengine.core.services.generator import Generator
from ragengine.core.services.rag_engine import RagEngine
from ragengine.core.services.response_cache import ResponseCache
from ragengine.core.services.retriever import Retriever
from ragengine.infrastructure.embeddings.hashing import HashingEmbedder
from ragengine.infrastructure.text_extractors import CompositeExtractor
from ragengine.infrastructure.vector_stores.memory_store import InMemoryVectorStore

REFUND_POLICY = (
    "Returns policy. The refund window is 30 days. "
    "Items must be unused and in their original packaging."
)


class FakeLLM:
    """Answers with a canned reply and records prompts."""

    def __init__(self, reply: str = "The refund window is 30 days.", delay: float = 0.0):
        self.reply = reply
        self.delay = delay
        self.prompts: list[str] = []

    async def complete(self, prompt, max_tokens=None, temperature=None):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return Completion(
            text=self.reply,
            model="fake-llm",
            prompt_tokens=len(prompt) // 4,
            completion_tokens=len(self.reply) // 4,
            latency=0.01,
            finish_reason="stop",
        )


class BrokenQueryEmbedder(HashingEmbedder):
    """Embeds passages but fails on queries."""

    def embed_query(self, text):
        raise EmbeddingUnavailableError("provider down")


class BrokenEmbedder(HashingEmbedder):

    def embed_query(self, text):
        raise EmbeddingUnavailableError("provider down")

    def embed_passages(self, texts):
        raise EmbeddingUnavailableError("provider down")


class RecordingSink:

    def __init__(self):
        self.frames = []

    async def send_frame(self, frame):
        self.frames.append(frame)


class FlakySink(RecordingSink):
    """Rejects the first ``failures`` frames it sees."""

    def __init__(self, failures: int = 1, fail_at_index: int = 0):
        super().__init__()
        self.failures = failures
        self.fail_at_index = fail_at_index

    async def send_frame(self, frame):
        if self.failures and frame.sequence_index == self.fail_at_index:
            self.failures -= 1
            raise FrameRejectedError("sink busy")
        await super().send_frame(frame)


def build_engine(
    llm=None,
    embedder=None,
    vector_store=None,
    cache=None,
    transport=None,
    max_chunks: int = 5,
    query_timeout: float | None = None,
    embedding_concurrency: int = 2,
) -> RagEngine:
    registry = DocumentRegistry()
    embedder = embedder or HashingEmbedder(256)
    vector_store = vector_store or InMemoryVectorStore(similarity_threshold=0.3)
    return RagEngine(
        extractor=CompositeExtractor(),
        chunker=Chunker(),
        embedder=embedder,
        vector_store=vector_store,
        retriever=Retriever(
            embedder=embedder,
            vector_store=vector_store,
            document_lookup=registry.get,
            max_chunks=max_chunks,
            fallback_embedder=HashingEmbedder,
        ),
        generator=Generator(llm or FakeLLM(), max_chunks=max_chunks),
        cache=cache or ResponseCache(),
        transport=transport or ChunkedTransport(bytes_per_second=0),
        registry=registry,
        embedding_concurrency=embedding_concurrency,
        embedding_batch_size=2,
        query_timeout=query_timeout,
    )


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def engine(llm):
    return build_engine(llm=llm)


class ConcurrencyTrackingEmbedder(HashingEmbedder):
    """Records the peak number of overlapping passage batches."""

    def __init__(self, dimension: int = 256, delay: float = 0.05):
        super().__init__(dimension)
        self.delay = delay
        self.calls = 0
        self.peak = 0
        self._active = 0
        self._lock = threading.Lock()

    def embed_passages(self, texts):
        with self._lock:
            self.calls += 1
            self._active += 1
            self.peak = max(self.peak, self._active)
        try:
            time.sleep(self.delay)
            return super().embed_passages(texts)
        finally:
            with self._lock:
                self._active -= 1
