"""Generator - grounded prompt assembly and LLM call."""

import logging
import time

from ..models.answer import Answer, AnswerAnalytics, AnswerMetadata
from ..models.document import RetrievalResponse, SearchResult
from ..protocols.llm import LLMProtocol

logger = logging.getLogger(__name__)

NO_INFORMATION_ANSWER = (
    "I don't have any relevant information in my knowledge base to answer that question. "
    "Please try rephrasing your question or contact support for assistance."
)

UNRELATED_ANSWER = "I don't have information about that in the provided documents."

PROMPT_WITH_CONTEXT = """You are a helpful assistant answering questions about the organisation's documents.

Context from the documents:

{context}

---
Question: {question}

Rules:
- Use ONLY the context above as the source of facts. Do not add anything from general knowledge.
- Keep facts, numbers and terms exactly as they appear in the context.
- Answer in 2-3 short sentences of natural prose. Avoid bullet points and lists.
- If the context only partly answers the question, give what it contains and stop.
- If the question is unrelated to the context, reply exactly with this sentence: {unrelated}"""

_QUESTION_WORDS = ("who", "what", "when", "where", "why")
_REQUEST_PHRASES = (
    "tell me",
    "explain",
    "describe",
    "show me",
    "do you know",
    "can you tell me",
    "do you have",
    "have you",
)


def classify_query(query: str) -> str:
    """Rough query type for analytics."""
    lower = query.lower()
    if any(w in lower for w in _QUESTION_WORDS):
        return "question"
    if any(p in lower for p in _REQUEST_PHRASES):
        return "information_request"
    return "general_query"


def assess_response_quality(confidence: float) -> str:
    if confidence > 0.8:
        return "high"
    if confidence > 0.5:
        return "medium"
    return "low"


class Generator:
    """Builds the grounded prompt and calls the LLM."""

    def __init__(
        self,
        llm: LLMProtocol,
        max_chunks: int = 5,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        """Initialize generator.

        Args:
            llm: LLM client.
            max_chunks: Retrieval result cap, used for confidence.
            max_tokens: Response token limit passed to the LLM.
            temperature: Sampling temperature passed to the LLM.
        """
        self._llm = llm
        self._max_chunks = max_chunks
        self._max_tokens = max_tokens
        self._temperature = temperature

    def build_prompt(self, question: str, context: str) -> str:
        return PROMPT_WITH_CONTEXT.format(
            context=context, question=question, unrelated=UNRELATED_ANSWER
        )

    def confidence(self, results: list[SearchResult]) -> float:
        """avg_similarity * 0.7 + source coverage * 0.3."""
        if not results:
            return 0.0
        avg_similarity = sum(r.similarity for r in results) / len(results)
        coverage = min(len(results) / self._max_chunks, 1.0)
        return avg_similarity * 0.7 + coverage * 0.3

    def _analytics(self, question: str, results: list[SearchResult], confidence: float) -> AnswerAnalytics:
        document_types: list[str] = []
        departments: list[str] = []
        for r in results:
            if r.document.source_type not in document_types:
                document_types.append(r.document.source_type)
            department = r.document.metadata.department
            if department and department not in departments:
                departments.append(department)
        return AnswerAnalytics(
            query_type=classify_query(question),
            document_types=document_types,
            departments=departments,
            response_quality=assess_response_quality(confidence),
        )

    async def generate(self, question: str, retrieval: RetrievalResponse) -> Answer:
        """Generate a grounded answer.

        Args:
            question: User question.
            retrieval: Retriever output.

        Returns:
            Answer. Without results, the fixed no-information answer
            (the LLM is not called).

        Raises:
            LLMUnavailableError: Propagated unchanged from the LLM client.
        """
        results = retrieval.results
        metadata = AnswerMetadata(
            total_chunks=len(results),
            search_time=retrieval.search_time,
            embedding_fallback=retrieval.embedding_fallback,
        )

        if not results:
            logger.info(f"No context for '{question[:50]}', replying with no-information answer")
            return Answer(
                answer=NO_INFORMATION_ANSWER,
                sources=[],
                confidence=0.0,
                metadata=metadata,
                analytics=AnswerAnalytics(query_type=classify_query(question)),
            )

        prompt = self.build_prompt(question, retrieval.context)
        confidence = self.confidence(results)

        started = time.perf_counter()
        completion = await self._llm.complete(
            prompt, max_tokens=self._max_tokens, temperature=self._temperature
        )
        elapsed = time.perf_counter() - started

        metadata.processing_time = completion.latency or elapsed
        metadata.tokens_used = completion.total_tokens
        metadata.model = completion.model

        logger.info(
            f"Generated answer: {completion.total_tokens} tokens, "
            f"{metadata.processing_time:.2f}s, confidence={confidence:.2f}"
        )

        return Answer(
            answer=completion.text.strip(),
            sources=results,
            confidence=confidence,
            metadata=metadata,
            analytics=self._analytics(question, results, confidence),
        )
