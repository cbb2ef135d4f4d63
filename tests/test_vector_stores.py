from unittest.mock import Mock

import numpy as np
import pytest
import requests

from ragengine.core.errors import DimensionMismatchError, IndexUnavailableError
from ragengine.core.models.document import Chunk
from ragengine.core.models.filters import SearchFilters
from ragengine.infrastructure.vector_stores.chroma_store import ChromaVectorStore
from ragengine.infrastructure.vector_stores.memory_store import InMemoryVectorStore


def chunk(chunk_id: str, document_id: str, vector) -> Chunk:
    return Chunk(
        id=chunk_id,
        document_id=document_id,
        text=f"text of {chunk_id}",
        start_offset=0,
        end_offset=10,
        chunk_index=0,
        embedding=np.asarray(vector, dtype=np.float32),
    )


def response(status: int = 200, body=None, text: str = "") -> Mock:
    resp = Mock(status_code=status, text=text)
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    return resp


class TestInMemoryVectorStore:

    @pytest.fixture
    def store(self):
        store = InMemoryVectorStore(similarity_threshold=0.5)
        store.add(
            [chunk("a", "d1", [1, 0, 0]), chunk("b", "d1", [0.8, 0.6, 0]), chunk("c", "d2", [0, 0, 1])],
            [
                {"document_id": "d1", "department": "Finance"},
                {"document_id": "d1", "department": "Finance"},
                {"document_id": "d2", "department": "HR"},
            ],
        )
        return store

    def test_ranked_by_similarity_above_threshold(self, store):
        hits = store.query(np.array([1.0, 0.0, 0.0]), n_results=5)

        assert [h.chunk.id for h in hits] == ["a", "b"]
        assert hits[0].similarity == pytest.approx(1.0)
        assert hits[1].similarity == pytest.approx(0.8)

    def test_n_results(self, store):
        assert len(store.query(np.array([1.0, 0.0, 0.0]), n_results=1)) == 1

    def test_filters_applied_before_ranking(self, store):
        hits = store.query(np.array([0.0, 0.0, 1.0]), filters=SearchFilters(departments=("Finance",)))
        assert hits == []

    def test_dimension_mismatch(self, store):
        with pytest.raises(DimensionMismatchError):
            store.query(np.array([1.0, 0.0]))
        with pytest.raises(DimensionMismatchError):
            store.add([chunk("d", "d3", [1, 0])], [{"document_id": "d3"}])

    def test_delete_document(self, store):
        assert store.delete_document("d1") == 2
        assert store.count() == 1
        assert store.delete_document("d1") == 0

    def test_chunk_without_embedding_rejected(self):
        store = InMemoryVectorStore()
        bare = Chunk(id="x", document_id="d", text="t", start_offset=0, end_offset=1, chunk_index=0)
        with pytest.raises(ValueError):
            store.add([bare], [{}])

    def test_empty_store(self):
        assert InMemoryVectorStore().query(np.array([1.0, 0.0])) == []


class TestChromaVectorStore:

    @pytest.fixture
    def store(self):
        store = ChromaVectorStore(collection_name="docs", similarity_threshold=0.3)
        store._session = Mock()
        return store

    def test_query_translates_filters_and_distances(self, store):
        store._session.request.side_effect = [
            response(body=[{"name": "docs", "id": "col-1", "dimension": 3}]),
            response(
                body={
                    "ids": [["d1_chunk_0", "d1_chunk_1"]],
                    "documents": [["refund window", "far away"]],
                    "metadatas": [
                        [
                            {"document_id": "d1", "chunk_index": 0, "section_label": "Refunds"},
                            {"document_id": "d1", "chunk_index": 1},
                        ]
                    ],
                    "distances": [[0.1, 0.9]],
                }
            ),
        ]

        hits = store.query(np.array([1.0, 0.0, 0.0]), n_results=4, filters=SearchFilters(departments=("Finance",)))

        method, url = store._session.request.call_args.args
        body = store._session.request.call_args.kwargs["json"]
        assert (method, url.endswith("/collections/col-1/query")) == ("POST", True)
        assert body["where"] == {"department": {"$in": ["Finance"]}}
        assert body["n_results"] == 4
        assert [h.chunk.id for h in hits] == ["d1_chunk_0"]
        assert hits[0].similarity == pytest.approx(0.9)
        assert hits[0].chunk.section_label == "Refunds"

    def test_add_stores_chunk_fields(self, store):
        store._session.request.side_effect = [
            response(body=[{"name": "docs", "id": "col-1"}]),
            response(status=201, body={}),
        ]

        store.add([chunk("d1_chunk_0", "d1", [1, 0, 0])], [{"document_id": "d1", "source": "a.txt"}])

        body = store._session.request.call_args.kwargs["json"]
        assert body["ids"] == ["d1_chunk_0"]
        assert body["metadatas"][0]["source"] == "a.txt"
        assert body["metadatas"][0]["chunk_index"] == 0
        assert store.dimension == 3

    def test_unreachable_backend(self, store):
        store._session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(IndexUnavailableError):
            store.count()

    def test_server_error(self, store):
        store._session.request.side_effect = [
            response(body=[{"name": "docs", "id": "col-1"}]),
            response(status=503, text="unavailable"),
        ]
        with pytest.raises(IndexUnavailableError):
            store.count()

    def test_dimension_rejected_by_server(self, store):
        store._session.request.side_effect = [
            response(body=[{"name": "docs", "id": "col-1"}]),
            response(status=400, text="Collection expecting embedding with dimension of 768"),
        ]
        with pytest.raises(DimensionMismatchError):
            store.query(np.array([1.0, 0.0, 0.0]))
