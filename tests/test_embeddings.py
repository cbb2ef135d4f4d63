from types import SimpleNamespace
from unittest.mock import Mock, patch

import httpx
import numpy as np
import openai
import pytest

from ragengine.core.errors import EmbeddingUnavailableError
from ragengine.infrastructure.embeddings.hashing import HashingEmbedder
from ragengine.infrastructure.embeddings.openai_embedder import OpenAIEmbedder
from ragengine.infrastructure.embeddings.sentence_transformer import SentenceTransformerEmbedder


class TestHashingEmbedder:

    def test_deterministic_unit_vectors(self):
        embedder = HashingEmbedder(64)
        first = embedder.embed_query("Refund window")
        second = HashingEmbedder(64).embed_query("refund   WINDOW")

        assert first.shape == (64,)
        assert np.linalg.norm(first) == pytest.approx(1.0)
        assert float(first @ second) == pytest.approx(1.0)

    def test_empty_text_is_zero_vector(self):
        assert not HashingEmbedder(16).embed_query("").any()

    def test_passages_shape(self):
        embedder = HashingEmbedder(32)
        assert embedder.embed_passages(["a b", "c"]).shape == (2, 32)
        assert embedder.embed_passages([]).shape == (0, 32)

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            HashingEmbedder(0)


class TestSentenceTransformerEmbedder:

    def test_prefixes(self):
        model = Mock()
        model.encode.side_effect = lambda texts, convert_to_numpy: np.ones((len(texts), 4))
        with patch(
            "ragengine.infrastructure.embeddings.sentence_transformer.SentenceTransformer",
            return_value=model,
        ):
            embedder = SentenceTransformerEmbedder("test-model")
            assert embedder.embed_query("refund").shape == (4,)
            embedder.embed_passages(["a", "b"])

        assert model.encode.call_args_list[0].args[0] == ["query: refund"]
        assert model.encode.call_args_list[1].args[0] == ["passage: a", "passage: b"]

    def test_model_load_failure(self):
        with patch(
            "ragengine.infrastructure.embeddings.sentence_transformer.SentenceTransformer",
            side_effect=OSError("not found"),
        ):
            with pytest.raises(EmbeddingUnavailableError):
                SentenceTransformerEmbedder("missing-model").embed_query("refund")


class TestOpenAIEmbedder:

    @pytest.fixture
    def embedder(self):
        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test")
        embedder._client = Mock()
        return embedder

    def test_rows_ordered_by_index(self, embedder):
        embedder._client.embeddings.create.return_value = SimpleNamespace(
            data=[
                SimpleNamespace(index=1, embedding=[0.0, 1.0]),
                SimpleNamespace(index=0, embedding=[1.0, 0.0]),
            ]
        )

        vectors = embedder.embed_passages(["first", "second"])

        assert vectors.tolist() == [[1.0, 0.0], [0.0, 1.0]]

    def test_api_error_mapped(self, embedder):
        embedder._client.embeddings.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        )
        with pytest.raises(EmbeddingUnavailableError):
            embedder.embed_query("refund")
