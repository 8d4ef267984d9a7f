"""
Tests for ragstore/retrieval/search.py
Query-time embedding and ranking against one collection.
"""

import math
from unittest.mock import Mock

import pytest

from conftest import FakeEmbedder, TEST_DIMENSIONS
from ragstore import config
from ragstore.errors import CollectionNotFoundError, DimensionMismatchError, EmbeddingError
from ragstore.retrieval.search import SearchService
from ragstore.retrieval.similarity import full_sort


def _unit(i):
    vec = [0.0] * TEST_DIMENSIONS
    vec[i] = 1.0
    return vec


@pytest.fixture
def populated(store, collection):
    store.add_content_item(collection.id, "first", _unit(0), chunk_index=0)
    store.add_content_item(collection.id, "second", _unit(1), chunk_index=1)
    store.add_content_item(
        collection.id, "mixed", [0.7, 0.7] + [0.0] * (TEST_DIMENSIONS - 2),
        chunk_index=2, metadata={"author": "alice"},
    )
    return collection


class TestSearchByVector:

    def test_ranked_results(self, store, embedder, populated):
        search = SearchService(store, embedder)
        results = search.search_by_vector("demo", _unit(0), k=3)

        assert [r.content for r in results] == ["first", "mixed", "second"]
        assert results[0].similarity == pytest.approx(1.0)
        assert results[2].similarity == pytest.approx(0.0)
        assert results[1].metadata == {"author": "alice"}

    def test_threshold(self, store, embedder, populated):
        search = SearchService(store, embedder)
        results = search.search_by_vector("demo", _unit(0), k=3, threshold=0.5)
        assert [r.content for r in results] == ["first", "mixed"]

    def test_other_collections_not_searched(self, store, embedder, populated):
        other = store.create_collection(name="Other", slug="other")
        store.add_content_item(other.id, "elsewhere", _unit(0))

        results = SearchService(store, embedder).search_by_vector("demo", _unit(0), k=10)
        assert "elsewhere" not in [r.content for r in results]

    def test_wrong_query_dimension(self, store, embedder, populated):
        with pytest.raises(DimensionMismatchError):
            SearchService(store, embedder).search_by_vector("demo", [1.0, 0.0], k=3)

    def test_scores_are_not_rounded(self, store, embedder, populated):
        results = SearchService(store, embedder).search_by_vector("demo", _unit(0), k=3)
        assert results[1].similarity == pytest.approx(1 / math.sqrt(2), rel=1e-12)

    def test_k_above_max_rejected(self, store, embedder, populated):
        with pytest.raises(ValueError):
            SearchService(store, embedder).search_by_vector("demo", _unit(0), k=config.MAX_TOP_K + 1)

    def test_k_at_max_returns_every_candidate(self, store, embedder, populated):
        results = SearchService(store, embedder).search_by_vector("demo", _unit(0), k=config.MAX_TOP_K)
        assert len(results) == 3

    def test_selector_is_pluggable(self, store, embedder, populated):
        default = SearchService(store, embedder).search_by_vector("demo", _unit(1), k=3)
        sorted_ = SearchService(store, embedder, selector=full_sort).search_by_vector("demo", _unit(1), k=3)
        assert default == sorted_


class TestSearch:

    def test_query_is_embedded(self, store, populated):
        embedder = Mock()
        embedder.embed.return_value = _unit(1)

        results = SearchService(store, embedder).search("demo", "what was second?", k=1)

        embedder.embed.assert_called_once_with("what was second?", timeout=None)
        assert results[0].content == "second"

    def test_unknown_collection_skips_embedding(self, store):
        embedder = Mock()
        with pytest.raises(CollectionNotFoundError):
            SearchService(store, embedder).search("missing", "anything")
        embedder.embed.assert_not_called()

    def test_k_above_max_skips_embedding(self, store, populated):
        embedder = Mock()
        with pytest.raises(ValueError):
            SearchService(store, embedder).search("demo", "anything", k=config.MAX_TOP_K + 1)
        embedder.embed.assert_not_called()

    def test_embedding_failure_propagates(self, store, populated):
        embedder = FakeEmbedder(fail_on={"boom"})
        with pytest.raises(EmbeddingError):
            SearchService(store, embedder).search("demo", "boom")

    def test_count(self, store, embedder, populated):
        assert SearchService(store, embedder).count("demo") == 3
