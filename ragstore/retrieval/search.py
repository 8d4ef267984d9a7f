"""
Query surface: embed a query and rank one collection's items against it.
"""

import logging
from typing import List, Optional, Sequence

from ragstore import config
from ragstore.content.schemas import SearchResult
from ragstore.content.store import ContentStore
from ragstore.embeddings.client import Embedder
from ragstore.retrieval.similarity import Selector, heap_select, top_k

logger = logging.getLogger(__name__)


def _check_k(k: int) -> None:
    if k > config.MAX_TOP_K:
        raise ValueError(f"k must be at most {config.MAX_TOP_K}, got {k}")


class SearchService:
    """Similarity search over the items of a single collection."""

    def __init__(
        self,
        store: ContentStore,
        embedder: Embedder,
        selector: Selector = heap_select,
    ):
        self.store = store
        self.embedder = embedder
        self.selector = selector

    def search(
        self,
        slug: str,
        query: str,
        k: int = config.DEFAULT_TOP_K,
        threshold: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Embed query text and return the k most similar items.

        Embedding failures propagate as EmbeddingError; the caller decides
        whether to retry.
        """
        # Validate and resolve first so a bad request never costs an embedding call
        _check_k(k)
        self.store.get_collection_by_slug(slug)
        query_vector = self.embedder.embed(query, timeout=timeout)
        return self.search_by_vector(slug, query_vector, k=k, threshold=threshold)

    def search_by_vector(
        self,
        slug: str,
        vector: Sequence[float],
        k: int = config.DEFAULT_TOP_K,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Rank the collection's items against a query vector.

        Returns min(k, qualifying candidates) results with raw cosine scores.
        Raises ValueError when k exceeds config.MAX_TOP_K; k <= 0 yields [].
        """
        _check_k(k)
        collection = self.store.get_collection_by_slug(slug)
        candidates = self.store.load_candidates(collection.id)
        ranked = top_k(vector, candidates, k, threshold=threshold, selector=self.selector)

        logger.debug(f"Search in {slug}: {len(candidates)} candidates, {len(ranked)} results")

        return [
            SearchResult(
                item_id=item.id,
                content=item.content,
                content_type=item.content_type,
                metadata=item.item_metadata,
                similarity=score,
            )
            for item, score in ranked
        ]

    def count(self, slug: str) -> int:
        collection = self.store.get_collection_by_slug(slug)
        return self.store.count_items(collection.id)
