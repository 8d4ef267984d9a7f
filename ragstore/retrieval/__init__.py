from .similarity import cosine_similarity, full_sort, heap_select, top_k
from .search import SearchService

__all__ = [
    "cosine_similarity",
    "full_sort",
    "heap_select",
    "top_k",
    "SearchService",
]
