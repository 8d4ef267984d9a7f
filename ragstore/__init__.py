"""
ragstore - collection-scoped embedding store with similarity search.

Ingests free text (tweets, threads, articles), chunks it, embeds each chunk
through an external provider and stores the vectors under a named collection.
Queries are embedded and ranked against one collection by cosine similarity.

Core API:
    IngestionPipeline.ingest(slug, raw_text, content_type) -> IngestReport
    SearchService.search(slug, query, k) -> List[SearchResult]

HTTP API:
    POST /rag/collections
    POST /rag/collections/{slug}/ingest
    POST /rag/collections/{slug}/search
"""

__version__ = "0.1.0"
