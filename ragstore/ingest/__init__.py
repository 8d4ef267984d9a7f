"""
Ingestion: chunk raw text, embed each chunk, store it under a collection.
"""

from .chunker import chunk_content, chunk_text, normalize_whitespace, strip_social_noise
from .pipeline import IngestionPipeline, ingest_text

__all__ = [
    "chunk_content",
    "chunk_text",
    "normalize_whitespace",
    "strip_social_noise",
    "IngestionPipeline",
    "ingest_text",
]
