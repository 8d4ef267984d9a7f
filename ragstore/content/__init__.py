"""
Collections and content items.
Provides the SQLAlchemy models, pydantic schemas and the ContentStore.
"""

from .models import Collection, ContentItem

from .schemas import (
    ContentType,
    ContentMetadata,
    Engagement,
    CollectionOut,
    ContentItemOut,
    IngestReport,
    ChunkFailure,
    SearchResult,
)

from .store import ContentStore, validate_slug

__all__ = [
    # Models
    "Collection",
    "ContentItem",
    # Schemas
    "ContentType",
    "ContentMetadata",
    "Engagement",
    "CollectionOut",
    "ContentItemOut",
    "IngestReport",
    "ChunkFailure",
    "SearchResult",
    # Store
    "ContentStore",
    "validate_slug",
]
