"""
Pydantic schemas for collections, content items and their metadata.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ragstore.errors import InvalidContentTypeError


class ContentType(str, Enum):
    TWEET = "tweet"
    THREAD = "thread"
    ARTICLE = "article"
    CUSTOM = "custom"

    # Social posts get URL/mention stripping and ordinal splitting
    @property
    def is_social(self) -> bool:
        return self in (ContentType.TWEET, ContentType.THREAD)

    @classmethod
    def parse(cls, value) -> "ContentType":
        """Coerce a string or ContentType, rejecting unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise InvalidContentTypeError(
                f"Unknown content type {value!r} (expected one of: {allowed})"
            ) from None


class Engagement(BaseModel):
    model_config = ConfigDict(extra="allow")

    likes: Optional[int] = None
    retweets: Optional[int] = None
    replies: Optional[int] = None


class ContentMetadata(BaseModel):
    """
    Metadata attached to a content item.

    Known fields are typed; anything else is kept as-is so unknown keys
    survive a store/load round trip.
    """
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    source: Optional[str] = None
    author: Optional[str] = None
    timestamp: Optional[str] = None
    engagement: Optional[Engagement] = None
    context: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CollectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    system_prompt: Optional[str] = None
    secondary_prompt: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    system_prompt: Optional[str] = None
    secondary_prompt: Optional[str] = None


class ContentItemOut(BaseModel):
    """Content item without its vector."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    collection_id: str
    chunk_index: int
    content: str
    content_type: ContentType
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="item_metadata")
    created_at: datetime


class IngestRequest(BaseModel):
    text: str
    content_type: ContentType = ContentType.TWEET
    metadata: Optional[ContentMetadata] = None


class ChunkFailure(BaseModel):
    chunk_index: int
    reason: str


class IngestReport(BaseModel):
    collection_id: str
    total_chunks: int
    succeeded_count: int
    failed_chunks: List[ChunkFailure] = []
    item_ids: List[str] = []


class SearchRequest(BaseModel):
    query: str
    top_k: int = 5
    threshold: Optional[float] = None


class SearchResult(BaseModel):
    """Single search result with similarity score."""
    item_id: str
    content: str
    content_type: ContentType
    metadata: Optional[Dict[str, Any]] = None
    similarity: float  # Cosine similarity (-1..1)


class SearchResponse(BaseModel):
    collection: str
    query: str
    results: List[SearchResult]
    total_searched: int
