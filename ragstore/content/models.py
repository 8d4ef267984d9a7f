"""
SQLAlchemy models for collections and their content items.

Tables:
- rag_collections: named, slug-addressed isolation boundary
- rag_content: one normalized chunk + its embedding vector, owned by a collection

Vectors are stored as JSON-encoded float arrays alongside their dimension so
the dimensionality invariant can be checked without decoding.
"""

import json
from datetime import datetime
from typing import List
from uuid import uuid4

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, JSON,
    ForeignKey, Index,
)
from sqlalchemy.orm import relationship, validates

from ragstore.db import Base
from ragstore.errors import InvalidSlugError


def _new_id() -> str:
    return str(uuid4())


class Collection(Base):
    """
    A named set of content items.

    slug is the external lookup key: unique, case-sensitive and immutable
    once assigned.
    """
    __tablename__ = "rag_collections"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)

    # Opaque to the store, consumed by the generation layer
    system_prompt = Column(Text, nullable=True)
    secondary_prompt = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    items = relationship(
        "ContentItem",
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("slug")
    def _validate_slug(self, key, value):
        if self.slug is not None and value != self.slug:
            raise InvalidSlugError(f"Slug is immutable: {self.slug}")
        return value


class ContentItem(Base):
    __tablename__ = "rag_content"

    id = Column(String(36), primary_key=True, default=_new_id)
    collection_id = Column(
        String(36),
        ForeignKey("rag_collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index = Column(Integer, default=0, nullable=False)
    content = Column(Text, nullable=False)
    content_type = Column(String(20), default="tweet", nullable=False)  # see ContentType

    embedding = Column(Text, nullable=False)  # JSON float array
    embedding_dim = Column(Integer, nullable=False)

    # "metadata" is reserved on declarative classes
    item_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    collection = relationship("Collection", back_populates="items")

    __table_args__ = (
        Index("ix_rag_content_collection_created", "collection_id", "created_at"),
    )

    @property
    def vector(self) -> List[float]:
        return json.loads(self.embedding)
