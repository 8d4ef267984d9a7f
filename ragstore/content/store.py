"""
Content store: collections and their embedded content items.

Each public operation opens its own session, so concurrent callers (for
example the per-chunk workers of an ingest) never share one. Slug uniqueness
is enforced by the unique constraint on rag_collections.slug; the pre-insert
lookup only produces a friendlier error on the common path.
"""

from __future__ import annotations

import json
import logging
import re
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ragstore import config
from ragstore.content.models import Collection, ContentItem
from ragstore.content.schemas import ContentMetadata, ContentType
from ragstore.errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    DuplicateSlugError,
    InvalidSlugError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(config.SLUG_PATTERN)


def validate_slug(slug: str) -> str:
    """Return slug unchanged, or raise InvalidSlugError."""
    if not isinstance(slug, str) or not slug:
        raise InvalidSlugError("Slug must be a non-empty string")
    if len(slug) > config.SLUG_MAX_LENGTH:
        raise InvalidSlugError(f"Slug longer than {config.SLUG_MAX_LENGTH} characters")
    if not _SLUG_RE.fullmatch(slug):
        raise InvalidSlugError(
            "Invalid slug format. Use only letters, numbers, hyphens, and underscores"
        )
    return slug


class ContentStore:
    """
    Durable mapping from collections to content items and vectors.

    dimensions is fixed for the lifetime of the store; every write is checked
    against it.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        dimensions: int = config.EMBEDDING_DIMENSIONS,
    ):
        self._session_factory = session_factory
        self.dimensions = dimensions

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except OperationalError as e:
            db.rollback()
            logger.error(f"Store unavailable: {e}")
            raise StoreUnavailableError("Content store is unavailable") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ============ COLLECTIONS ============

    def create_collection(
        self,
        name: str,
        slug: str,
        system_prompt: Optional[str] = None,
        secondary_prompt: Optional[str] = None,
        is_active: bool = True,
    ) -> Collection:
        """
        Create a collection.

        Raises:
            InvalidSlugError: slug fails format validation
            DuplicateSlugError: slug already taken (including a concurrent
                creator winning the race)
        """
        validate_slug(slug)
        if not name or not name.strip():
            raise ValueError("Collection name is required")

        with self._session() as db:
            if self._find_by_slug(db, slug) is not None:
                raise DuplicateSlugError(slug)

            collection = Collection(
                name=name.strip(),
                slug=slug,
                system_prompt=system_prompt,
                secondary_prompt=secondary_prompt,
                is_active=is_active,
            )
            db.add(collection)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise DuplicateSlugError(slug) from e
            db.refresh(collection)

        logger.info(f"Created collection {slug} ({collection.id})")
        return collection

    def get_collection_by_slug(self, slug: str, active_only: bool = False) -> Collection:
        """Exact, case-sensitive slug lookup."""
        validate_slug(slug)
        with self._session() as db:
            collection = self._find_by_slug(db, slug)
        if collection is None or (active_only and not collection.is_active):
            raise CollectionNotFoundError(f"Collection not found: {slug}")
        return collection

    def get_collection(self, collection_id: str) -> Collection:
        with self._session() as db:
            collection = db.get(Collection, collection_id)
        if collection is None:
            raise CollectionNotFoundError(f"Collection not found: {collection_id}")
        return collection

    def list_collections(self, active_only: bool = False) -> List[Collection]:
        with self._session() as db:
            query = db.query(Collection)
            if active_only:
                query = query.filter(Collection.is_active.is_(True))
            return query.order_by(Collection.created_at.asc()).all()

    def update_collection(
        self,
        slug: str,
        name: Optional[str] = None,
        system_prompt: Optional[str] = None,
        secondary_prompt: Optional[str] = None,
    ) -> Collection:
        """Update mutable attributes. The slug itself can never change."""
        validate_slug(slug)
        with self._session() as db:
            collection = self._find_by_slug(db, slug)
            if collection is None:
                raise CollectionNotFoundError(f"Collection not found: {slug}")
            if name is not None:
                if not name.strip():
                    raise ValueError("Collection name cannot be blank")
                collection.name = name.strip()
            if system_prompt is not None:
                collection.system_prompt = system_prompt
            if secondary_prompt is not None:
                collection.secondary_prompt = secondary_prompt
            db.commit()
            db.refresh(collection)
            return collection

    def set_active(self, slug: str, active: bool) -> Collection:
        validate_slug(slug)
        with self._session() as db:
            collection = self._find_by_slug(db, slug)
            if collection is None:
                raise CollectionNotFoundError(f"Collection not found: {slug}")
            collection.is_active = active
            db.commit()
            db.refresh(collection)
        logger.info(f"Collection {slug} {'activated' if active else 'deactivated'}")
        return collection

    def deactivate_collection(self, slug: str) -> Collection:
        return self.set_active(slug, False)

    def activate_collection(self, slug: str) -> Collection:
        return self.set_active(slug, True)

    def delete_collection(self, collection_id: str) -> int:
        """
        Physically delete a collection and every item it owns.

        Items are deleted explicitly before the collection in the same
        transaction, so the cascade holds even without FK enforcement.
        Returns the number of items removed.
        """
        with self._session() as db:
            collection = db.get(Collection, collection_id)
            if collection is None:
                raise CollectionNotFoundError(f"Collection not found: {collection_id}")
            removed = db.query(ContentItem).filter(
                ContentItem.collection_id == collection_id
            ).delete(synchronize_session=False)
            db.delete(collection)
            db.commit()

        logger.info(f"Deleted collection {collection_id} and {removed} items")
        return removed

    # ============ CONTENT ITEMS ============

    def add_content_item(
        self,
        collection_id: str,
        text: str,
        vector: Sequence[float],
        content_type=ContentType.TWEET,
        metadata: Optional[ContentMetadata] = None,
        chunk_index: int = 0,
    ) -> ContentItem:
        """
        Store one chunk and its vector.

        Raises:
            DimensionMismatchError: len(vector) != self.dimensions
            InvalidContentTypeError: content_type not in ContentType
            CollectionNotFoundError: unknown collection_id
        """
        content_type = ContentType.parse(content_type)
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))
        if not text or not text.strip():
            raise ValueError("Content text is required")
        if isinstance(metadata, dict):
            metadata = ContentMetadata.model_validate(metadata)

        with self._session() as db:
            if db.get(Collection, collection_id) is None:
                raise CollectionNotFoundError(f"Collection not found: {collection_id}")

            item = ContentItem(
                collection_id=collection_id,
                chunk_index=chunk_index,
                content=text,
                content_type=content_type.value,
                embedding=json.dumps([float(x) for x in vector]),
                embedding_dim=len(vector),
                item_metadata=metadata.to_json() if metadata is not None else None,
            )
            db.add(item)
            try:
                db.commit()
            except IntegrityError as e:
                # FK violation: collection deleted between check and insert
                db.rollback()
                raise CollectionNotFoundError(f"Collection not found: {collection_id}") from e
            db.refresh(item)
            return item

    def list_items(self, collection_id: str) -> List[ContentItem]:
        """Items of a collection, most recent first."""
        with self._session() as db:
            return db.query(ContentItem).filter(
                ContentItem.collection_id == collection_id
            ).order_by(
                ContentItem.created_at.desc(),
                ContentItem.chunk_index.desc(),
            ).all()

    def count_items(self, collection_id: str) -> int:
        with self._session() as db:
            return db.query(ContentItem).filter(
                ContentItem.collection_id == collection_id
            ).count()

    def load_candidates(self, collection_id: str) -> List[Tuple[ContentItem, List[float]]]:
        """
        Every item of a collection with its decoded vector, in insertion order.

        Stored vectors of the wrong dimension indicate corruption and raise.
        """
        with self._session() as db:
            items = db.query(ContentItem).filter(
                ContentItem.collection_id == collection_id
            ).order_by(
                ContentItem.created_at.asc(),
                ContentItem.chunk_index.asc(),
            ).all()

        candidates = []
        for item in items:
            vector = item.vector
            if len(vector) != self.dimensions:
                raise DimensionMismatchError(self.dimensions, len(vector))
            candidates.append((item, vector))
        return candidates

    # ============ HELPERS ============

    @staticmethod
    def _find_by_slug(db: Session, slug: str) -> Optional[Collection]:
        return db.query(Collection).filter(Collection.slug == slug).first()
