class RagStoreError(Exception):
    """Base class for ragstore errors."""


class InvalidSlugError(RagStoreError):
    """Slug is empty, too long, or contains characters outside [A-Za-z0-9_-]."""


class InvalidContentTypeError(RagStoreError):
    pass


class DuplicateSlugError(RagStoreError):
    """A collection with this slug already exists."""

    def __init__(self, slug: str):
        super().__init__(f"Collection slug already in use: {slug}")
        self.slug = slug


class CollectionNotFoundError(RagStoreError):
    pass


class DimensionMismatchError(RagStoreError):
    """Vector length differs from the one required."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class EmbeddingError(RagStoreError):
    """The embedding provider failed (network, quota, malformed response)."""


class StoreUnavailableError(RagStoreError):
    """The durable store could not be reached."""


class ChunkProcessingError(RagStoreError):
    """Embedding or storage failed for a single chunk during ingestion."""

    def __init__(self, chunk_index: int, reason: str):
        super().__init__(f"Chunk {chunk_index} failed: {reason}")
        self.chunk_index = chunk_index
        self.reason = reason
