"""
Embedding client: the only adapter between ragstore and the embedding provider.

Callers depend on the Embedder protocol (embed / embed_batch / dimensions);
EmbeddingClient implements it on top of the OpenAI embeddings endpoint.
Every provider-side problem surfaces as EmbeddingError. No retries here:
retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Protocol, Sequence

from ragstore import config
from ragstore.errors import EmbeddingError

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    dimensions: int

    def embed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        ...

    def embed_batch(self, texts: Sequence[str], timeout: Optional[float] = None) -> List[List[float]]:
        ...


class EmbeddingClient:
    """
    OpenAI-backed embedder.

    The requested output size is passed as `dimensions` so the model output
    always matches the content store's fixed dimensionality.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.EMBEDDING_MODEL,
        dimensions: int = config.EMBEDDING_DIMENSIONS,
        timeout: float = config.EMBEDDING_TIMEOUT_SECONDS,
        client: Any = None,
    ):
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout

        if client is None:
            from openai import OpenAI

            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise EmbeddingError("OPENAI_API_KEY is not set; cannot generate embeddings.")
            # Retries are the caller's decision
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client

    def embed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        """Embed a single text."""
        return self.embed_batch([text], timeout=timeout)[0]

    def embed_batch(self, texts: Sequence[str], timeout: Optional[float] = None) -> List[List[float]]:
        """
        Embed several texts in one request.

        Returns one vector per input, in input order. The call fails as a
        whole: either every vector is returned or EmbeddingError is raised.
        """
        inputs = list(texts)
        if not inputs:
            return []
        for i, text in enumerate(inputs):
            if not isinstance(text, str) or not text.strip():
                raise EmbeddingError(f"Input {i} is empty; nothing to embed")

        try:
            response = self._client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
                encoding_format="float",
                timeout=timeout if timeout is not None else self.timeout,
            )
        except Exception as e:
            logger.error(f"Embedding provider error ({type(e).__name__}): {e}")
            raise EmbeddingError("Failed to generate embeddings") from e

        return self._parse_response(response, len(inputs))

    def _parse_response(self, response: Any, expected_count: int) -> List[List[float]]:
        data = getattr(response, "data", None)
        if not data or len(data) != expected_count:
            got = len(data) if data else 0
            logger.error(f"Embedding response had {got} vectors, expected {expected_count}")
            raise EmbeddingError("Malformed embedding response")

        # The API reports an index per vector; don't rely on list order
        ordered = sorted(data, key=lambda item: getattr(item, "index", 0))
        vectors = []
        for item in ordered:
            vector = getattr(item, "embedding", None)
            if not isinstance(vector, list) or len(vector) != self.dimensions:
                size = len(vector) if isinstance(vector, list) else None
                logger.error(f"Embedding of size {size}, expected {self.dimensions}")
                raise EmbeddingError("Malformed embedding response")
            vectors.append([float(x) for x in vector])
        return vectors
