"""
Embedding generation.
Wraps the external embedding provider behind the Embedder protocol.
"""

from .client import Embedder, EmbeddingClient

__all__ = [
    "Embedder",
    "EmbeddingClient",
]
