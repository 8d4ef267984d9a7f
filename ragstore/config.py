"""
ragstore configuration.

All tunables in one place. Values come from the environment with sensible
defaults; entry points call load_dotenv() before importing this module.
"""

import os
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


# ============================================================================
# DATABASE
# ============================================================================

DATABASE_URL: str = os.getenv("RAGSTORE_DATABASE_URL", "sqlite:///./data/ragstore.db")

# Seconds to wait on a locked/unreachable store before giving up
STORE_TIMEOUT_SECONDS: float = float(os.getenv("RAGSTORE_STORE_TIMEOUT", "15"))

# ============================================================================
# EMBEDDINGS
# ============================================================================

EMBEDDING_MODEL: str = os.getenv("RAGSTORE_EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS: int = int(os.getenv("RAGSTORE_EMBEDDING_DIMENSIONS", "1536"))
EMBEDDING_TIMEOUT_SECONDS: float = float(os.getenv("RAGSTORE_EMBEDDING_TIMEOUT", "30"))
EMBEDDING_BATCH_SIZE: int = 100

# ============================================================================
# CHUNKING
# ============================================================================

# Characters, not tokens
MAX_CHUNK_SIZE: int = int(os.getenv("RAGSTORE_MAX_CHUNK_SIZE", "8000"))

# ============================================================================
# INGESTION
# ============================================================================

INGEST_CONCURRENCY: int = int(os.getenv("RAGSTORE_INGEST_CONCURRENCY", "4"))

# Whole-call deadline; None means no deadline
INGEST_TIMEOUT_SECONDS: Optional[float] = _optional_float("RAGSTORE_INGEST_TIMEOUT")

# ============================================================================
# RETRIEVAL
# ============================================================================

DEFAULT_TOP_K: int = 5
MAX_TOP_K: int = 50

# ============================================================================
# COLLECTIONS
# ============================================================================

SLUG_PATTERN: str = r"^[A-Za-z0-9_-]+$"
SLUG_MAX_LENGTH: int = 255

# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL: str = os.getenv("RAGSTORE_LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
