"""
Text normalization and chunking.

Pure and deterministic: the same input and max_chunk_size always produce
the same chunks.
"""

import re
from typing import List

from ragstore import config
from ragstore.content.schemas import ContentType

_WHITESPACE_RE = re.compile(r"\s+")
_URL_RE = re.compile(r"https?://\S+")
_MENTION_RE = re.compile(r"@\w+")

# "1. ", "12. " at the start of a line (numbered tweet exports)
_ORDINAL_RE = re.compile(r"(?m)^[ \t]*\d+\.\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_social_noise(text: str) -> str:
    """Remove URLs and @mentions, then normalize whitespace."""
    text = _URL_RE.sub("", text)
    text = _MENTION_RE.sub("", text)
    return normalize_whitespace(text)


def split_numbered(text: str) -> List[str]:
    """
    Split a numbered export ("1. first\\n2. second") into its entries.

    Text before the first marker is kept as its own entry. Text without any
    marker comes back as a single entry.
    """
    parts = _ORDINAL_RE.split(text)
    return [part for part in parts if part.strip()]


def chunk_text(text: str, max_chunk_size: int = config.MAX_CHUNK_SIZE) -> List[str]:
    """
    Greedily pack whitespace-delimited words into chunks of at most
    max_chunk_size characters.

    A word is never split; a single word longer than the limit becomes its
    own chunk. Empty input yields no chunks.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if not text:
        return []

    chunks = []
    current: List[str] = []
    current_len = 0

    for word in text.split():
        # Length of the chunk if this word (plus a joining space) were added
        candidate_len = current_len + len(word) + (1 if current else 0)
        if current and candidate_len > max_chunk_size:
            chunks.append(" ".join(current))
            current = [word]
            current_len = len(word)
        else:
            current.append(word)
            current_len = candidate_len

    if current:
        chunks.append(" ".join(current))

    return chunks


def chunk_content(
    raw_text: str,
    content_type=ContentType.CUSTOM,
    max_chunk_size: int = config.MAX_CHUNK_SIZE,
) -> List[str]:
    """
    Clean and chunk raw input according to its content type.

    Tweets and threads are split on leading ordinal markers first, and each
    entry has URLs and mentions stripped. Every entry is then packed with
    chunk_text(). Entries left empty after cleaning are dropped.
    """
    content_type = ContentType.parse(content_type)
    if not raw_text:
        return []

    if content_type.is_social:
        entries = [strip_social_noise(entry) for entry in split_numbered(raw_text)]
    else:
        entries = [normalize_whitespace(raw_text)]

    chunks = []
    for entry in entries:
        if entry:
            chunks.extend(chunk_text(entry, max_chunk_size))
    return chunks
