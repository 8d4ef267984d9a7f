#!/usr/bin/env python3
"""
Search a collection from the command line.

Usage:
    python scripts/query_collection.py demo "what did they say about pricing?"
    python scripts/query_collection.py demo "launch" --top-k 3 --threshold 0.5
"""

import argparse
import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from ragstore import config
from ragstore.content.store import ContentStore
from ragstore.db import create_db_engine, create_session_factory
from ragstore.embeddings.client import EmbeddingClient
from ragstore.errors import RagStoreError
from ragstore.retrieval.search import SearchService


def main():
    parser = argparse.ArgumentParser(description="Similarity search over a collection")
    parser.add_argument("slug", help="Collection slug")
    parser.add_argument("query", help="Query text")
    parser.add_argument("--top-k", type=int, default=config.DEFAULT_TOP_K)
    parser.add_argument("--threshold", type=float, default=None)
    parser.add_argument("--database-url", default=config.DATABASE_URL)
    args = parser.parse_args()

    engine = create_db_engine(args.database_url)
    search = SearchService(ContentStore(create_session_factory(engine)), EmbeddingClient())

    try:
        results = search.search(args.slug, args.query, k=args.top_k, threshold=args.threshold)
    except (RagStoreError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not results:
        print("No results.")
        return

    for rank, result in enumerate(results, 1):
        print(f"{rank}. [{result.similarity:.4f}] ({result.content_type.value}) {result.content}")


if __name__ == "__main__":
    main()
