#!/usr/bin/env python3
"""
Ingest a text file into a collection.

Usage:
    python scripts/ingest_file.py demo tweets.txt
    python scripts/ingest_file.py demo article.txt --type article --name "Demo"
"""

import argparse
import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from ragstore import config
from ragstore.content.schemas import ContentType
from ragstore.content.store import ContentStore
from ragstore.db import create_db_engine, create_session_factory, init_db
from ragstore.embeddings.client import EmbeddingClient
from ragstore.errors import CollectionNotFoundError, RagStoreError
from ragstore.ingest.pipeline import IngestionPipeline, ingest_text


def main():
    parser = argparse.ArgumentParser(description="Ingest a text file into a collection")
    parser.add_argument("slug", help="Collection slug (created if missing)")
    parser.add_argument("path", help="UTF-8 text file to ingest")
    parser.add_argument("--name", help="Collection name when creating (default: slug)")
    parser.add_argument(
        "--type",
        default=ContentType.TWEET.value,
        choices=[t.value for t in ContentType],
        help="Content type of the file",
    )
    parser.add_argument(
        "--max-chunk-size",
        type=int,
        default=config.MAX_CHUNK_SIZE,
        help="Maximum characters per chunk",
    )
    parser.add_argument("--database-url", default=config.DATABASE_URL)
    args = parser.parse_args()

    path = Path(args.path)
    if not path.is_file():
        print(f"Error: File not found: {path}")
        sys.exit(1)

    engine = create_db_engine(args.database_url)
    init_db(engine)
    store = ContentStore(create_session_factory(engine))

    try:
        try:
            store.get_collection_by_slug(args.slug)
        except CollectionNotFoundError:
            store.create_collection(name=args.name or args.slug, slug=args.slug)
            print(f"Created collection: {args.slug}")

        pipeline = IngestionPipeline(store, EmbeddingClient(), max_chunk_size=args.max_chunk_size)
        report = ingest_text(pipeline, args.slug, path.read_text(encoding="utf-8"), args.type)
    except RagStoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print()
    print("Ingest Complete!")
    print(f"  Chunks: {report.total_chunks}")
    print(f"  Stored: {report.succeeded_count}")
    for failure in report.failed_chunks:
        print(f"  Failed chunk {failure.chunk_index}: {failure.reason}")

    sys.exit(0 if not report.failed_chunks else 2)


if __name__ == "__main__":
    main()
