"""
Ingestion pipeline.

Runs, for one raw text:
1. Resolve the (active) collection by slug
2. Chunk the text
3. Embed chunks, batch first, falling back to one call per chunk
4. Store each chunk

Steps 3-4 are isolated per chunk: a failing chunk is recorded in the report
and its siblings carry on. Blocking provider/store calls run in worker
threads, at most `concurrency` at a time. Failures are keyed by the chunk's
position in the chunk list, never by completion order.

On cancellation (cancel_event set, or the whole-call timeout elapsing)
chunks already stored stay stored and every chunk that had not reached the
store is reported as failed with reason "cancelled". Chunks already inside
a provider or store call are waited for, so the report always matches what
was written.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, List, Optional

from ragstore import config
from ragstore.content.schemas import ChunkFailure, ContentMetadata, ContentType, IngestReport
from ragstore.content.store import ContentStore
from ragstore.embeddings.client import Embedder
from ragstore.errors import ChunkProcessingError, EmbeddingError, RagStoreError
from ragstore.ingest.chunker import chunk_content

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class IngestionPipeline:
    """Chunk -> embed -> store, with per-chunk failure isolation."""

    def __init__(
        self,
        store: ContentStore,
        embedder: Embedder,
        max_chunk_size: int = config.MAX_CHUNK_SIZE,
        concurrency: int = config.INGEST_CONCURRENCY,
        batch_size: int = config.EMBEDDING_BATCH_SIZE,
        embed_timeout: Optional[float] = config.EMBEDDING_TIMEOUT_SECONDS,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.store = store
        self.embedder = embedder
        self.max_chunk_size = max_chunk_size
        self.concurrency = concurrency
        self.batch_size = batch_size
        self.embed_timeout = embed_timeout

    async def ingest(
        self,
        slug: str,
        raw_text: str,
        content_type=ContentType.TWEET,
        metadata: Optional[ContentMetadata] = None,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = config.INGEST_TIMEOUT_SECONDS,
    ) -> IngestReport:
        """
        Ingest raw text into the collection identified by slug.

        Raises CollectionNotFoundError (unknown or inactive collection) and
        InvalidContentTypeError before any chunk is processed. Per-chunk
        errors never raise; they end up in IngestReport.failed_chunks.
        """
        content_type = ContentType.parse(content_type)
        collection = await asyncio.to_thread(
            self.store.get_collection_by_slug, slug, True
        )

        chunks = chunk_content(raw_text, content_type, self.max_chunk_size)
        base_metadata = self._base_metadata(metadata, content_type)

        logger.info(f"Ingesting {len(chunks)} chunks into {slug}")

        if not chunks:
            return IngestReport(collection_id=collection.id, total_chunks=0, succeeded_count=0)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        # Set when the call stops early; workers check it before storing
        halt = threading.Event()
        semaphore = asyncio.Semaphore(self.concurrency)

        item_ids: Dict[int, str] = {}
        failures: Dict[int, str] = {}

        batch_task = asyncio.create_task(self._embed_batches(chunks, halt, semaphore))
        await self._wait({batch_task}, cancel_event, deadline)
        if not batch_task.done():
            halt.set()
            batch_task.cancel()
            await asyncio.gather(batch_task, return_exceptions=True)
            failures = {index: CANCELLED for index in range(len(chunks))}
        else:
            batch_vectors = batch_task.result()

            tasks: Dict[asyncio.Task, int] = {}
            for index, chunk in enumerate(chunks):
                task = asyncio.create_task(
                    self._process_chunk(
                        index, chunk, batch_vectors.get(index), collection.id,
                        content_type, base_metadata, halt, semaphore,
                    )
                )
                tasks[task] = index

            finished = await self._wait(set(tasks), cancel_event, deadline)
            if len(finished) < len(tasks):
                halt.set()

            # Worker threads cannot be interrupted; an in-flight store may
            # still commit, so every task runs to its real outcome.
            await asyncio.gather(*tasks, return_exceptions=True)

            for task, index in tasks.items():
                try:
                    item_ids[index] = task.result()
                except ChunkProcessingError as e:
                    failures[index] = e.reason

        report = IngestReport(
            collection_id=collection.id,
            total_chunks=len(chunks),
            succeeded_count=len(item_ids),
            failed_chunks=[
                ChunkFailure(chunk_index=i, reason=failures[i]) for i in sorted(failures)
            ],
            item_ids=[item_ids[i] for i in sorted(item_ids)],
        )
        logger.info(
            f"Ingest into {slug} complete: {report.succeeded_count}/{report.total_chunks} stored, "
            f"{len(report.failed_chunks)} failed"
        )
        return report

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _embed_batches(
        self,
        chunks: List[str],
        halt: threading.Event,
        semaphore: asyncio.Semaphore,
    ) -> Dict[int, List[float]]:
        """
        Embed chunks in batches. A failed batch is skipped; its chunks are
        embedded one by one later so the failure is pinned to a chunk.
        """
        vectors: Dict[int, List[float]] = {}
        if self.batch_size <= 1:
            return vectors

        for start in range(0, len(chunks), self.batch_size):
            if halt.is_set():
                break
            batch = chunks[start:start + self.batch_size]
            try:
                async with semaphore:
                    result = await asyncio.to_thread(
                        self.embedder.embed_batch, batch, self.embed_timeout
                    )
            except EmbeddingError as e:
                logger.warning(
                    f"Batch embedding of chunks {start}-{start + len(batch) - 1} failed, "
                    f"falling back to single calls: {e}"
                )
                continue
            for offset, vector in enumerate(result):
                vectors[start + offset] = vector
        return vectors

    async def _process_chunk(
        self,
        index: int,
        chunk: str,
        vector: Optional[List[float]],
        collection_id: str,
        content_type: ContentType,
        metadata: ContentMetadata,
        halt: threading.Event,
        semaphore: asyncio.Semaphore,
    ) -> str:
        """Embed (if needed) and store one chunk. Returns the stored item id."""
        async with semaphore:
            try:
                return await asyncio.to_thread(
                    self._embed_and_store, index, chunk, vector,
                    collection_id, content_type, metadata, halt,
                )
            except ChunkProcessingError:
                raise
            except RagStoreError as e:
                logger.warning(f"Chunk {index} failed: {e}")
                raise ChunkProcessingError(index, f"{type(e).__name__}: {e}") from e
            except Exception as e:
                logger.error(f"Unexpected error on chunk {index}: {e}")
                raise ChunkProcessingError(index, type(e).__name__) from e

    def _embed_and_store(
        self,
        index: int,
        chunk: str,
        vector: Optional[List[float]],
        collection_id: str,
        content_type: ContentType,
        metadata: ContentMetadata,
        halt: threading.Event,
    ) -> str:
        if halt.is_set():
            raise ChunkProcessingError(index, CANCELLED)
        if vector is None:
            vector = self.embedder.embed(chunk, timeout=self.embed_timeout)
        if halt.is_set():
            raise ChunkProcessingError(index, CANCELLED)
        item = self.store.add_content_item(
            collection_id,
            chunk,
            vector,
            content_type=content_type,
            metadata=metadata,
            chunk_index=index,
        )
        return item.id

    @staticmethod
    async def _wait(
        tasks: set,
        cancel_event: Optional[asyncio.Event],
        deadline: Optional[float],
    ) -> set:
        """
        Wait until every task is done, cancel_event is set, or the loop-time
        deadline passes. Returns the set of tasks that finished.
        """
        loop = asyncio.get_running_loop()
        stopper = asyncio.create_task(cancel_event.wait()) if cancel_event else None

        remaining = set(tasks)
        finished = set()
        try:
            while remaining:
                if cancel_event is not None and cancel_event.is_set():
                    break
                wait_for = set(remaining)
                if stopper is not None:
                    wait_for.add(stopper)
                left = None if deadline is None else max(0.0, deadline - loop.time())
                done, _ = await asyncio.wait(
                    wait_for, timeout=left, return_when=asyncio.FIRST_COMPLETED
                )
                if not done:
                    logger.warning("Ingest timed out; cancelling unfinished chunks")
                    break
                done.discard(stopper)
                finished |= done
                remaining -= done
                if stopper is not None and stopper.done():
                    logger.warning("Ingest cancelled; cancelling unfinished chunks")
                    break
        finally:
            if stopper is not None and not stopper.done():
                stopper.cancel()
        return finished

    @staticmethod
    def _base_metadata(
        metadata: Optional[ContentMetadata],
        content_type: ContentType,
    ) -> ContentMetadata:
        if metadata is None:
            metadata = ContentMetadata()
        elif isinstance(metadata, dict):
            metadata = ContentMetadata.model_validate(metadata)
        if metadata.type is None:
            metadata = metadata.model_copy(update={"type": content_type.value})
        return metadata


def ingest_text(
    pipeline: IngestionPipeline,
    slug: str,
    raw_text: str,
    content_type=ContentType.TWEET,
    metadata: Optional[ContentMetadata] = None,
) -> IngestReport:
    """Convenience function for synchronous callers (scripts, CLI)."""
    return asyncio.run(pipeline.ingest(slug, raw_text, content_type, metadata))
