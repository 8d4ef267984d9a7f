"""
FastAPI endpoints for collections, ingestion and search.

POST   /rag/collections                 - create a collection from an upload
GET    /rag/collections                 - list collections
GET    /rag/collections/{slug}          - get one collection
PATCH  /rag/collections/{slug}          - update name/prompts
POST   /rag/collections/{slug}/deactivate
DELETE /rag/collections/{slug}          - delete collection and its items
POST   /rag/collections/{slug}/ingest   - ingest more text
GET    /rag/collections/{slug}/items    - list items, newest first
POST   /rag/collections/{slug}/search   - similarity search

Errors are mapped to fixed messages; provider and store details stay in the
server log.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from ragstore import config
from ragstore.content.schemas import (
    CollectionOut,
    CollectionUpdate,
    ContentItemOut,
    ContentType,
    IngestReport,
    IngestRequest,
    SearchRequest,
    SearchResponse,
)
from ragstore.content.store import ContentStore
from ragstore.errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    DuplicateSlugError,
    EmbeddingError,
    InvalidContentTypeError,
    InvalidSlugError,
    RagStoreError,
    StoreUnavailableError,
)
from ragstore.ingest.pipeline import IngestionPipeline
from ragstore.retrieval.search import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rag", tags=["rag"])


# ============ DEPENDENCIES ============

def get_store(request: Request) -> ContentStore:
    return request.app.state.store


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search


# ============ ERROR MAPPING ============

def to_http_error(error: RagStoreError) -> HTTPException:
    """Translate a ragstore error into an HTTPException with a safe message."""
    if isinstance(error, (InvalidSlugError, InvalidContentTypeError, DimensionMismatchError)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, CollectionNotFoundError):
        return HTTPException(status_code=404, detail="Collection not found")
    if isinstance(error, DuplicateSlugError):
        return HTTPException(status_code=409, detail="URL path already in use")
    if isinstance(error, EmbeddingError):
        return HTTPException(status_code=502, detail="Embedding provider failed")
    if isinstance(error, StoreUnavailableError):
        return HTTPException(status_code=503, detail="Content store unavailable")
    logger.error(f"Unhandled ragstore error: {error}")
    return HTTPException(status_code=500, detail="Internal error")


# ============ COLLECTIONS ============

@router.post("/collections")
async def create_collection(
    name: str = Form(...),
    slug: str = Form(...),
    content_type: str = Form(ContentType.TWEET.value),
    system_prompt: Optional[str] = Form(None),
    secondary_prompt: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    store: ContentStore = Depends(get_store),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Create a collection and ingest the uploaded content into it.

    Content comes from `file` (UTF-8 text) or, failing that, `text`.
    """
    if not name.strip() or not slug or (file is None and not text):
        raise HTTPException(status_code=400, detail="Missing required fields")

    if file is not None:
        raw = await file.read()
        try:
            raw_text = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 text")
    else:
        raw_text = text

    try:
        parsed_type = ContentType.parse(content_type)
        collection = await asyncio.to_thread(
            store.create_collection,
            name=name,
            slug=slug,
            system_prompt=system_prompt,
            secondary_prompt=secondary_prompt,
        )
        report = await pipeline.ingest(collection.slug, raw_text, parsed_type)
    except RagStoreError as e:
        raise to_http_error(e)

    return {
        "success": report.succeeded_count > 0 or report.total_chunks == 0,
        "collection": CollectionOut.model_validate(collection),
        "url": f"/rag/collections/{collection.slug}",
        "report": report,
    }


@router.get("/collections", response_model=List[CollectionOut])
def list_collections(
    active_only: bool = False,
    store: ContentStore = Depends(get_store),
):
    try:
        return store.list_collections(active_only=active_only)
    except RagStoreError as e:
        raise to_http_error(e)


@router.get("/collections/{slug}", response_model=CollectionOut)
def get_collection(slug: str, store: ContentStore = Depends(get_store)):
    try:
        return store.get_collection_by_slug(slug)
    except RagStoreError as e:
        raise to_http_error(e)


@router.patch("/collections/{slug}", response_model=CollectionOut)
def update_collection(
    slug: str,
    update: CollectionUpdate,
    store: ContentStore = Depends(get_store),
):
    try:
        return store.update_collection(
            slug,
            name=update.name,
            system_prompt=update.system_prompt,
            secondary_prompt=update.secondary_prompt,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RagStoreError as e:
        raise to_http_error(e)


@router.post("/collections/{slug}/deactivate", response_model=CollectionOut)
def deactivate_collection(slug: str, store: ContentStore = Depends(get_store)):
    try:
        return store.deactivate_collection(slug)
    except RagStoreError as e:
        raise to_http_error(e)


@router.delete("/collections/{slug}")
def delete_collection(slug: str, store: ContentStore = Depends(get_store)):
    try:
        collection = store.get_collection_by_slug(slug)
        removed = store.delete_collection(collection.id)
    except RagStoreError as e:
        raise to_http_error(e)
    return {"deleted": slug, "items_removed": removed}


# ============ CONTENT ============

@router.post("/collections/{slug}/ingest", response_model=IngestReport)
async def ingest_content(
    slug: str,
    req: IngestRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    try:
        return await pipeline.ingest(slug, req.text, req.content_type, req.metadata)
    except RagStoreError as e:
        raise to_http_error(e)


@router.get("/collections/{slug}/items", response_model=List[ContentItemOut])
def list_items(slug: str, store: ContentStore = Depends(get_store)):
    try:
        collection = store.get_collection_by_slug(slug)
        return store.list_items(collection.id)
    except RagStoreError as e:
        raise to_http_error(e)


@router.post("/collections/{slug}/search", response_model=SearchResponse)
def search_collection(
    slug: str,
    req: SearchRequest,
    search: SearchService = Depends(get_search_service),
):
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")
    if req.top_k < 1 or req.top_k > config.MAX_TOP_K:
        raise HTTPException(status_code=400, detail=f"top_k must be between 1 and {config.MAX_TOP_K}")

    try:
        results = search.search(slug, req.query, k=req.top_k, threshold=req.threshold)
        total = search.count(slug)
    except RagStoreError as e:
        raise to_http_error(e)

    return SearchResponse(
        collection=slug,
        query=req.query,
        results=results,
        total_searched=total,
    )
