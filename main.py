"""
ragstore - FastAPI application.

Builds the engine, content store, embedding client, ingestion pipeline and
search service once at startup and hangs them on app.state; routes receive
them through Depends().
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from ragstore import __version__, config
from ragstore.content.store import ContentStore
from ragstore.db import create_db_engine, create_session_factory, init_db, ping
from ragstore.embeddings.client import EmbeddingClient
from ragstore.ingest.pipeline import IngestionPipeline
from ragstore.retrieval.search import SearchService
from ragstore.router import router as rag_router

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)


def create_app(
    database_url: str = config.DATABASE_URL,
    embedder=None,
) -> FastAPI:
    """
    Application factory.

    embedder defaults to the OpenAI-backed EmbeddingClient; tests pass a fake.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database_url.startswith("sqlite:///./"):
            Path(database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

        engine = create_db_engine(database_url)
        init_db(engine)
        client = embedder if embedder is not None else EmbeddingClient()
        store = ContentStore(create_session_factory(engine), dimensions=client.dimensions)

        app.state.engine = engine
        app.state.store = store
        app.state.pipeline = IngestionPipeline(store, client)
        app.state.search = SearchService(store, client)
        logger.info(f"ragstore {__version__} ready ({config.EMBEDDING_MODEL}, {store.dimensions} dims)")
        yield
        engine.dispose()

    app = FastAPI(
        title="ragstore",
        version=__version__,
        description="Collection-scoped embedding store with similarity search",
        lifespan=lifespan,
    )
    app.include_router(rag_router)

    @app.get("/health")
    def health(request: Request):
        if not ping(request.app.state.engine):
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
