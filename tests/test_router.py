"""
Tests for ragstore/router.py
HTTP surface: status codes, error mapping, request/response shapes.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEmbedder, TEST_DIMENSIONS
from main import create_app
from ragstore.content.store import ContentStore
from ragstore.db import create_db_engine, create_session_factory

TWEETS = "1. Check this out https://x.co @alice\n2. Second one"


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def client(tmp_path, fake_embedder):
    app = create_app(database_url=f"sqlite:///{tmp_path / 'api.db'}", embedder=fake_embedder)
    with TestClient(app) as client:
        yield client


def _create(client, slug="demo", **extra):
    data = {"name": "Demo", "slug": slug, "text": TWEETS}
    data.update(extra)
    return client.post("/rag/collections", data=data)


class TestCreateCollection:

    def test_create_with_text(self, client):
        resp = _create(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["url"] == "/rag/collections/demo"
        assert body["collection"]["slug"] == "demo"
        assert body["report"]["succeeded_count"] == 2

    def test_create_with_file(self, client):
        resp = client.post(
            "/rag/collections",
            data={"name": "Demo", "slug": "from-file"},
            files={"file": ("tweets.txt", TWEETS.encode("utf-8"), "text/plain")},
        )
        assert resp.status_code == 200
        assert resp.json()["report"]["total_chunks"] == 2

    def test_missing_fields(self, client):
        resp = client.post("/rag/collections", data={"name": "Demo", "slug": "demo"})
        assert resp.status_code == 400

    def test_invalid_slug(self, client):
        assert _create(client, slug="bad slug").status_code == 400

    def test_invalid_content_type(self, client):
        assert _create(client, content_type="podcast").status_code == 400

    def test_duplicate_slug(self, client):
        assert _create(client).status_code == 200
        resp = _create(client)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "URL path already in use"

    def test_create_runs_off_event_loop(self, client, monkeypatch):
        store = client.app.state.store
        original = store.create_collection
        loops = []

        def recording_create(**kwargs):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return original(**kwargs)

        monkeypatch.setattr(store, "create_collection", recording_create)

        assert _create(client).status_code == 200
        assert loops == [None]


class TestCollectionEndpoints:

    def test_get_and_list(self, client):
        _create(client)
        assert client.get("/rag/collections/demo").json()["name"] == "Demo"
        assert [c["slug"] for c in client.get("/rag/collections").json()] == ["demo"]

    def test_not_found(self, client):
        assert client.get("/rag/collections/missing").status_code == 404

    def test_update(self, client):
        _create(client)
        resp = client.patch("/rag/collections/demo", json={"system_prompt": "Be brief."})
        assert resp.status_code == 200
        assert resp.json()["system_prompt"] == "Be brief."

    def test_deactivate_blocks_ingest(self, client):
        _create(client)
        assert client.post("/rag/collections/demo/deactivate").json()["is_active"] is False
        resp = client.post("/rag/collections/demo/ingest", json={"text": "1. more"})
        assert resp.status_code == 404

    def test_delete_cascades(self, client):
        _create(client)
        resp = client.delete("/rag/collections/demo")
        assert resp.json() == {"deleted": "demo", "items_removed": 2}
        assert client.get("/rag/collections/demo/items").status_code == 404


class TestContentEndpoints:

    def test_ingest_and_list_items(self, client):
        _create(client)
        resp = client.post(
            "/rag/collections/demo/ingest",
            json={"text": "A longer article body.", "content_type": "article", "metadata": {"author": "bob"}},
        )
        assert resp.status_code == 200
        assert resp.json()["succeeded_count"] == 1

        items = client.get("/rag/collections/demo/items").json()
        assert len(items) == 3
        article = next(i for i in items if i["content_type"] == "article")
        assert article["metadata"] == {"type": "article", "author": "bob"}
        assert "embedding" not in article

    def test_ingest_reports_partial_failure(self, client, fake_embedder):
        _create(client)
        fake_embedder.fail_on = {"beta"}
        resp = client.post("/rag/collections/demo/ingest", json={"text": "1. alpha\n2. beta\n3. gamma"})
        body = resp.json()
        assert resp.status_code == 200
        assert body["succeeded_count"] == 2
        assert body["failed_chunks"][0]["chunk_index"] == 1

    def test_search(self, client):
        _create(client)
        resp = client.post("/rag/collections/demo/search", json={"query": "Check this out", "top_k": 1})
        body = resp.json()
        assert resp.status_code == 200
        assert body["total_searched"] == 2
        assert body["results"][0]["content"] == "Check this out"
        assert body["results"][0]["similarity"] == pytest.approx(1.0)

    def test_search_validation(self, client):
        _create(client)
        assert client.post("/rag/collections/demo/search", json={"query": "  "}).status_code == 400
        assert client.post("/rag/collections/demo/search", json={"query": "x", "top_k": 0}).status_code == 400

    def test_provider_failure_is_opaque(self, client, fake_embedder):
        _create(client)
        fake_embedder.fail_on = {"secret"}
        resp = client.post("/rag/collections/demo/search", json={"query": "secret"})
        assert resp.status_code == 502
        assert resp.json()["detail"] == "Embedding provider failed"


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_store_wired(self, client):
        assert isinstance(client.app.state.store, ContentStore)


class TestStoreUnavailable:

    @pytest.fixture
    def unreachable_engine(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'missing_dir' / 'api.db'}")
        yield engine
        engine.dispose()

    def test_store_error_maps_to_503(self, client, unreachable_engine):
        client.app.state.store = ContentStore(
            create_session_factory(unreachable_engine), dimensions=TEST_DIMENSIONS
        )

        resp = client.get("/rag/collections")

        assert resp.status_code == 503
        assert resp.json() == {"detail": "Content store unavailable"}
        assert "unable to open" not in resp.text

    def test_health_reports_unavailable(self, client, unreachable_engine):
        client.app.state.engine = unreachable_engine
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json() == {"status": "unavailable"}
