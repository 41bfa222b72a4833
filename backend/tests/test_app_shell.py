"""
Application shell: health, CORS middleware, static stubs and repo wiring.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from backend.posts.repo_memory import InMemoryPostsRepo
from backend.web.main import CORS_HEADERS, create_app

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def app(app_config):
    return create_app(app_config, repo=InMemoryPostsRepo())


async def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.anyio
async def test_health(app):
    async with (await _client(app)) as c:
        r = await c.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "message": "Python backend is running"}


@pytest.mark.anyio
async def test_cors_headers_on_every_response(app):
    async with (await _client(app)) as c:
        ok = await c.get("/api/health")
        missing = await c.get("/api/does-not-exist")
        bad = await c.get("/api/posts/list")
    for r in (ok, missing, bad):
        for name, value in CORS_HEADERS.items():
            assert r.headers[name] == value
    assert missing.status_code == 404
    assert bad.status_code == 400


@pytest.mark.anyio
async def test_options_short_circuits_any_path(app):
    async with (await _client(app)) as c:
        r = await c.options("/api/posts/submit")
        unknown = await c.options("/no/such/route")
    assert r.status_code == 200
    assert unknown.status_code == 200
    assert r.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS, PUT, DELETE"
    assert r.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


@pytest.mark.anyio
async def test_admin_dashboard_and_prefrosh_stubs(app):
    async with (await _client(app)) as c:
        dash = await c.get("/api/admin/dashboard")
        pre = await c.get("/api/prefrosh/list")
    assert dash.status_code == 200
    assert dash.text == "Welcome to the Admin Dashboard"
    assert pre.json() == {"message": "Hello from Python! (Prefrosh Service)", "time": "Now"}


def test_store_root_created_and_memory_repo_without_dsn(app_config):
    app = create_app(app_config)
    assert app_config.posts_store_dir.is_dir()
    assert isinstance(app.state.repo, InMemoryPostsRepo)


def test_db_repo_wired_when_dsn_set(app_config, monkeypatch, caplog):
    from dataclasses import replace

    from backend.posts import repo_db
    from backend.web.storage_wiring import build_default_repo
    from utils.fake_psycopg import install_fake_psycopg

    table = install_fake_psycopg(monkeypatch, repo_db)
    with caplog.at_level("INFO", logger="cmuinsta.web"):
        repo = build_default_repo(replace(app_config, database_url="postgresql://fake/db"))
    assert isinstance(repo, repo_db.DBPostsRepo)
    assert table.executed and table.executed[0].startswith("create table if not exists posts")
    assert table.executed[-1] == "select current_database()"
    assert any("[cmuinsta]" in rec.getMessage() for rec in caplog.records)


def test_startup_log_masks_secret(app_config, caplog):
    with caplog.at_level("INFO", logger="cmuinsta.web"):
        create_app(app_config, repo=InMemoryPostsRepo())
    text = "\n".join(rec.getMessage() for rec in caplog.records)
    assert "s3****ue" in text
    assert "s3cr3t-value" not in text
