"""
Posts API: submit endpoint.

Why:
    Exercise the full submit path (multipart parsing -> field rules -> store
    layout -> file persistence -> metadata insert) against a temporary store
    root and the in-memory repository.
"""
from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport

from backend.posts.repo_memory import InMemoryPostsRepo
from backend.web.main import create_app

pytestmark = pytest.mark.anyio("asyncio")

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _fields(**overrides) -> dict:
    data = {
        "andrewId": "abc123",
        "name": "Alex Example",
        "instagramUsername": "alex.example",
        "caption": "hello from campus",
    }
    data.update(overrides)
    return data


def _submission_dirs(root: Path, andrew_id: str) -> list[Path]:
    base = root / andrew_id
    if not base.exists():
        return []
    return [p for p in base.iterdir() if p.is_dir()]


@pytest.fixture
def repo():
    return InMemoryPostsRepo()


@pytest.fixture
def app(app_config, repo):
    return create_app(app_config, repo=repo)


async def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.anyio
async def test_submit_single_png_creates_directory_and_row(app, app_config, repo):
    files = {"file_0": ("photo.png", PNG_BYTES, "image/png")}
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Post submitted successfully with 1 file(s)"
    assert isinstance(body["postId"], int)

    dirs = _submission_dirs(app_config.posts_store_dir, "abc123")
    assert len(dirs) == 1
    directory = dirs[0]
    assert directory.name.isdigit()
    assert sorted(p.name for p in directory.iterdir()) == ["0.png", "caption.txt", "instagram.txt"]
    assert (directory / "0.png").read_bytes() == PNG_BYTES
    assert (directory / "caption.txt").read_text(encoding="utf-8") == "hello from campus"

    stored = repo.get_post(body["postId"])
    assert stored is not None
    assert stored.andrew_id == "abc123"
    assert stored.username == "Alex Example"
    assert stored.content == str(directory)
    assert stored.verified is False and stored.approved is False


@pytest.mark.anyio
async def test_only_allowed_slots_are_renumbered_densely(app, app_config):
    files = {}
    for i in range(7):
        files[f"file_{i}"] = (f"img{i}.png", PNG_BYTES, "image/png")
    for i in range(7, 10):
        files[f"file_{i}"] = (f"notes{i}.txt", b"text", "text/plain")

    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 201
    assert r.json()["message"] == "Post submitted successfully with 7 file(s)"
    directory = _submission_dirs(app_config.posts_store_dir, "abc123")[0]
    media = sorted(p.name for p in directory.iterdir() if p.name not in ("caption.txt", "instagram.txt"))
    assert media == [f"{i}.png" for i in range(7)]


@pytest.mark.anyio
async def test_gaps_between_slots_do_not_leave_gaps_in_names(app, app_config):
    files = {
        "file_2": ("a.JPG", PNG_BYTES, "image/jpeg"),
        "file_5": ("clip.mov", b"movie", "video/quicktime"),
        "file_9": ("blob", b"webm-bytes", "video/webm"),
    }
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 201
    directory = _submission_dirs(app_config.posts_store_dir, "abc123")[0]
    names = sorted(p.name for p in directory.iterdir())
    assert names == ["0.jpg", "1.mov", "2.webm", "caption.txt", "instagram.txt"]


@pytest.mark.anyio
async def test_zero_valid_files_removes_directory(app, app_config, repo):
    files = {"file_0": ("notes.txt", b"text", "text/plain")}
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "At least one image or video is required"}
    assert _submission_dirs(app_config.posts_store_dir, "abc123") == []
    assert repo.posts == {}


@pytest.mark.anyio
async def test_no_file_parts_at_all_is_rejected(app, app_config):
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files={"unrelated": ("x.png", PNG_BYTES, "image/png")})

    assert r.status_code == 400
    assert r.json()["message"] == "At least one image or video is required"
    assert _submission_dirs(app_config.posts_store_dir, "abc123") == []


@pytest.mark.anyio
async def test_caption_length_boundary(app, app_config):
    files = {"file_0": ("photo.png", PNG_BYTES, "image/png")}
    async with (await _client(app)) as c:
        ok = await c.post("/api/posts/submit", data=_fields(caption="x" * 256), files=files)
        too_long = await c.post(
            "/api/posts/submit", data=_fields(andrewId="zed", caption="x" * 257), files=files
        )

    assert ok.status_code == 201
    assert too_long.status_code == 400
    assert too_long.json()["message"] == "Caption exceeds 256 characters"
    assert _submission_dirs(app_config.posts_store_dir, "zed") == []


@pytest.mark.anyio
async def test_leading_at_is_stripped_from_instagram_handle(app, app_config):
    files = {"file_0": ("photo.png", PNG_BYTES, "image/png")}
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(instagramUsername="@alice"), files=files)

    assert r.status_code == 201
    directory = _submission_dirs(app_config.posts_store_dir, "abc123")[0]
    assert (directory / "instagram.txt").read_text(encoding="utf-8") == "alice"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "field,message",
    [
        ("andrewId", "Andrew ID is required"),
        ("name", "Name is required"),
        ("instagramUsername", "Instagram username is required"),
        ("caption", "Caption is required"),
    ],
)
async def test_missing_fields_are_reported_in_order(app, app_config, field, message):
    files = {"file_0": ("photo.png", PNG_BYTES, "image/png")}
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(**{field: "   "}), files=files)

    assert r.status_code == 400
    assert r.json() == {"success": False, "message": message}
    assert not any(app_config.posts_store_dir.iterdir())


@pytest.mark.anyio
async def test_metadata_failure_leaves_directory_and_returns_500(app_config, caplog):
    class _BrokenRepo(InMemoryPostsRepo):
        def create_post(self, *, andrew_id: str, username: str, content: str) -> int:
            raise RuntimeError("db down")

    app = create_app(app_config, repo=_BrokenRepo())
    files = {"file_0": ("photo.png", PNG_BYTES, "image/png")}
    with caplog.at_level("WARNING", logger="cmuinsta.posts"):
        async with (await _client(app)) as c:
            r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Failed to save post to database: db down"
    dirs = _submission_dirs(app_config.posts_store_dir, "abc123")
    assert len(dirs) == 1
    assert (dirs[0] / "0.png").exists()
    assert any("orphaned submission directory" in rec.getMessage() for rec in caplog.records)


@pytest.mark.anyio
async def test_non_multipart_body_is_rejected(app):
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", json=_fields())

    assert r.status_code == 400
    assert r.json()["message"].startswith("Failed to parse form data:")


@pytest.mark.anyio
async def test_malformed_multipart_body_is_rejected(app):
    async with (await _client(app)) as c:
        r = await c.post(
            "/api/posts/submit",
            content=b"this is not multipart",
            headers={"Content-Type": "multipart/form-data"},
        )

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"].startswith("Failed to parse form data:")


@pytest.mark.anyio
async def test_declared_body_over_limit_is_rejected(app_config, repo):
    from dataclasses import replace

    app = create_app(replace(app_config, max_upload_bytes=64), repo=repo)
    files = {"file_0": ("photo.png", b"x" * 1024, "image/png")}
    async with (await _client(app)) as c:
        r = await c.post("/api/posts/submit", data=_fields(), files=files)

    assert r.status_code == 400
    assert r.json()["message"].startswith("Failed to parse form data:")
    assert repo.posts == {}
