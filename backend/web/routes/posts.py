"""
Posts API routes: submit, list by Andrew ID, fetch one.

Why:
    Thin FastAPI adapter over the posts use cases. Parsing the multipart body
    and mapping errors to HTTP lives here; validation, layout, persistence and
    metadata recording live in `backend.posts`.

Error mapping:
    - ClientInputError -> 400 {success:false, message}
    - NotFoundError    -> 404 {success:false, message}
    - StorageError     -> 500 {success:false, message}
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from backend.posts.domain import ClientInputError, NotFoundError, StorageError
from backend.posts.usecases import (
    GetPostUseCase,
    ListPostsUseCase,
    SubmissionTracker,
    SubmitPostUseCase,
    parse_post_id,
)

posts_router = APIRouter(tags=["Posts"])
logger = logging.getLogger("cmuinsta.web.posts")


def _failure(message: str, *, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, ClientInputError):
        return _failure(str(exc), status_code=400)
    if isinstance(exc, NotFoundError):
        return _failure(str(exc), status_code=404)
    logger.error("posts request failed: %s", exc)
    return _failure(str(exc), status_code=500)


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _parts_size(form: Any) -> int:
    total = 0
    for _, value in form.multi_items():
        if isinstance(value, str):
            total += len(value.encode("utf-8"))
        else:
            total += int(getattr(value, "size", 0) or 0)
    return total


@posts_router.post("/api/posts/submit")
async def submit_post(request: Request):
    """
    Accept a multipart post submission.

    Form fields:
        andrewId, name, instagramUsername, caption (text), file_0..file_9 (files)

    Responses:
        201 {success:true, message, postId}; 400/500 {success:false, message}
    """
    limit = request.app.state.config.max_upload_bytes
    tracker = SubmissionTracker()

    content_type = (request.headers.get("content-type") or "").lower()
    if not content_type.startswith("multipart/form-data"):
        tracker.fail(ClientInputError("not multipart"))
        return _failure(
            "Failed to parse form data: request Content-Type isn't multipart/form-data", status_code=400
        )

    declared = _declared_length(request)
    if declared is not None and declared > limit:
        tracker.fail(ClientInputError("body too large"))
        return _failure("Failed to parse form data: request body exceeds upload limit", status_code=400)

    try:
        form = await request.form()
    except Exception as exc:
        reason = getattr(exc, "detail", None) or exc
        tracker.fail(ClientInputError(str(reason)))
        return _failure(f"Failed to parse form data: {reason}", status_code=400)

    try:
        if _parts_size(form) > limit:
            tracker.fail(ClientInputError("body too large"))
            return _failure("Failed to parse form data: request body exceeds upload limit", status_code=400)

        usecase = SubmitPostUseCase(request.app.state.repo, request.app.state.layout)
        try:
            result = usecase.execute(form, tracker=tracker)
        except (ClientInputError, StorageError) as exc:
            return _error_response(exc)
    finally:
        await form.close()

    return JSONResponse(
        {"success": True, "message": result.message, "postId": result.post_id},
        status_code=201,
    )


# Registered before /api/posts/{post_id} so "list" is not taken for an id.
@posts_router.get("/api/posts/list")
async def list_posts(request: Request, andrewId: str | None = None):
    """List posts of one Andrew ID, newest first."""
    try:
        posts = ListPostsUseCase(request.app.state.repo).execute(andrewId)
    except (ClientInputError, StorageError) as exc:
        return _error_response(exc)
    items = [p.to_public() for p in posts]
    return JSONResponse({"success": True, "posts": items, "count": len(items)})


@posts_router.get("/api/posts/{post_id}")
async def get_post(request: Request, post_id: str):
    """Fetch one post with its caption and file manifest."""
    try:
        detail = GetPostUseCase(request.app.state.repo).execute(parse_post_id(post_id))
    except (ClientInputError, NotFoundError, StorageError) as exc:
        return _error_response(exc)
    return JSONResponse({"success": True, "post": detail.to_public()})
