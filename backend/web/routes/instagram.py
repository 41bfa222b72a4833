"""
Instagram handle check used by the submit form.

Behavior:
    - Missing or malformed usernames are rejected with 400.
    - An inconclusive probe (rate limit, network error, odd status) does not
      block the user: the handle is reported as existing with a note.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend.identity_access import instagram_directory
from backend.identity_access.instagram_directory import ProfileCheckError

instagram_router = APIRouter(tags=["Instagram"])
logger = logging.getLogger("cmuinsta.web.instagram")

UNVERIFIED_MESSAGE = "Could not verify, assuming valid"


@instagram_router.get("/api/instagram/validate")
async def validate_username(username: str | None = None):
    if not username:
        return JSONResponse({"success": False, "message": "Username is required"}, status_code=400)
    if not instagram_directory.is_valid_username(username):
        return JSONResponse(
            {"success": False, "username": username, "exists": False, "message": "Invalid username format"},
            status_code=400,
        )
    try:
        exists = await instagram_directory.profile_exists(username)
    except ProfileCheckError as exc:
        logger.info("instagram probe inconclusive for %s: %s", username, exc.code)
        return JSONResponse(
            {"success": True, "username": username, "exists": True, "message": UNVERIFIED_MESSAGE}
        )
    return JSONResponse({"success": True, "username": username, "exists": exists})
