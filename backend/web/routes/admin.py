"""Admin and prefrosh placeholder endpoints (static responses, no auth yet)."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

admin_router = APIRouter(tags=["Admin"])


@admin_router.get("/api/admin/dashboard")
async def admin_dashboard():
    return PlainTextResponse("Welcome to the Admin Dashboard")


@admin_router.get("/api/prefrosh/list")
async def prefrosh_list():
    return JSONResponse({"message": "Hello from Python! (Prefrosh Service)", "time": "Now"})
