"""
Authentication-related FastAPI routes (router-only module).

Why:
    The single-page frontend drives the OIDC authorization-code flow itself.
    The backend builds the IdP URLs, performs the confidential code exchange
    (client secret stays server-side) and resolves bearer tokens to a user
    via the userinfo endpoint. No sessions are kept here.

Error shape:
    `{success: false, error: "<message>"}`; `details` carries the IdP body
    when the token endpoint rejects the code.

Security:
    Tokens and the client secret are never logged. Upstream failures are
    logged by exception code only.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from backend.identity_access.domain import UserInfo, normalize_andrew_id
from backend.identity_access.oidc import OIDCClient, UpstreamError

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("cmuinsta.web.auth")

BEARER_PREFIX = "Bearer "

# (status, message) per UpstreamError code for the callback exchange.
_CALLBACK_ERRORS = {
    "token_request_failed": (500, "Failed to exchange code for tokens"),
    "token_exchange_failed": (401, "Token exchange failed"),
    "token_parse_failed": (500, "Failed to parse token response"),
    "userinfo_request_failed": (500, "Failed to fetch user info"),
    "userinfo_rejected": (401, "Invalid or expired token"),
    "userinfo_parse_failed": (500, "Failed to parse user info"),
}

# /me validates a caller-supplied token, so transport errors read differently.
_ME_ERRORS = {
    "userinfo_request_failed": (500, "Failed to validate token"),
    "userinfo_rejected": (401, "Invalid or expired token"),
    "userinfo_parse_failed": (500, "Failed to parse user info"),
}


def _error(message: str, *, status_code: int, **extra: Any) -> JSONResponse:
    body = {"success": False, "error": message}
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


def _upstream_error(exc: UpstreamError, table: dict) -> JSONResponse:
    status_code, message = table.get(exc.code, (500, "Authentication failed"))
    logger.warning("IdP call failed: %s", exc.code)
    if exc.code == "token_exchange_failed":
        return _error(message, status_code=status_code, details=exc.details or "")
    return _error(message, status_code=status_code)


def _oidc(request: Request) -> OIDCClient:
    return request.app.state.oidc


def _is_admin(request: Request, andrew_id: str) -> bool:
    return request.app.state.config.admins.is_admin(andrew_id)


async def _json_object(request: Request) -> dict | None:
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _user_payload(request: Request, user: UserInfo) -> dict:
    return {"user": user.to_public(), "isAdmin": _is_admin(request, user.andrew_id)}


@auth_router.get("/api/auth/login-url")
async def login_url(request: Request):
    """Return the IdP authorization URL for the configured client."""
    return JSONResponse({"success": True, "loginUrl": _oidc(request).build_login_url()})


@auth_router.get("/api/auth/logout-url")
async def logout_url(request: Request):
    """Return the IdP end-session URL; the user lands on the app root afterwards."""
    return JSONResponse({"success": True, "logoutUrl": _oidc(request).build_logout_url()})


@auth_router.post("/api/auth/callback")
async def auth_callback(request: Request):
    """
    Exchange an authorization code for tokens and resolve the user.

    Body: `{code, redirectUri?}`; `redirectUri` overrides the configured one.
    """
    body = await _json_object(request)
    if body is None:
        return _error("Invalid request body", status_code=400)
    code = body.get("code")
    if not isinstance(code, str) or not code:
        return _error("Authorization code is required", status_code=400)
    redirect_uri = body.get("redirectUri")
    if not isinstance(redirect_uri, str):
        redirect_uri = None

    client = _oidc(request)
    try:
        tokens = client.exchange_code_for_tokens(code=code, redirect_uri=redirect_uri or None)
        user = client.fetch_userinfo(tokens.access_token)
    except UpstreamError as exc:
        return _upstream_error(exc, _CALLBACK_ERRORS)

    payload = {"success": True, "accessToken": tokens.access_token, "expiresIn": tokens.expires_in}
    payload.update(_user_payload(request, user))
    logger.info("login completed for %s", user.andrew_id or "(no andrew id)")
    return JSONResponse(payload)


@auth_router.post("/api/auth/check-admin")
async def check_admin(request: Request):
    """Report whether an Andrew ID is on the configured admin list."""
    body = await _json_object(request)
    if body is None:
        return _error("Invalid request body", status_code=400)
    raw = body.get("andrewId")
    if not isinstance(raw, str) or not raw:
        return _error("andrewId is required", status_code=400)
    andrew_id = normalize_andrew_id(raw)
    return JSONResponse({"success": True, "isAdmin": _is_admin(request, andrew_id), "andrewId": andrew_id})


@auth_router.get("/api/auth/me")
async def get_me(request: Request):
    """Resolve the bearer token to the current user via the IdP."""
    header = request.headers.get("authorization") or ""
    if not header.startswith(BEARER_PREFIX):
        return _error("Unauthorized", status_code=401)
    access_token = header[len(BEARER_PREFIX):]
    try:
        user = _oidc(request).fetch_userinfo(access_token)
    except UpstreamError as exc:
        return _upstream_error(exc, _ME_ERRORS)
    payload = {"success": True}
    payload.update(_user_payload(request, user))
    return JSONResponse(payload)
