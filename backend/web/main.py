"CMU Insta backend"
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from backend.identity_access.oidc import OIDCClient
from backend.web.config import AppConfig, ensure_secure_config_on_startup, load_app_config, mask_secret
from backend.web.routes.admin import admin_router
from backend.web.routes.auth import auth_router
from backend.web.routes.instagram import instagram_router
from backend.web.routes.posts import posts_router
from backend.web.storage_wiring import build_default_repo, build_layout

LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

logger = logging.getLogger("cmuinsta.web")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via CMUINSTA_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CMUINSTA_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()


def _log_startup_config(cfg: AppConfig) -> None:
    logger.info("OIDC configuration:")
    logger.info("  OIDC_ISSUER_URL: %s", cfg.oidc.issuer_url or "(not set)")
    logger.info("  OIDC_CLIENT_ID: %s", cfg.oidc.client_id or "(not set)")
    logger.info("  OIDC_CLIENT_SECRET: %s", mask_secret(cfg.oidc.client_secret))
    logger.info("  OIDC_REDIRECT_URI: %s", cfg.oidc.redirect_uri or "(not set)")
    logger.info("  ADMIN_IDS: %d configured", len(cfg.admins.ids))
    logger.info("Environment: %s", cfg.environment)


def create_app(config: Optional[AppConfig] = None, *, repo=None) -> FastAPI:
    """Build the FastAPI application.

    Why: Tests pass an explicit config (tmp store root, no DSN) and optionally
    a prepared repo; production calls this once at import time with the
    environment-derived config.

    Startup order:
        config -> security guard -> logging -> store root -> repo -> routers.
    """
    cfg = config or load_app_config()
    ensure_secure_config_on_startup(cfg)
    logging.basicConfig(level=cfg.log_level, format=LOG_FORMAT)
    _log_startup_config(cfg)

    app = FastAPI(title="CMU Insta", description="Post submissions backend", version="0.1.0")
    app.state.config = cfg
    app.state.layout = build_layout(cfg)
    app.state.repo = repo if repo is not None else build_default_repo(cfg)
    app.state.oidc = OIDCClient(cfg.oidc)

    @app.middleware("http")
    async def cors(request: Request, call_next):
        # Preflight requests are answered here and never reach a route.
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.get("/api/health")
    async def health_check():
        return JSONResponse({"status": "ok", "message": "Python backend is running"})

    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(admin_router)
    app.include_router(instagram_router)
    return app


def create_app_auth_only(config: Optional[AppConfig] = None) -> FastAPI:
    """Factory returning a lightweight FastAPI app exposing only auth routes.

    Why: Auth contract tests exercise the OIDC flow in isolation without a
    store root or a posts repository.
    """
    cfg = config or load_app_config()
    sub = FastAPI(title="CMU Insta (auth-only)", description="Auth slice", version="0.1.0")
    sub.state.config = cfg
    sub.state.oidc = OIDCClient(cfg.oidc)
    sub.include_router(auth_router)
    return sub


app = create_app()


def run() -> None:
    import uvicorn

    cfg: AppConfig = app.state.config
    logger.info("Server starting on http://localhost:%d", cfg.port)
    uvicorn.run(app, host="0.0.0.0", port=cfg.port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    run()
