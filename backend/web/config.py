"""
Configuration and startup security checks for the CMU Insta backend.

Why: Environment variables are read exactly once, at process start, into a
frozen `AppConfig`. Request handlers receive the config through
`request.app.state.config` and never consult the environment themselves.

Permissions: The caller needs no special privileges. `load_app_config` only
reads environment variables; `ensure_secure_config_on_startup` raises
`SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from backend.identity_access.domain import AdminAllowList, parse_admin_ids
from backend.identity_access.oidc import OIDCConfig
from backend.storage.config import get_max_upload_bytes, get_posts_store_dir

DEFAULT_PORT = 8080


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def mask_secret(value: Optional[str]) -> str:
    """Hide most of a secret for logging: `ab****yz`, `****`, or `(not set)`."""
    if not value:
        return "(not set)"
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}****{value[-2:]}"


@dataclass(frozen=True)
class AppConfig:
    environment: str
    database_url: str
    posts_store_dir: Path
    oidc: OIDCConfig
    admins: AdminAllowList = field(default_factory=AdminAllowList)
    max_upload_bytes: int = 100 * 1024 * 1024
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def load_oidc_config(env: Mapping[str, str] | None = None) -> OIDCConfig:
    env = os.environ if env is None else env
    return OIDCConfig(
        issuer_url=(env.get("OIDC_ISSUER_URL") or "").strip(),
        client_id=(env.get("OIDC_CLIENT_ID") or "").strip(),
        client_secret=(env.get("OIDC_CLIENT_SECRET") or "").strip(),
        redirect_uri=(env.get("OIDC_REDIRECT_URI") or "").strip(),
    )


def load_app_config(env: Mapping[str, str] | None = None) -> AppConfig:
    """Build the process-wide configuration from the environment."""
    env = os.environ if env is None else env
    try:
        port = int((env.get("PORT") or "").strip() or DEFAULT_PORT)
    except ValueError:
        port = DEFAULT_PORT
    store_dir = get_posts_store_dir(env)
    return AppConfig(
        environment=(env.get("APP_ENV") or "dev").strip().lower(),
        database_url=(env.get("DATABASE_URL") or "").strip(),
        posts_store_dir=Path(store_dir).resolve(),
        oidc=load_oidc_config(env),
        admins=AdminAllowList(parse_admin_ids(env.get("ADMIN_IDS"))),
        max_upload_bytes=get_max_upload_bytes(env),
        port=port,
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


def ensure_secure_config_on_startup(cfg: AppConfig) -> None:
    """Fail fast on insecure production configuration.

    Development remains permissive (in-memory repo, http issuer).

    Checks in prod/stage:
    - DATABASE_URL must be set and must not disable TLS.
    - OIDC client secret must be set and not a placeholder.
    - OIDC issuer must use https.
    """
    if not cfg.is_prod_like:
        return

    if not cfg.database_url:
        raise SystemExit("Refusing to start: DATABASE_URL is not set in production.")
    if "sslmode=disable" in cfg.database_url:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    secret = cfg.oidc.client_secret
    if not secret or secret.upper().startswith("CHANGE_ME"):
        raise SystemExit("Refusing to start: OIDC_CLIENT_SECRET is unset or a placeholder in production.")

    issuer = cfg.oidc.issuer_url.lower()
    if not issuer.startswith("https://"):
        raise SystemExit("Refusing to start: OIDC_ISSUER_URL must use https in production.")


__all__ = [
    "AppConfig",
    "ensure_secure_config_on_startup",
    "load_app_config",
    "load_oidc_config",
    "mask_secret",
]
