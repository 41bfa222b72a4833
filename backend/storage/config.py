"""
Centralized storage configuration for the posts store.

Intent:
    Provide a single source of truth for the store root default and the
    upload size limit so that the web layer, the layout manager and tests
    agree on the same values.

Behavior:
    - POSTS_STORE_DIR_DEFAULT mirrors the historical location next to the
      backend checkout ("../.posts_store").
    - get_posts_store_dir() reads the POSTS_STORE_DIR override.
    - get_max_upload_bytes() reads MAX_UPLOAD_BYTES, clamped to 100 MiB.

    Both accept an explicit mapping so configuration loading can run against
    a snapshot instead of the live environment.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional


POSTS_STORE_DIR_DEFAULT = "../.posts_store"
MAX_UPLOAD_BYTES_CONTRACT = 100 * 1024 * 1024


def get_posts_store_dir(env: Optional[Mapping[str, str]] = None) -> str:
    """Return the configured store root (not yet resolved to an absolute path).

    Env:
        POSTS_STORE_DIR – optional override; otherwise POSTS_STORE_DIR_DEFAULT.
    """
    env = os.environ if env is None else env
    return (env.get("POSTS_STORE_DIR") or "").strip() or POSTS_STORE_DIR_DEFAULT


def _parse_int_env(env: Mapping[str, str], name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_max_upload_bytes(env: Optional[Mapping[str, str]] = None) -> int:
    """Maximum multipart body size for post submissions (default/clamped 100 MiB)."""
    env = os.environ if env is None else env
    return _parse_int_env(env, "MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES_CONTRACT, contract_max=MAX_UPLOAD_BYTES_CONTRACT)


__all__ = [
    "POSTS_STORE_DIR_DEFAULT",
    "MAX_UPLOAD_BYTES_CONTRACT",
    "get_posts_store_dir",
    "get_max_upload_bytes",
]
