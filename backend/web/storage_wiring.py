"""
Wiring helpers for the posts repository and the on-disk store.

Why:
    App startup picks the persistence adapter once. With a DATABASE_URL the
    Postgres repo is used; without one (dev only) an in-memory repo keeps the
    API usable for local work. Production refuses to start without a DSN long
    before this point (see `ensure_secure_config_on_startup`).

Logging:
    - Falling back to memory is logged as a warning.
    - Schema preparation failures are logged with the exception class and
      re-raised; a half-migrated table is not something to serve from.
"""
from __future__ import annotations

import logging

from backend.posts.repo_db import DBPostsRepo
from backend.posts.repo_memory import InMemoryPostsRepo
from backend.storage.layout import StorageLayout
from backend.web.config import AppConfig

logger = logging.getLogger("cmuinsta.web")


def build_default_repo(config: AppConfig):
    """Return the posts repository for this process.

    Behavior:
        - DATABASE_URL set -> DBPostsRepo with the canonical schema ensured.
        - DATABASE_URL unset -> InMemoryPostsRepo (dev only).
    """
    if not config.database_url:
        logger.warning("DATABASE_URL not set; using in-memory posts repo (data is lost on restart)")
        return InMemoryPostsRepo()
    repo = DBPostsRepo(dsn=config.database_url)
    try:
        repo.ensure_schema()
    except Exception as exc:
        logger.error("Posts schema preparation failed: %s", exc.__class__.__name__)
        raise
    logger.info("Posts repo wired to Postgres database [%s]", repo.ping())
    return repo


def build_layout(config: AppConfig) -> StorageLayout:
    """Return the store layout rooted at the configured directory (created if absent)."""
    layout = StorageLayout(config.posts_store_dir)
    root = layout.ensure_root()
    logger.info("Posts store root: %s", root)
    return layout


__all__ = ["build_default_repo", "build_layout"]
