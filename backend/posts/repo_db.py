"""Postgres-backed repository for posts."""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Sequence

try:  # pragma: no cover -- optional dependency in some environments
    import psycopg

    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from backend.posts.domain import Post

_log = logging.getLogger("cmuinsta.posts")

# Canonical schema. The alter statements migrate tables created by older
# revisions that lacked the moderation flags or the content pointer.
SCHEMA_STATEMENTS: Sequence[str] = (
    """
    create table if not exists posts (
        id serial primary key,
        andrewid varchar(8) not null,
        username varchar(30) not null,
        content text not null default '',
        created_at timestamp default current_timestamp,
        verified boolean not null default false,
        approved boolean not null default false,
        approved_at timestamp default null
    )
    """,
    "alter table posts add column if not exists content text not null default ''",
    "alter table posts add column if not exists verified boolean not null default false",
    "alter table posts add column if not exists approved boolean not null default false",
    "alter table posts add column if not exists approved_at timestamp default null",
    "create index if not exists posts_andrewid_created_at_idx on posts (andrewid, created_at desc)",
)

_SELECT_COLUMNS = "id, andrewid, username, content, created_at, verified, approved"


def _dsn() -> str:
    dsn = (os.getenv("DATABASE_URL") or "").strip()
    if not dsn:
        raise RuntimeError("Database DSN unavailable for posts repo")
    return dsn


def _row_to_post(row: Sequence[Any]) -> Post:
    return Post(
        id=int(row[0]),
        andrew_id=str(row[1]),
        username=str(row[2]),
        content=str(row[3] or ""),
        created_at=row[4],
        verified=bool(row[5]),
        approved=bool(row[6]),
    )


class DBPostsRepo:
    """Persistence adapter used by the posts use cases.

    One short-lived connection per call; psycopg errors propagate to the
    use case, which turns them into StorageError.
    """

    def __init__(self, dsn: Optional[str] = None) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBPostsRepo")
        self._dsn = dsn or _dsn()

    def ping(self) -> str:
        """Return the connected database name (startup diagnostics)."""
        with psycopg.connect(self._dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("select current_database()")
                row = cur.fetchone()
        return str(row[0]) if row else ""

    def ensure_schema(self) -> None:
        """Create or migrate the posts table (idempotent)."""
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                for stmt in SCHEMA_STATEMENTS:
                    cur.execute(stmt)
        _log.info("posts schema initialized")

    # ------------------------------------------------------------------
    def create_post(self, *, andrew_id: str, username: str, content: str) -> int:
        """Insert one post row and return its generated id."""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into posts (andrewid, username, content, created_at, verified, approved)
                    values (%s, %s, %s, now(), false, false)
                    returning id
                    """,
                    (andrew_id, username, content),
                )
                row = cur.fetchone()
        if not row:
            raise RuntimeError("insert returned no id")
        return int(row[0])

    def list_posts_by_andrew_id(self, andrew_id: str) -> List[Post]:
        """Return all posts for `andrew_id`, most recent first."""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_SELECT_COLUMNS}
                      from posts
                     where andrewid = %s
                     order by created_at desc
                    """,
                    (andrew_id,),
                )
                rows = cur.fetchall()
        return [_row_to_post(row) for row in rows]

    def get_post(self, post_id: int) -> Optional[Post]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_SELECT_COLUMNS}
                      from posts
                     where id = %s
                    """,
                    (int(post_id),),
                )
                row = cur.fetchone()
        return _row_to_post(row) if row else None


__all__ = ["DBPostsRepo", "SCHEMA_STATEMENTS", "HAVE_PSYCOPG"]
