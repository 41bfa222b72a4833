from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Protocol

from backend.posts.domain import ClientInputError, NotFoundError, Post, PostDetail, StorageError
from backend.storage.layout import CAPTION_FILENAME

_log = logging.getLogger("cmuinsta.posts")


class PostsReadRepoProtocol(Protocol):
    def list_posts_by_andrew_id(self, andrew_id: str) -> List[Post]:
        ...

    def get_post(self, post_id: int) -> Optional[Post]:
        ...


_POST_ID_RE = re.compile(r"[+-]?[0-9]+")


def parse_post_id(raw: str) -> int:
    """Parse a path segment into a post id; raises ClientInputError otherwise.

    Only ASCII decimal digits with an optional sign are accepted; `int()` alone
    would also take underscores, surrounding whitespace and non-ASCII digits.
    """
    if not isinstance(raw, str) or not _POST_ID_RE.fullmatch(raw):
        raise ClientInputError("Invalid post ID")
    return int(raw)


def read_caption(directory: str) -> str:
    try:
        return (Path(directory) / CAPTION_FILENAME).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def list_manifest(directory: str) -> List[str]:
    """Regular entries of a submission directory except the caption file."""
    try:
        entries = list(Path(directory).iterdir())
    except OSError:
        return []
    return sorted(e.name for e in entries if not e.is_dir() and e.name != CAPTION_FILENAME)


class ListPostsUseCase:
    def __init__(self, repo: PostsReadRepoProtocol) -> None:
        self._repo = repo

    def execute(self, andrew_id: Optional[str]) -> List[Post]:
        """Return all posts of one identity, newest first.

        An empty identity is a ClientInputError rather than an empty list.
        """
        if not andrew_id:
            raise ClientInputError("Andrew ID is required")
        try:
            return self._repo.list_posts_by_andrew_id(andrew_id)
        except Exception as exc:
            raise StorageError(f"Failed to fetch posts: {exc}") from exc


class GetPostUseCase:
    def __init__(self, repo: PostsReadRepoProtocol) -> None:
        self._repo = repo

    def execute(self, post_id: int) -> PostDetail:
        """Return the row plus its caption and file manifest.

        Caption and manifest are best-effort: a missing or unreadable
        directory yields an empty caption and an empty list.
        """
        try:
            post = self._repo.get_post(post_id)
        except Exception as exc:
            raise StorageError(f"Failed to fetch post: {exc}") from exc
        if post is None:
            raise NotFoundError("Post not found")
        return PostDetail(post=post, caption=read_caption(post.content), files=list_manifest(post.content))


__all__ = [
    "PostsReadRepoProtocol",
    "parse_post_id",
    "read_caption",
    "list_manifest",
    "ListPostsUseCase",
    "GetPostUseCase",
]
