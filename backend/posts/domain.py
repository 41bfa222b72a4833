"""
Posts domain types and error taxonomy.

Why:
- Keep the record shape shared by both repositories and the HTTP adapter in
  one module.
- Give the submit pipeline a small set of exceptions that map 1:1 to HTTP
  status codes in the web layer (400 / 404 / 500).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

CAPTION_MAX_LENGTH = 256
MAX_FILE_SLOTS = 10


class ClientInputError(ValueError):
    """Caller supplied missing or invalid input (HTTP 400)."""

    def __init__(self, message: str, *, discard_directory: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.discard_directory = discard_directory


class NotFoundError(LookupError):
    """Requested record does not exist (HTTP 404)."""

    def __init__(self, message: str = "Post not found") -> None:
        super().__init__(message)
        self.message = message


class StorageError(RuntimeError):
    """Filesystem or database failure (HTTP 500).

    The message carries the underlying cause text; callers surface it as-is.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class SubmissionFields:
    andrew_id: str
    name: str
    instagram_username: str
    caption: str


@dataclass
class Post:
    id: int
    andrew_id: str
    username: str
    content: str
    created_at: Optional[datetime]
    verified: bool = False
    approved: bool = False

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "andrewId": self.andrew_id,
            "username": self.username,
            "content": self.content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "verified": bool(self.verified),
            "approved": bool(self.approved),
        }


@dataclass
class PostDetail:
    post: Post
    caption: str = ""
    files: List[str] = field(default_factory=list)

    def to_public(self) -> Dict[str, Any]:
        body = self.post.to_public()
        body["caption"] = self.caption
        body["files"] = list(self.files)
        return body


__all__ = [
    "CAPTION_MAX_LENGTH",
    "MAX_FILE_SLOTS",
    "ClientInputError",
    "NotFoundError",
    "StorageError",
    "SubmissionFields",
    "Post",
    "PostDetail",
]
