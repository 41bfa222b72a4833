"""In-memory posts repository for local offline work and tests."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from backend.posts.domain import Post


class InMemoryPostsRepo:
    def __init__(self) -> None:
        self.posts: Dict[int, Post] = {}
        self._next_id = 1

    def ensure_schema(self) -> None:
        return None

    def create_post(self, *, andrew_id: str, username: str, content: str) -> int:
        pid = self._next_id
        self._next_id += 1
        self.posts[pid] = Post(
            id=pid,
            andrew_id=andrew_id,
            username=username,
            content=content,
            created_at=datetime.now(),
        )
        return pid

    def list_posts_by_andrew_id(self, andrew_id: str) -> List[Post]:
        items = [p for p in self.posts.values() if p.andrew_id == andrew_id]
        items.sort(key=lambda p: (p.created_at or datetime.min, p.id), reverse=True)
        return items

    def get_post(self, post_id: int) -> Optional[Post]:
        return self.posts.get(int(post_id))


__all__ = ["InMemoryPostsRepo"]
