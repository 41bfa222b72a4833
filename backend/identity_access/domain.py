"""
Identity domain types and simple helpers.

Why:
- Keep the Andrew ID normalization in one place (lower-case, trimmed) so the
  callback, /me and the admin check agree.
- The admin check is pure set membership over configuration; no lookups.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping


def normalize_andrew_id(value: str | None) -> str:
    return (value or "").strip().lower()


def parse_admin_ids(raw: str | None) -> frozenset[str]:
    """Parse a comma-separated ADMIN_IDS value; blank entries are ignored."""
    if not raw:
        return frozenset()
    return frozenset(i for i in (normalize_andrew_id(part) for part in str(raw).split(",")) if i)


@dataclass(frozen=True)
class AdminAllowList:
    ids: frozenset[str] = frozenset()

    @classmethod
    def of(cls, ids: Iterable[str]) -> "AdminAllowList":
        return cls(frozenset(i for i in (normalize_andrew_id(x) for x in ids) if i))

    def is_admin(self, andrew_id: str | None) -> bool:
        key = normalize_andrew_id(andrew_id)
        return bool(key) and key in self.ids


@dataclass(frozen=True)
class UserInfo:
    sub: str = ""
    email: str = ""
    email_verified: bool = False
    preferred_username: str = ""
    given_name: str = ""
    family_name: str = ""
    name: str = ""

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "UserInfo":
        def _s(key: str) -> str:
            value = claims.get(key)
            return str(value) if value is not None else ""

        return cls(
            sub=_s("sub"),
            email=_s("email"),
            email_verified=bool(claims.get("email_verified")),
            preferred_username=_s("preferred_username"),
            given_name=_s("given_name"),
            family_name=_s("family_name"),
            name=_s("name"),
        )

    @property
    def andrew_id(self) -> str:
        return normalize_andrew_id(self.preferred_username)

    def to_public(self) -> dict:
        return {
            "andrewId": self.andrew_id,
            "email": self.email,
            "name": self.name,
            "givenName": self.given_name,
        }


__all__ = ["AdminAllowList", "UserInfo", "normalize_andrew_id", "parse_admin_ids"]
