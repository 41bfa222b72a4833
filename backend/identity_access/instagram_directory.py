"""
Directory adapter for external (Instagram) username lookups.

Why:
    The submit form asks for the submitter's Instagram handle. Before a post
    is accepted the frontend asks whether the handle exists. Instagram has no
    public lookup API, so we probe the public profile page and interpret the
    status code.

Behavior:
    - 200 or a redirect (301/302, private profile behind login) -> exists.
    - 404 -> does not exist.
    - 429 and anything else -> ProfileCheckError; callers degrade gracefully.

Security:
    Server-side only. No cookies or credentials are sent.
"""
from __future__ import annotations

import re

import httpx

PROFILE_URL = "https://www.instagram.com/{username}/"
PROBE_TIMEOUT_SECONDS = 5.0
USERNAME_RE = re.compile(r"^[a-zA-Z0-9._]{1,30}$")

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class ProfileCheckError(Exception):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def is_valid_username(username: str) -> bool:
    return bool(USERNAME_RE.fullmatch(username or ""))


async def _probe_profile(url: str, *, timeout: float) -> int:
    """Fetch the profile page without following redirects (patchable for tests)."""
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=False) as client:
        resp = await client.get(url, headers=_BROWSER_HEADERS)
        return resp.status_code


async def profile_exists(username: str, *, timeout: float = PROBE_TIMEOUT_SECONDS) -> bool:
    """Return whether the public profile page for `username` exists.

    Raises ProfileCheckError when the answer is inconclusive.
    """
    url = PROFILE_URL.format(username=username)
    try:
        status = await _probe_profile(url, timeout=timeout)
    except httpx.HTTPError as exc:
        raise ProfileCheckError("request_failed") from exc
    if status == 200:
        return True
    if status == 404:
        return False
    if status == 429:
        raise ProfileCheckError("rate_limited")
    if status in (301, 302):
        return True
    raise ProfileCheckError(f"unexpected_status_{status}")


__all__ = ["ProfileCheckError", "is_valid_username", "profile_exists", "USERNAME_RE"]
