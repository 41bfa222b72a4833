"""
Minimal OIDC client for the identity provider (Keycloak realm URL as issuer).

Why: Keep web framework independent logic in a separate module. The FastAPI
auth router calls into this client to build login/logout URLs, exchange an
authorization code for tokens (confidential client, secret stays server-side)
and resolve the caller via the userinfo endpoint.

Security: Never log tokens or the client secret. Every outbound call is bounded
by `REQUEST_TIMEOUT_SECONDS`; there are no retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

# Small indirection to ease monkeypatching in tests
import requests as http

from .domain import UserInfo

REQUEST_TIMEOUT_SECONDS = 10
LOGIN_SCOPE = "openid profile email"


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str]):
    return http.post(url, data=data, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)


def http_get(url: str, headers: Dict[str, str]):
    return http.get(url, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)


class UpstreamError(Exception):
    """Identity provider unreachable or answered with an unusable response.

    `code` is one of:
      token_request_failed, token_exchange_failed, token_parse_failed,
      userinfo_request_failed, userinfo_rejected, userinfo_parse_failed
    `details` carries the upstream body for token_exchange_failed.
    """

    def __init__(self, code: str, *, details: Optional[str] = None):
        super().__init__(code)
        self.code = code
        self.details = details


@dataclass(frozen=True)
class OIDCConfig:
    issuer_url: str  # realm URL, e.g., https://idp.example.edu/realms/cmu
    client_id: str
    client_secret: str
    redirect_uri: str  # e.g., https://insta.example.edu/oauth2/callback

    def _endpoint(self, name: str) -> str:
        return f"{self.issuer_url.rstrip('/')}/protocol/openid-connect/{name}"

    @property
    def auth_endpoint(self) -> str:
        return self._endpoint("auth")

    @property
    def token_endpoint(self) -> str:
        return self._endpoint("token")

    @property
    def userinfo_endpoint(self) -> str:
        return self._endpoint("userinfo")

    @property
    def logout_endpoint(self) -> str:
        return self._endpoint("logout")


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    token_type: str = ""
    expires_in: int = 0
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None


class OIDCClient:
    def __init__(self, config: OIDCConfig):
        self.cfg = config

    def build_login_url(self) -> str:
        """Return the authorization URL for the configured client."""
        params = {
            "client_id": self.cfg.client_id,
            "response_type": "code",
            "scope": LOGIN_SCOPE,
            "redirect_uri": self.cfg.redirect_uri,
        }
        return f"{self.cfg.auth_endpoint}?{urlencode(params)}"

    def build_logout_url(self) -> str:
        """Return the end-session URL; the user lands on the app root afterwards."""
        redirect = self.cfg.redirect_uri
        if redirect.endswith("/callback"):
            redirect = redirect[: -len("/callback")]
        params = {
            "client_id": self.cfg.client_id,
            "post_logout_redirect_uri": redirect,
        }
        return f"{self.cfg.logout_endpoint}?{urlencode(params)}"

    def exchange_code_for_tokens(self, *, code: str, redirect_uri: Optional[str] = None) -> TokenSet:
        """Exchange an authorization code for tokens at the token endpoint.

        Raises UpstreamError on transport failure, non-200 or unparsable body.
        """
        data = {
            "grant_type": "authorization_code",
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "code": code,
            "redirect_uri": redirect_uri or self.cfg.redirect_uri,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            resp = http_post(self.cfg.token_endpoint, data=data, headers=headers)
        except http.RequestException as exc:
            raise UpstreamError("token_request_failed") from exc
        if resp.status_code != 200:
            raise UpstreamError("token_exchange_failed", details=getattr(resp, "text", ""))
        try:
            body: Dict[str, Any] = resp.json()
            return TokenSet(
                access_token=str(body["access_token"]),
                token_type=str(body.get("token_type") or ""),
                expires_in=int(body.get("expires_in") or 0),
                refresh_token=body.get("refresh_token"),
                id_token=body.get("id_token"),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamError("token_parse_failed") from exc

    def fetch_userinfo(self, access_token: str) -> UserInfo:
        """Resolve the token owner via the userinfo endpoint.

        A non-200 answer means the token is invalid or expired.
        """
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            resp = http_get(self.cfg.userinfo_endpoint, headers=headers)
        except http.RequestException as exc:
            raise UpstreamError("userinfo_request_failed") from exc
        if resp.status_code != 200:
            raise UpstreamError("userinfo_rejected")
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamError("userinfo_parse_failed") from exc
        if not isinstance(body, dict):
            raise UpstreamError("userinfo_parse_failed")
        return UserInfo.from_claims(body)


__all__ = [
    "REQUEST_TIMEOUT_SECONDS",
    "OIDCClient",
    "OIDCConfig",
    "TokenSet",
    "UpstreamError",
    "http_get",
    "http_post",
]
