"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors).
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Module-level `backend.web.main.app` is built at import time; keep it away
# from a developer's real store root and database.
os.environ["POSTS_STORE_DIR"] = tempfile.mkdtemp(prefix="cmuinsta-posts-")
os.environ.pop("DATABASE_URL", None)
os.environ.pop("APP_ENV", None)

# Ensure `backend.*` and `utils.*` are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven configuration that may leak across tests.

    Why:
        Config tests set APP_ENV/ADMIN_IDS/etc. through monkeypatch; app
        factories called without an explicit config would otherwise pick up
        a developer shell's values.
    """
    for var in (
        "APP_ENV",
        "DATABASE_URL",
        "ADMIN_IDS",
        "MAX_UPLOAD_BYTES",
        "OIDC_ISSUER_URL",
        "OIDC_CLIENT_ID",
        "OIDC_CLIENT_SECRET",
        "OIDC_REDIRECT_URI",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def app_config(tmp_path: Path):
    """Dev config with a temporary store root and a fake IdP."""
    from backend.web.config import load_app_config

    return load_app_config(
        {
            "APP_ENV": "dev",
            "POSTS_STORE_DIR": str(tmp_path / "posts_store"),
            "OIDC_ISSUER_URL": "https://idp.example.edu/realms/cmu",
            "OIDC_CLIENT_ID": "cmuinsta-web",
            "OIDC_CLIENT_SECRET": "s3cr3t-value",
            "OIDC_REDIRECT_URI": "https://insta.example.edu/callback",
            "ADMIN_IDS": "alice, Bob ,",
        }
    )
