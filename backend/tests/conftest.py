"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors).
"""
import sys
from pathlib import Path

import pytest

# Ensure `backend.*` is importable without an editable install
REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_appwrite_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from an unconfigured, dev-like environment.

    Why:
        Developers often have APPWRITE_* exported in their shell. Tests that
        need configuration set it explicitly; nothing should leak in from the
        outside or across tests.
    """
    for var in (
        "LABELGRANT_ENV",
        "APPWRITE_API_KEY",
        "APPWRITE_ENDPOINT",
        "APPWRITE_FUNCTION_API_ENDPOINT",
        "APPWRITE_FUNCTION_PROJECT_ID",
        "APPWRITE_PROJECT_ID",
        "APPWRITE_SELF_SIGNED",
        "APPWRITE_TIMEOUT_SECONDS",
        "APPWRITE_CA_BUNDLE",
        "LOG_USER_COUNT",
        "LABELGRANT_STORE",
        "LABELGRANT_MEMORY_USERS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def appwrite_env(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Minimal valid Appwrite configuration in the environment."""
    values = {
        "APPWRITE_API_KEY": "TEST_ONLY_KEY",
        "APPWRITE_ENDPOINT": "https://appwrite.test/v1",
        "APPWRITE_FUNCTION_PROJECT_ID": "proj-test",
    }
    for k, v in values.items():
        monkeypatch.setenv(k, v)
    return values
