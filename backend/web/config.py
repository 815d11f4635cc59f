"""
Configuration and startup security checks for labelgrant.

Why: The grant function holds a privileged Appwrite key. Configuration is read
once at process start into an `AppwriteConfig` and injected into the adapter;
nothing reads the environment mid-request.

Permissions: The caller needs no special privileges. `load_store_config`
raises `ConfigurationError` when required values are missing and
`ensure_secure_config_on_startup` raises `SystemExit` on insecure production
settings.
"""
from __future__ import annotations

from typing import Mapping, Optional
import os

from backend.identity_access.appwrite_users import AppwriteConfig, DEFAULT_TIMEOUT_SECONDS


class ConfigurationError(RuntimeError):
    """Required configuration is missing; `missing` lists the variable names."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__("Missing configuration: " + ", ".join(missing))
        self.missing = missing


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _first(env: Mapping[str, str], *names: str) -> str:
    for name in names:
        val = (env.get(name) or "").strip()
        if val:
            return val
    return ""


def load_store_config(env: Optional[Mapping[str, str]] = None) -> AppwriteConfig:
    """Build the Appwrite configuration from the environment.

    Required: APPWRITE_API_KEY, APPWRITE_ENDPOINT (or the runtime-provided
    APPWRITE_FUNCTION_API_ENDPOINT) and APPWRITE_FUNCTION_PROJECT_ID (or
    APPWRITE_PROJECT_ID). All missing names are reported together.
    """
    env = os.environ if env is None else env
    api_key = _first(env, "APPWRITE_API_KEY")
    endpoint = _first(env, "APPWRITE_ENDPOINT", "APPWRITE_FUNCTION_API_ENDPOINT")
    project_id = _first(env, "APPWRITE_FUNCTION_PROJECT_ID", "APPWRITE_PROJECT_ID")

    missing = []
    if not api_key:
        missing.append("APPWRITE_API_KEY")
    if not endpoint:
        missing.append("APPWRITE_ENDPOINT")
    if not project_id:
        missing.append("APPWRITE_FUNCTION_PROJECT_ID")
    if missing:
        raise ConfigurationError(missing)

    raw_timeout = (env.get("APPWRITE_TIMEOUT_SECONDS") or "").strip()
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        timeout = DEFAULT_TIMEOUT_SECONDS
    if timeout <= 0:
        timeout = DEFAULT_TIMEOUT_SECONDS

    return AppwriteConfig(
        endpoint=endpoint.rstrip("/"),
        project_id=project_id,
        api_key=api_key,
        self_signed=_flag(env.get("APPWRITE_SELF_SIGNED")),
        timeout_seconds=timeout,
        log_user_count=user_count_enabled(env),
    )


def ensure_secure_config_on_startup(env: Optional[Mapping[str, str]] = None) -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only; dev stays permissive):
    - APPWRITE_ENDPOINT must use https.
    - APPWRITE_SELF_SIGNED must be off.
    - APPWRITE_API_KEY must not be a placeholder.
    - LABELGRANT_STORE must not select the in-memory store.
    """
    env = os.environ if env is None else env
    if not _is_prod_like(env.get("LABELGRANT_ENV", "dev")):
        return

    endpoint = _first(env, "APPWRITE_ENDPOINT", "APPWRITE_FUNCTION_API_ENDPOINT").lower()
    if endpoint.startswith("http://"):
        raise SystemExit("Refusing to start: APPWRITE_ENDPOINT must use https in production (got http).")

    if _flag(env.get("APPWRITE_SELF_SIGNED")):
        raise SystemExit("Refusing to start: APPWRITE_SELF_SIGNED must be false in production/staging.")

    key = _first(env, "APPWRITE_API_KEY")
    if key.upper().startswith(("CHANGE_ME", "DUMMY")):
        raise SystemExit("Refusing to start: APPWRITE_API_KEY is a placeholder in production.")

    if store_backend(env) == "memory":
        raise SystemExit("Refusing to start: LABELGRANT_STORE=memory is for local development only.")


def store_backend(env: Optional[Mapping[str, str]] = None) -> str:
    """Return the configured user store backend: "appwrite" (default) or "memory"."""
    env = os.environ if env is None else env
    backend = (env.get("LABELGRANT_STORE") or "appwrite").strip().lower()
    return "memory" if backend == "memory" else "appwrite"


def memory_seed_user_ids(env: Optional[Mapping[str, str]] = None) -> list[str]:
    """User ids to pre-create in the in-memory store (LABELGRANT_MEMORY_USERS, comma-separated)."""
    env = os.environ if env is None else env
    raw = env.get("LABELGRANT_MEMORY_USERS") or ""
    return [uid.strip() for uid in raw.split(",") if uid.strip()]


def user_count_enabled(env: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if env is None else env
    return _flag(env.get("LOG_USER_COUNT"))
