"labelgrant web app"
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from backend.identity_access.appwrite_users import AppwriteConfig, AppwriteUsersClient
from backend.identity_access.ports import UserStoreProtocol
from backend.identity_access.stores import InMemoryUserStore
from backend.identity_access.usecases import GrantAdminUseCase
from backend.web.config import (
    ConfigurationError,
    ensure_secure_config_on_startup,
    load_store_config,
    memory_seed_user_ids,
    store_backend,
    user_count_enabled,
)
from backend.web.routes.admin import admin_router


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via LABELGRANT_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("LABELGRANT_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


try:
    from dotenv import load_dotenv
    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

logger = logging.getLogger("labelgrant.web")


def build_use_case(cfg: AppwriteConfig) -> GrantAdminUseCase:
    """Wire the Appwrite adapter into the grant use case."""
    client = AppwriteUsersClient(cfg)
    counter = client.count_users if cfg.log_user_count else None
    return GrantAdminUseCase(client, user_counter=counter)


def build_memory_use_case() -> GrantAdminUseCase:
    """Dev-only wiring: in-process user store seeded from LABELGRANT_MEMORY_USERS."""
    store = InMemoryUserStore()
    for uid in memory_seed_user_ids():
        store.add_user(uid)
    logger.warning("Using in-memory user store (LABELGRANT_STORE=memory); data is not persisted.")
    counter = store.count_users if user_count_enabled() else None
    return GrantAdminUseCase(store, user_counter=counter)


def create_app(
    *,
    store: Optional[UserStoreProtocol] = None,
    config: Optional[AppwriteConfig] = None,
) -> FastAPI:
    """Create the FastAPI app.

    Parameters:
        store: Inject a user store (tests, local dev); bypasses Appwrite config.
        config: Explicit Appwrite config; defaults to the environment.

    Without either, LABELGRANT_STORE=memory selects the in-memory store for
    local development.

    Missing configuration does not abort startup: the app comes up and answers
    grant requests with a 500 so the runtime surfaces the fault per request.
    """
    app = FastAPI(title="labelgrant", description="Grant the admin label to a user", version="0.1.0")
    app.state.grant_use_case = None
    app.state.config_error = None

    if store is not None:
        app.state.grant_use_case = GrantAdminUseCase(store)
    elif config is None and store_backend() == "memory":
        app.state.grant_use_case = build_memory_use_case()
    else:
        try:
            cfg = config or load_store_config()
        except ConfigurationError as exc:
            logger.error("Configuration Error: %s", exc)
            app.state.config_error = exc
        else:
            app.state.grant_use_case = build_use_case(cfg)

    @app.get("/health")
    async def health():
        status = "ok" if app.state.grant_use_case is not None else "misconfigured"
        return JSONResponse({"status": status}, headers={"Cache-Control": "no-store"})

    app.include_router(admin_router)
    return app


ensure_secure_config_on_startup()
app = create_app()
