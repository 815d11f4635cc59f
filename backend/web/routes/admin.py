"""
Admin grant API route: add the "admin" label to a user.

Why:
    Operators (or the function runtime) post `{"userId", "action"}` to grant
    admin status. The route only moves bytes: validation, the identity-store
    round trip and error classification live in `GrantAdminUseCase`, which the
    app factory stores on `app.state`.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("labelgrant.web")


def _private_response(body: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


async def _grant(request: Request) -> JSONResponse:
    use_case = getattr(request.app.state, "grant_use_case", None)
    if use_case is None:
        # Configuration fault: answer before touching the request body.
        logger.error("Configuration Error: missing API key, endpoint, or project id.")
        return _private_response(
            {"success": False, "error": "Function is not configured correctly."}, status_code=500
        )
    raw = await request.body()
    result = await run_in_threadpool(use_case.handle_raw, raw)
    return _private_response(result.body, status_code=result.status_code)


@admin_router.post("/api/admin/grant")
async def grant_admin_label(request: Request):
    """Grant the admin label to `userId`.

    Body:
        `{"userId": "<id>", "action": "makeAdmin"}` (both required)

    Responses:
        200 granted or already admin, 400 invalid input, 404 unknown user,
        409 concurrent modification, 500 configuration/unexpected fault,
        503 identity service unavailable.
    """
    return await _grant(request)


@admin_router.post("/", include_in_schema=False)
async def grant_admin_label_root(request: Request):
    """Function-runtime entry point; same contract as /api/admin/grant."""
    return await _grant(request)
