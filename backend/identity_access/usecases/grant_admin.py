"""
Grant the "admin" label to a user (idempotent read-modify-write).

Intent:
    Provide a framework-free boundary for the admin grant. The web route and
    the CLI both decode the raw payload with `parse_grant_request` and run
    `GrantAdminUseCase.execute`; the use case returns a ready-to-serialize
    result instead of raising, so adapters only copy status and body.

Concurrency:
    Appwrite offers no version token or conditional write for labels. Two
    concurrent grants for the same user may both read the pre-admin snapshot
    and both write; they converge on the same label set. A conflict reported
    by the store maps to 409.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional
import json
import logging
import re

from backend.identity_access.domain import ADMIN_LABEL, GRANT_ACTION, normalize_labels
from backend.identity_access.ports import (
    StoreBadRequestError,
    StoreConflictError,
    StorePermissionError,
    StoreUnavailableError,
    UserNotFoundError,
    UserStoreError,
    UserStoreProtocol,
)

logger = logging.getLogger("labelgrant.identity_access")

# Appwrite custom ids: up to 36 chars, no leading special character.
_USER_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{0,35}")


# ----------------------------- Request parsing ------------------------------


class GrantRequestError(ValueError):
    """Client input error; `message` is safe to return to the caller."""

    reason = "invalid_request"
    message = "Invalid request."

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
        super().__init__(self.message)


class EmptyBodyError(GrantRequestError):
    reason = "empty_body"
    message = "Request body is empty"


class MalformedPayloadError(GrantRequestError):
    reason = "malformed_payload"
    message = "Invalid JSON format in request body."


class MissingUserIdError(GrantRequestError):
    reason = "missing_user_id"
    message = 'Missing or empty "userId" in request body.'


class InvalidUserIdError(MissingUserIdError):
    """userId is present but not a valid Appwrite id."""

    reason = "invalid_user_id"
    message = 'Invalid "userId" in request body.'


class InvalidActionError(GrantRequestError):
    reason = "invalid_action"
    message = "Invalid action"


@dataclass(frozen=True)
class GrantAdminInput:
    user_id: str
    action: str = GRANT_ACTION


def parse_grant_request(raw: bytes | str | None) -> GrantAdminInput:
    """Decode and validate the raw request payload.

    Checks run in order and the first failure wins: empty body, malformed
    JSON (or a JSON value that is not an object), missing userId (or one
    that is not a valid Appwrite id), then the required `action`
    discriminator which must equal "makeAdmin".
    """
    if raw is None:
        raise EmptyBodyError()
    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedPayloadError()
    else:
        text = raw
    if not text.strip():
        raise EmptyBodyError()
    try:
        body = json.loads(text)
    except ValueError:
        raise MalformedPayloadError()
    if not isinstance(body, dict):
        raise MalformedPayloadError()

    user_id = body.get("userId")
    if not isinstance(user_id, str) or not user_id.strip():
        raise MissingUserIdError()
    user_id = user_id.strip()
    if not _USER_ID_RE.fullmatch(user_id):
        raise InvalidUserIdError()
    action = body.get("action")
    if action != GRANT_ACTION:
        raise InvalidActionError()
    return GrantAdminInput(user_id=user_id, action=action)


# ----------------------------- Results --------------------------------------


class GrantState(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    ALREADY_GRANTED = "already_granted"
    GRANTED = "granted"
    FAILED = "failed"


@dataclass
class GrantAdminResult:
    """Terminal outcome of one invocation.

    Parameters:
        state: One of the four terminal states.
        status_code: HTTP-equivalent status for the caller.
        body: JSON object returned to the caller.
    """

    state: GrantState
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))

    @property
    def changed(self) -> bool:
        return self.state is GrantState.GRANTED


def validation_failed(err: GrantRequestError) -> GrantAdminResult:
    return GrantAdminResult(GrantState.VALIDATION_FAILED, 400, {"success": False, "error": err.message})


# ----------------------------- Use case -------------------------------------


class GrantAdminUseCase:
    def __init__(self, store: UserStoreProtocol, *, user_counter: Optional[Callable[[], Optional[int]]] = None) -> None:
        self._store = store
        self._user_counter = user_counter

    def handle_raw(self, raw: bytes | str | None) -> GrantAdminResult:
        """Validate a raw payload and run the grant; never raises."""
        try:
            req = parse_grant_request(raw)
        except GrantRequestError as err:
            logger.info("Rejected admin grant request: %s", err.reason)
            return validation_failed(err)
        return self.execute(req)

    def execute(self, req: GrantAdminInput) -> GrantAdminResult:
        """Ensure `req.user_id` carries the admin label.

        Behavior:
            - Fetch the user once; no retries.
            - Already admin: no write, 200 with the current `labels`.
            - Otherwise write current labels plus "admin" (one full
              replacement) and return 200 with `updatedLabels`.
            - Store failures are classified; permission faults are masked.
        """
        user_id = req.user_id
        self._log_user_count()
        logger.info('Attempting to add "%s" label to user: %s', ADMIN_LABEL, user_id)
        try:
            user = self._store.fetch_user(user_id)
            current = normalize_labels(user.labels)
            logger.debug("Read user %s labels=%s updatedAt=%s", user_id, list(current), user.updated_at)
            if user.has_label(ADMIN_LABEL):
                logger.info('User %s already has the "%s" label.', user_id, ADMIN_LABEL)
                return GrantAdminResult(
                    GrantState.ALREADY_GRANTED,
                    200,
                    {
                        "success": True,
                        "message": "User already has the admin label.",
                        "userId": user_id,
                        "labels": list(current),
                        "changed": False,
                    },
                )

            updated = list(current) + [ADMIN_LABEL]
            self._store.replace_user_labels(user_id, updated)
            logger.info('Successfully added "%s" label for user: %s', ADMIN_LABEL, user_id)
            return GrantAdminResult(
                GrantState.GRANTED,
                200,
                {
                    "success": True,
                    "message": "Admin label added successfully.",
                    "userId": user_id,
                    "updatedLabels": updated,
                    "changed": True,
                },
            )
        except UserStoreError as err:
            return self._store_failure(user_id, err)
        except Exception as err:
            logger.exception("Unexpected error updating labels for user %s", user_id)
            return GrantAdminResult(
                GrantState.FAILED,
                500,
                {
                    "success": False,
                    "error": "An unexpected server error occurred.",
                    "details": type(err).__name__,
                },
            )

    def _store_failure(self, user_id: str, err: UserStoreError) -> GrantAdminResult:
        logger.error(
            "Identity store error updating labels for user %s: [%s] %s",
            user_id,
            err.code,
            err.message,
        )
        if isinstance(err, UserNotFoundError):
            return self._failed(404, f"User not found with ID: {user_id}", err)
        if isinstance(err, StoreBadRequestError):
            return self._failed(400, f"Bad request during label update: {err.message}", err)
        if isinstance(err, StorePermissionError):
            logger.error("API key might lack permissions (users.read/users.write) or is invalid.")
            return GrantAdminResult(
                GrantState.FAILED,
                500,
                {"success": False, "error": "Function configuration error (permissions)."},
            )
        if isinstance(err, StoreConflictError):
            return self._failed(409, "User labels were modified concurrently; retry the request.", err)
        if isinstance(err, StoreUnavailableError):
            return GrantAdminResult(
                GrantState.FAILED,
                503,
                {"success": False, "error": "Identity service unavailable.", "code": err.code},
            )
        return self._failed(500, "Failed to update user labels.", err)

    @staticmethod
    def _failed(status_code: int, message: str, err: UserStoreError) -> GrantAdminResult:
        return GrantAdminResult(
            GrantState.FAILED,
            status_code,
            {"success": False, "error": message, "details": err.message, "code": err.code},
        )

    def _log_user_count(self) -> None:
        # Informational only; a failure here must not affect the grant.
        if self._user_counter is None:
            return
        try:
            total = self._user_counter()
        except Exception as exc:
            logger.warning("User count unavailable: %s", type(exc).__name__)
            return
        logger.info("Total users in project: %s", total)


__all__ = [
    "GrantAdminInput",
    "GrantAdminResult",
    "GrantAdminUseCase",
    "GrantRequestError",
    "EmptyBodyError",
    "MalformedPayloadError",
    "MissingUserIdError",
    "InvalidUserIdError",
    "InvalidActionError",
    "GrantState",
    "parse_grant_request",
]
