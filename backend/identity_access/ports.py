"""
Ports for the identity store: the user store protocol and its error taxonomy.

Intent:
    Keep the admin-grant use case independent of the concrete backend
    (Appwrite REST, in-memory fake). Adapters translate their transport
    failures into the errors below so the use case can classify outcomes
    without knowing HTTP.

Design:
    - Protocol: UserStoreProtocol with exactly two operations
    - Errors: not found, bad request, permission, conflict, unavailable
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from backend.identity_access.domain import UserRecord


# ----------------------------- Protocols ------------------------------------


class UserStoreProtocol(Protocol):
    """Identity store used by the admin-grant use case."""

    def fetch_user(self, user_id: str) -> UserRecord:
        ...

    def replace_user_labels(self, user_id: str, labels: Sequence[str]) -> UserRecord:
        ...


# ------------------------------ Errors --------------------------------------


class UserStoreError(Exception):
    """Base class for identity store failures.

    Parameters:
        message: Upstream message, safe for server-side logs.
        code: Upstream status code when known (HTTP status for Appwrite).
        type: Upstream error type identifier, e.g. ``user_not_found``.
    """

    def __init__(self, message: str, *, code: Optional[int] = None, type: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.type = type


class UserNotFoundError(UserStoreError):
    """The referenced user does not exist."""


class StoreBadRequestError(UserStoreError):
    """The store rejected the request payload."""


class StorePermissionError(UserStoreError):
    """The service credential is invalid or lacks users.read/users.write."""


class StoreConflictError(UserStoreError):
    """A concurrent mutation was detected by the store."""


class StoreUnavailableError(UserStoreError):
    """The store reported an internal fault."""


__all__ = [
    "UserStoreProtocol",
    "UserStoreError",
    "UserNotFoundError",
    "StoreBadRequestError",
    "StorePermissionError",
    "StoreConflictError",
    "StoreUnavailableError",
]
