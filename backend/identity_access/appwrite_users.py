"""
Appwrite Users client (minimal) for label lookup and replacement.

Design:
- Framework-agnostic, callable from the web adapter and the CLI.
- Uses requests under the hood and translates non-2xx responses into the
  store error taxonomy from `ports`. Network/parse failures propagate as-is.

Security:
- Do not log the API key or request headers.
- The key needs users.read and users.write scopes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence
from urllib.parse import quote
import logging
import os

import requests

from backend.identity_access.domain import UserRecord, normalize_labels
from backend.identity_access.ports import (
    StoreBadRequestError,
    StoreConflictError,
    StorePermissionError,
    StoreUnavailableError,
    UserNotFoundError,
    UserStoreError,
)

logger = logging.getLogger("labelgrant.identity_access")

DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class AppwriteConfig:
    endpoint: str  # e.g., https://cloud.appwrite.io/v1
    project_id: str
    api_key: str
    self_signed: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_user_count: bool = False

    def __repr__(self) -> str:
        # Keep the key out of tracebacks and debug output.
        return (
            f"AppwriteConfig(endpoint={self.endpoint!r}, project_id={self.project_id!r}, "
            f"api_key='***', self_signed={self.self_signed}, timeout_seconds={self.timeout_seconds})"
        )

    @property
    def users_url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/users"


def _error_from_response(r: requests.Response) -> UserStoreError:
    """Map an Appwrite error response to a store error.

    Appwrite answers with ``{"message": ..., "code": ..., "type": ...}``.
    """
    try:
        body = r.json() or {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = str(body.get("message") or r.reason or f"HTTP {r.status_code}")
    err_type = body.get("type")
    code = r.status_code
    if code == 404:
        return UserNotFoundError(message, code=code, type=err_type)
    if code == 400:
        return StoreBadRequestError(message, code=code, type=err_type)
    if code in (401, 403):
        return StorePermissionError(message, code=code, type=err_type)
    if code in (409, 412):
        return StoreConflictError(message, code=code, type=err_type)
    if code >= 500:
        return StoreUnavailableError(message, code=code, type=err_type)
    return UserStoreError(message, code=code, type=err_type)


def _user_from_json(data: dict, fallback_id: str) -> UserRecord:
    labels = data.get("labels") or []
    if not isinstance(labels, list):
        raise ValueError("labels_not_a_list")
    return UserRecord(
        id=str(data.get("$id") or fallback_id),
        labels=normalize_labels(str(x) for x in labels),
        updated_at=data.get("$updatedAt"),
    )


class AppwriteUsersClient:
    """Read and replace user labels via the Appwrite Users REST API."""

    def __init__(self, cfg: AppwriteConfig, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()
        # Honor an explicit CA bundle; self-signed mode disables verification.
        ca = os.getenv("APPWRITE_CA_BUNDLE")
        if cfg.self_signed:
            self.session.verify = False
        elif ca:
            self.session.verify = ca

    def _headers(self) -> Dict[str, str]:
        return {
            "X-Appwrite-Project": self.cfg.project_id,
            "X-Appwrite-Key": self.cfg.api_key,
            "Content-Type": "application/json",
        }

    def _user_url(self, user_id: str) -> str:
        # The id is a single path segment. Dot segments would be collapsed by
        # the HTTP stack and address another resource with the admin key.
        if user_id in ("", ".", ".."):
            raise StoreBadRequestError(f"Invalid user id: {user_id!r}", code=400, type="user_id_invalid")
        return f"{self.cfg.users_url}/{quote(user_id, safe='')}"

    def fetch_user(self, user_id: str) -> UserRecord:
        r = self.session.get(
            self._user_url(user_id),
            headers=self._headers(),
            timeout=self.cfg.timeout_seconds,
        )
        if r.status_code != 200:
            raise _error_from_response(r)
        return _user_from_json(r.json() or {}, user_id)

    def replace_user_labels(self, user_id: str, labels: Sequence[str]) -> UserRecord:
        """Replace the full label set; Appwrite has no partial label update."""
        r = self.session.put(
            f"{self._user_url(user_id)}/labels",
            headers=self._headers(),
            json={"labels": list(labels)},
            timeout=self.cfg.timeout_seconds,
        )
        if r.status_code != 200:
            raise _error_from_response(r)
        return _user_from_json(r.json() or {}, user_id)

    def count_users(self) -> Optional[int]:
        """Return the total number of users, or None when unavailable.

        Informational only; callers must not depend on it.
        """
        r = self.session.get(self.cfg.users_url, headers=self._headers(), timeout=self.cfg.timeout_seconds)
        if r.status_code != 200:
            raise _error_from_response(r)
        total = (r.json() or {}).get("total")
        return int(total) if total is not None else None


__all__ = ["AppwriteConfig", "AppwriteUsersClient", "DEFAULT_TIMEOUT_SECONDS"]
