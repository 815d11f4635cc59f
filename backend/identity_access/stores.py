"""
In-memory user store for development and tests.

Why: Exercise the admin-grant flow without a running Appwrite instance. The
store mirrors the Appwrite semantics that matter here: labels are replaced as
a whole, unknown ids raise not-found.

Not for production: data lives in process memory only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
import threading

from backend.identity_access.domain import UserRecord, normalize_labels
from backend.identity_access.ports import UserNotFoundError, UserStoreError


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LabelWrite:
    user_id: str
    labels: tuple[str, ...]


@dataclass
class InMemoryUserStore:
    users: Dict[str, UserRecord] = field(default_factory=dict)
    writes: List[LabelWrite] = field(default_factory=list)
    fetches: List[str] = field(default_factory=list)
    _fail_next_write: Optional[UserStoreError] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def add_user(self, user_id: str, labels: Sequence[str] = ()) -> UserRecord:
        rec = UserRecord(id=user_id, labels=normalize_labels(labels), updated_at=_now())
        with self._lock:
            self.users[user_id] = rec
        return rec

    def fail_next_write(self, error: UserStoreError) -> None:
        """Raise `error` on the next replace_user_labels call (once)."""
        with self._lock:
            self._fail_next_write = error

    def fetch_user(self, user_id: str) -> UserRecord:
        with self._lock:
            self.fetches.append(user_id)
            rec = self.users.get(user_id)
        if rec is None:
            raise UserNotFoundError("User with the requested ID could not be found.", code=404, type="user_not_found")
        return rec

    def replace_user_labels(self, user_id: str, labels: Sequence[str]) -> UserRecord:
        with self._lock:
            err, self._fail_next_write = self._fail_next_write, None
            if err is not None:
                raise err
            if user_id not in self.users:
                raise UserNotFoundError("User with the requested ID could not be found.", code=404, type="user_not_found")
            rec = UserRecord(id=user_id, labels=normalize_labels(labels), updated_at=_now())
            self.users[user_id] = rec
            self.writes.append(LabelWrite(user_id=user_id, labels=rec.labels))
        return rec

    def count_users(self) -> int:
        with self._lock:
            return len(self.users)
