"""
Identity domain constants and simple helpers.

Why:
- Centralize the privilege label so the use case, adapters and tools agree.
- Keep label handling (dedupe, ordering) in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

ADMIN_LABEL = "admin"
GRANT_ACTION = "makeAdmin"


def normalize_labels(labels: Iterable[str] | None) -> tuple[str, ...]:
    """Deduplicate labels while keeping first-seen order.

    The store treats labels as an unordered set but may hand back a sequence
    with duplicates. Comparison is case-sensitive.
    """
    seen: set[str] = set()
    out: list[str] = []
    for label in labels or ():
        if label in seen:
            continue
        seen.add(label)
        out.append(label)
    return tuple(out)


@dataclass(frozen=True)
class UserRecord:
    """Call-scoped snapshot of a user as returned by the identity store."""

    id: str
    labels: tuple[str, ...] = ()
    updated_at: Optional[str] = None

    def has_label(self, label: str) -> bool:
        return label in set(self.labels)


__all__ = ["ADMIN_LABEL", "GRANT_ACTION", "UserRecord", "normalize_labels"]
