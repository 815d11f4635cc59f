"""Use case layer for the identity context.

Re-export the admin grant for convenient imports in tests.
"""

from .grant_admin import (
    GrantAdminInput,
    GrantAdminResult,
    GrantAdminUseCase,
    GrantState,
    parse_grant_request,
)

__all__ = [
    "GrantAdminInput",
    "GrantAdminResult",
    "GrantAdminUseCase",
    "GrantState",
    "parse_grant_request",
]
