"""Security utilities for the back-office application."""

from .permissions import DEFAULT_ROLE_PERMISSIONS, Action, Actor, PermissionDeniedError, PermissionPolicy, Role

__all__ = [
    "DEFAULT_ROLE_PERMISSIONS",
    "Action",
    "Actor",
    "PermissionDeniedError",
    "PermissionPolicy",
    "Role",
]
