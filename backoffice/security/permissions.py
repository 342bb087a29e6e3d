"""Role based permission policy for back-office resources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

WILDCARD = "*"


class PermissionDeniedError(PermissionError):
    """Raised when the actor lacks the permission required by an operation."""

    kind = "Forbidden"

    def __init__(self, resource: str, action: str) -> None:
        super().__init__(f"Insufficient permissions for {action} on {resource}")
        self.resource = resource
        self.action = action


class Role(str, Enum):
    """Supported staff roles."""

    ADMIN = "ADMIN"
    TECHNICIAN = "TECHNICIAN"
    MARKETING = "MARKETING"
    HR = "HR"


class Action(str, Enum):
    """Operations that can be granted on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


_CRUD: tuple[Action, ...] = (Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE)

DEFAULT_ROLE_PERMISSIONS: Mapping[Role, Mapping[str, frozenset[Action]]] = {
    Role.ADMIN: {WILDCARD: frozenset(_CRUD)},
    Role.TECHNICIAN: {
        "dashboard": frozenset({Action.READ}),
        "customers": frozenset({Action.READ}),
        "tickets": frozenset({Action.CREATE, Action.READ, Action.UPDATE}),
        "ticket-notes": frozenset({Action.CREATE, Action.READ}),
        "employees": frozenset({Action.READ}),
        "reports": frozenset({Action.READ}),
    },
    Role.MARKETING: {
        "dashboard": frozenset({Action.READ}),
        "customers": frozenset(_CRUD),
        "packages": frozenset(_CRUD),
        "tickets": frozenset({Action.READ}),
        "employees": frozenset({Action.READ}),
        "reports": frozenset({Action.READ}),
    },
    Role.HR: {
        "dashboard": frozenset({Action.READ}),
        "employees": frozenset(_CRUD),
        "customers": frozenset({Action.READ}),
        "reports": frozenset({Action.READ}),
        "settings": frozenset({Action.READ, Action.UPDATE}),
    },
}


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated principal performing an operation."""

    username: str
    role: Role | None
    employee_id: str | None = None


class PermissionPolicy:
    """Explicit (role, resource, action) -> allow/deny table."""

    def __init__(self, grants: Mapping[Role, Mapping[str, Iterable[Action]]] | None = None) -> None:
        source = DEFAULT_ROLE_PERMISSIONS if grants is None else grants
        self._grants: dict[Role, dict[str, frozenset[Action]]] = {
            role: {resource: frozenset(actions) for resource, actions in resources.items()}
            for role, resources in source.items()
        }

    def is_allowed(self, role: Role | None, resource: str, action: Action | str) -> bool:
        if role is None:
            return False
        action = Action(action)
        resources = self._grants.get(role, {})
        if action in resources.get(WILDCARD, frozenset()):
            return True
        return action in resources.get(resource, frozenset())

    def authorize(self, actor: Actor, resource: str, action: Action | str) -> None:
        """Raise :class:`PermissionDeniedError` unless ``actor`` may act.

        Actors without a linked employee record are always denied because every
        write is attributed to an employee.
        """

        if actor.employee_id is None or not self.is_allowed(actor.role, resource, action):
            raise PermissionDeniedError(resource, Action(action).value)
