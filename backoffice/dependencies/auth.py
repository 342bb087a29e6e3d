from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backoffice.security import Action, Actor, PermissionPolicy, Role


class User:
    """Authenticated back-office user linked to an employee record."""

    def __init__(self, username: str, role: Role | None, employee_id: str | None = None):
        self.username = username
        self.role = role
        self.employee_id = employee_id

    @property
    def is_authenticated(self) -> bool:
        return self.role is not None

    def to_actor(self) -> Actor:
        return Actor(username=self.username, role=self.role, employee_id=self.employee_id)


# Static development tokens; production deployments put a real identity provider in front.
TOKEN_USER_MAP: dict[str, tuple[str, Role, str]] = {
    "admin-token": ("admin", Role.ADMIN, "emp-admin"),
    "technician-token": ("technician", Role.TECHNICIAN, "emp-technician"),
    "marketing-token": ("marketing", Role.MARKETING, "emp-marketing"),
    "hr-token": ("hr", Role.HR, "emp-hr"),
}

ANONYMOUS = "anonymous"

bearer_scheme = HTTPBearer(auto_error=False)
default_policy = PermissionPolicy()


def resolve_user_from_token(token: str | None) -> User:
    """Return the user for ``token``; a missing token yields an anonymous user."""

    if token is None:
        return User(username=ANONYMOUS, role=None)

    if token not in TOKEN_USER_MAP:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    username, role, employee_id = TOKEN_USER_MAP[token]
    return User(username=username, role=role, employee_id=employee_id)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
) -> User:
    cached = getattr(request.state, "user", None)
    if isinstance(cached, User):
        return cached

    token = credentials.credentials if credentials is not None else None
    user = resolve_user_from_token(token)
    request.state.user = user
    return user


def permission_required(resource: str, action: Action) -> Callable[[User], User]:
    """Dependency factory ensuring the current user may perform ``action`` on ``resource``."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.is_authenticated:
            raise HTTPException(status_code=401, detail="Authentication required")
        if not default_policy.is_allowed(user.role, resource, action):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


CurrentUser = Annotated[User, Depends(get_current_user)]
