from fastapi import APIRouter, Depends

from backoffice.dependencies.auth import CurrentUser, permission_required
from backoffice.security import Action

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/secure",
    summary="Authenticated health check",
    dependencies=[Depends(permission_required("dashboard", Action.READ))],
)
async def secure_ping(user: CurrentUser) -> dict[str, str]:
    return {"status": "ok", "user": user.username}
