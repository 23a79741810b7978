from fastapi import APIRouter, Query

from app.config import settings
from app.contracts.identity import UserListResponse, UserResponse, UserRole
from app.exceptions import NotFoundError
from app.middleware.correlation import correlation_id_var
from app.services.container import get_identity_provider
from app.services.identity_service import IdentityProvider

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _identity_provider() -> IdentityProvider:
    return get_identity_provider()


@router.get(
    "",
    response_model=UserListResponse,
    summary="Directory Users",
    description="Lists directory users, optionally narrowed to one role for reviewer pickers.",
)
async def list_users(role: UserRole | None = Query(default=None)) -> UserListResponse:
    provider = _identity_provider()
    users = await provider.list_by_role(role) if role is not None else await provider.list_users()
    return UserListResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=users,
    )


@router.get("/{user_id}", response_model=UserResponse, summary="Directory User")
async def get_user(user_id: str) -> UserResponse:
    user = await _identity_provider().find_user(user_id)
    if user is None:
        raise NotFoundError(f"User '{user_id}' not found.", code="USER_NOT_FOUND", actual=user_id)
    return UserResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=user,
    )
