from typing import Protocol

from app.contracts.identity import User, UserRole
from app.exceptions import AuthorizationError, NotFoundError


class UserDirectory(Protocol):
    async def find_user(self, user_id: str) -> User | None: ...

    async def list_by_role(self, role: UserRole) -> list[User]: ...

    async def list_users(self) -> list[User]: ...


class IdentityProvider:
    """Resolves acting users and directory lookups; the only source of roles."""

    def __init__(self, directory: UserDirectory):
        self._directory = directory

    async def current_actor(self, actor_id: str | None) -> User:
        if not actor_id:
            raise AuthorizationError(
                "An authenticated actor is required.",
                code="UNAUTHENTICATED",
            )
        actor = await self._directory.find_user(actor_id)
        if actor is None:
            raise AuthorizationError(
                f"Unknown actor '{actor_id}'.",
                code="UNKNOWN_ACTOR",
                actual=actor_id,
            )
        return actor

    async def find_user(self, user_id: str) -> User | None:
        return await self._directory.find_user(user_id)

    async def require_user(
        self,
        user_id: str,
        *,
        operation: str | None = None,
        proposal_id: str | None = None,
    ) -> User:
        user = await self._directory.find_user(user_id)
        if user is None:
            raise NotFoundError(
                f"User '{user_id}' not found.",
                code="USER_NOT_FOUND",
                operation=operation,
                proposal_id=proposal_id,
                actual=user_id,
            )
        return user

    async def list_by_role(self, role: UserRole) -> list[User]:
        return await self._directory.list_by_role(role)

    async def list_users(self) -> list[User]:
        return await self._directory.list_users()
