from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from app.clients.http_resilience import get_with_retry
from app.contracts.identity import User, UserRole
from app.middleware.correlation import correlation_id_var, propagation_headers

DEMO_USERS: tuple[User, ...] = (
    User(
        id="user1",
        name="John Doe",
        email="john@example.com",
        role=UserRole.USER,
        avatar="https://i.pravatar.cc/150?img=1",
    ),
    User(
        id="user2",
        name="Jane Smith",
        email="jane@example.com",
        role=UserRole.SUPERIOR,
        avatar="https://i.pravatar.cc/150?img=2",
    ),
    User(
        id="user3",
        name="Alex Johnson",
        email="alex@example.com",
        role=UserRole.ADMIN,
        avatar="https://i.pravatar.cc/150?img=3",
    ),
    User(
        id="user4",
        name="Sarah Williams",
        email="sarah@example.com",
        role=UserRole.SUPERIOR,
        avatar="https://i.pravatar.cc/150?img=4",
    ),
    User(
        id="user5",
        name="Maria Garcia",
        email="maria@example.com",
        role=UserRole.APPROVER,
        avatar="https://i.pravatar.cc/150?img=5",
    ),
    User(
        id="user6",
        name="David Lee",
        email="david@example.com",
        role=UserRole.APPROVER,
        avatar="https://i.pravatar.cc/150?img=6",
    ),
    User(
        id="user7",
        name="Priya Patel",
        email="priya@example.com",
        role=UserRole.APPROVER,
        avatar="https://i.pravatar.cc/150?img=7",
    ),
    User(
        id="user8",
        name="Tom Becker",
        email="tom@example.com",
        role=UserRole.REGISTRAR,
        avatar="https://i.pravatar.cc/150?img=8",
    ),
)


class InMemoryDirectory:
    def __init__(self, users: tuple[User, ...] | list[User] = DEMO_USERS):
        self._users = {user.id: user for user in users}

    async def find_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def list_by_role(self, role: UserRole) -> list[User]:
        return [user for user in self._users.values() if user.role == role]

    async def list_users(self) -> list[User]:
        return list(self._users.values())


class DirectoryClient:
    """Read-only client for a remote user directory service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.2,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    async def find_user(self, user_id: str) -> User | None:
        upstream_status, payload = await self._get(f"/users/{user_id}", params={})
        if upstream_status == status.HTTP_404_NOT_FOUND:
            return None
        self._raise_for_upstream_error(upstream_status, payload)
        return self._parse_user(payload)

    async def list_by_role(self, role: UserRole) -> list[User]:
        upstream_status, payload = await self._get("/users", params={"role": role.value})
        self._raise_for_upstream_error(upstream_status, payload)
        return [self._parse_user(item) for item in payload.get("items", [])]

    async def list_users(self) -> list[User]:
        upstream_status, payload = await self._get("/users", params={})
        self._raise_for_upstream_error(upstream_status, payload)
        return [self._parse_user(item) for item in payload.get("items", [])]

    def _parse_user(self, payload: dict[str, Any]) -> User:
        try:
            return User.model_validate(payload)
        except PydanticValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Invalid directory user payload: {exc}",
            ) from exc

    def _raise_for_upstream_error(
        self,
        upstream_status: int,
        upstream_payload: dict[str, Any],
    ) -> None:
        if upstream_status >= status.HTTP_400_BAD_REQUEST:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"directory service error {upstream_status}: {upstream_payload}",
            )

    async def _get(self, path: str, params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        return await get_with_retry(
            url=f"{self._base_url}{path}",
            timeout_seconds=self._timeout,
            max_retries=self._max_retries,
            backoff_seconds=self._retry_backoff_seconds,
            params=params,
            headers=propagation_headers(correlation_id_var.get()),
        )
