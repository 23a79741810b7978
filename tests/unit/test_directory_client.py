import httpx
import pytest
from fastapi import HTTPException

from app.clients.directory_client import DirectoryClient, InMemoryDirectory
from app.contracts.identity import UserRole
from app.exceptions import AuthorizationError, NotFoundError
from app.services.identity_service import IdentityProvider


class _DirectoryAsyncClient:
    requests: list[tuple[str, dict | None, dict | None]] = []

    def __init__(self, timeout: float):
        _ = timeout

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def get(self, url, params=None, headers=None):
        _DirectoryAsyncClient.requests.append((url, params, headers))
        request = httpx.Request("GET", url)
        if url.endswith("/users/user5"):
            return httpx.Response(
                200,
                json={"id": "user5", "name": "Maria Garcia", "role": "APPROVER"},
                request=request,
            )
        if url.endswith("/users/broken"):
            return httpx.Response(200, json={"id": "broken"}, request=request)
        if url.endswith("/users"):
            return httpx.Response(
                200,
                json=[{"id": "user3", "name": "Alex Johnson", "role": "ADMIN"}],
                request=request,
            )
        return httpx.Response(404, json={"detail": "not found"}, request=request)


class _FailingAsyncClient(_DirectoryAsyncClient):
    async def get(self, url, params=None, headers=None):
        return httpx.Response(500, json={"detail": "boom"}, request=httpx.Request("GET", url))


def _client() -> DirectoryClient:
    return DirectoryClient(
        base_url="http://directory/", timeout_seconds=1.0, max_retries=0, retry_backoff_seconds=0.0
    )


@pytest.mark.asyncio
async def test_find_user_parses_payload_and_propagates_headers(monkeypatch):
    _DirectoryAsyncClient.requests = []
    monkeypatch.setattr("httpx.AsyncClient", _DirectoryAsyncClient)

    user = await _client().find_user("user5")

    assert user.role == UserRole.APPROVER
    url, _, headers = _DirectoryAsyncClient.requests[0]
    assert url == "http://directory/users/user5"
    assert headers["X-Request-Id"].startswith("req_")


@pytest.mark.asyncio
async def test_find_user_returns_none_on_404(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _DirectoryAsyncClient)

    assert await _client().find_user("ghost") is None


@pytest.mark.asyncio
async def test_list_by_role_sends_role_filter(monkeypatch):
    _DirectoryAsyncClient.requests = []
    monkeypatch.setattr("httpx.AsyncClient", _DirectoryAsyncClient)

    admins = await _client().list_by_role(UserRole.ADMIN)

    assert [u.id for u in admins] == ["user3"]
    assert _DirectoryAsyncClient.requests[0][1] == {"role": "ADMIN"}


@pytest.mark.asyncio
async def test_upstream_errors_and_bad_payloads_map_to_502(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _DirectoryAsyncClient)
    with pytest.raises(HTTPException) as bad_payload:
        await _client().find_user("broken")

    monkeypatch.setattr("httpx.AsyncClient", _FailingAsyncClient)
    with pytest.raises(HTTPException) as upstream:
        await _client().list_users()

    assert bad_payload.value.status_code == 502
    assert upstream.value.status_code == 502


@pytest.mark.asyncio
async def test_identity_provider_requires_known_actor():
    identity = IdentityProvider(InMemoryDirectory())

    with pytest.raises(AuthorizationError) as missing:
        await identity.current_actor(None)
    with pytest.raises(AuthorizationError) as unknown:
        await identity.current_actor("ghost")
    with pytest.raises(NotFoundError):
        await identity.require_user("ghost")

    assert missing.value.code == "UNAUTHENTICATED"
    assert unknown.value.code == "UNKNOWN_ACTOR"
    assert (await identity.current_actor("user8")).role == UserRole.REGISTRAR
    assert [u.id for u in await identity.list_by_role(UserRole.APPROVER)] == ["user5", "user6", "user7"]
