import pytest
from fastapi.testclient import TestClient

from app.clients.blob_store import InMemoryBlobStore
from app.clients.directory_client import DEMO_USERS, InMemoryDirectory
from app.config import settings
from app.contracts.identity import User
from app.contracts.proposals import Proposal, ProposalCreateRequest, ProposalStatus
from app.services.comment_log import CommentLog
from app.services.container import reset_container
from app.services.identity_service import IdentityProvider
from app.services.proposal_store import ProposalStore
from app.services.workflow_engine import WorkflowEngine

USERS: dict[str, User] = {user.id: user for user in DEMO_USERS}


class Cast:
    creator = USERS["user1"]
    superior = USERS["user2"]
    admin = USERS["user3"]
    other_superior = USERS["user4"]
    approver_a = USERS["user5"]
    approver_b = USERS["user6"]
    approver_c = USERS["user7"]
    registrar = USERS["user8"]


@pytest.fixture
def cast() -> type[Cast]:
    return Cast


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def store(blob_store: InMemoryBlobStore) -> ProposalStore:
    return ProposalStore(blob_store)


@pytest.fixture
def identity() -> IdentityProvider:
    return IdentityProvider(InMemoryDirectory())


@pytest.fixture
def engine(store: ProposalStore, identity: IdentityProvider) -> WorkflowEngine:
    return WorkflowEngine(store=store, identity=identity, comment_log=CommentLog())


@pytest.fixture
def client(monkeypatch) -> TestClient:
    from app.main import app

    monkeypatch.setattr(settings, "store_backend", "memory")
    monkeypatch.setattr(settings, "seed_demo_data", True)
    monkeypatch.setattr(settings, "identity_service_base_url", "")
    reset_container()
    yield TestClient(app)
    reset_container()


def make_proposal(**overrides) -> Proposal:
    values = {
        "id": "p_1",
        "title": "Buy laptops",
        "created_by": "user1",
        "created_by_name": "John Doe",
        "created_at": 1_700_000_000_000,
        "updated_at": 1_700_000_000_000,
        "status": ProposalStatus.PENDING_SUPERIOR,
        "assigned_to": "user2",
        "assigned_to_name": "Jane Smith",
    }
    values.update(overrides)
    return Proposal(**values)


async def create_proposal(engine: WorkflowEngine, title: str = "Buy laptops") -> Proposal:
    return await engine.create(
        Cast.creator,
        ProposalCreateRequest(title=title, description="Ten laptops", assigned_to="user2"),
    )


async def proposal_at_approvers(engine: WorkflowEngine, approver_ids: list[str]) -> Proposal:
    proposal = await create_proposal(engine)
    await engine.approve(Cast.superior, proposal.id)
    await engine.approve(Cast.admin, proposal.id)
    return await engine.assign_approvers(Cast.admin, proposal.id, approver_ids)


async def proposal_at_registrar(engine: WorkflowEngine) -> Proposal:
    proposal = await proposal_at_approvers(engine, ["user5", "user6"])
    await engine.approve_as_approver(Cast.approver_a, proposal.id)
    return await engine.approve_as_approver(Cast.approver_b, proposal.id)
