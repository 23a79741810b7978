import pytest

from conftest import make_proposal

from app.clients.blob_store import InMemoryBlobStore
from app.contracts.identity import UserRole
from app.contracts.proposals import ProposalStatus
from app.services.proposal_store import ProposalStore


def test_put_persists_full_collection_with_camel_case_keys():
    blob_store = InMemoryBlobStore()
    store = ProposalStore(blob_store)

    store.put(make_proposal(id="p_1"))
    store.put(make_proposal(id="p_2", title="Second"))

    records = blob_store.read("proposals")
    assert [r["id"] for r in records] == ["p_1", "p_2"]
    assert records[0]["createdBy"] == "user1"
    assert records[0]["pendingApprovers"] == []


def test_reads_return_copies():
    store = ProposalStore(InMemoryBlobStore())
    store.put(make_proposal())

    copy = store.get_by_id("p_1")
    copy.title = "mutated"

    assert store.get_by_id("p_1").title == "Buy laptops"


def test_load_reads_existing_blob():
    seeded = InMemoryBlobStore(
        {"proposals": [make_proposal(id="p_9").model_dump(mode="json", by_alias=True)]}
    )
    store = ProposalStore(seeded)

    assert [p.id for p in store.load()] == ["p_9"]
    assert store.is_empty() is False


def test_delete_reports_whether_anything_was_removed():
    store = ProposalStore(InMemoryBlobStore())
    store.put(make_proposal())

    assert store.delete("p_1") is True
    assert store.delete("p_1") is False
    assert store.is_empty() is True


def test_attention_filter_by_role_and_roster():
    store = ProposalStore(InMemoryBlobStore())
    store.save_all(
        [
            make_proposal(id="superior"),
            make_proposal(id="admin", status=ProposalStatus.PENDING_ADMIN, assigned_to="user3"),
            make_proposal(
                id="approvers",
                status=ProposalStatus.PENDING_APPROVERS,
                assigned_to="user3",
                approvers=["user5"],
                pending_approvers=["user5"],
            ),
            make_proposal(id="registrar", status=ProposalStatus.PENDING_REGISTRAR, assigned_to="user8"),
            make_proposal(id="done", status=ProposalStatus.APPROVED, assigned_to="user2"),
        ]
    )

    def ids(actor_id, role):
        return [p.id for p in store.filter_assigned_or_pending_for(actor_id, role)]

    assert ids("user2", UserRole.SUPERIOR) == ["superior"]
    assert ids("user3", UserRole.ADMIN) == ["admin", "approvers"]
    assert ids("user5", UserRole.APPROVER) == ["approvers"]
    assert ids("user6", UserRole.APPROVER) == []
    assert ids("someone", UserRole.REGISTRAR) == ["registrar"]
    assert len(store.filter_by_creator("user1")) == 5


class _FailingBlobStore(InMemoryBlobStore):
    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def write(self, key, value):
        if self.fail_writes:
            raise OSError("disk full")
        super().write(key, value)


def test_failed_write_leaves_collection_unchanged():
    blob_store = _FailingBlobStore()
    store = ProposalStore(blob_store)
    store.put(make_proposal(id="p_1"))
    blob_store.fail_writes = True

    with pytest.raises(OSError):
        store.put(make_proposal(id="p_1", title="Changed"))
    with pytest.raises(OSError):
        store.put(make_proposal(id="p_2"))
    with pytest.raises(OSError):
        store.delete("p_1")
    with pytest.raises(OSError):
        store.save_all([])

    assert [p.id for p in store.list_all()] == ["p_1"]
    assert store.get_by_id("p_1").title == "Buy laptops"
    assert [r["title"] for r in blob_store.read("proposals")] == ["Buy laptops"]
