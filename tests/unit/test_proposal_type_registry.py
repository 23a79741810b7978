import pytest
from conftest import Cast

from app.clients.blob_store import InMemoryBlobStore
from app.contracts.proposal_types import (
    FieldType,
    ProposalField,
    ProposalTypeCreateRequest,
    ProposalTypeUpdateRequest,
)
from app.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.services.proposal_type_registry import ProposalTypeRegistry


@pytest.fixture
def registry() -> ProposalTypeRegistry:
    registry = ProposalTypeRegistry(
        InMemoryBlobStore(), clock=lambda: 1_700_000_000_000, id_factory=lambda prefix: f"{prefix}_1"
    )
    registry.seed_defaults()
    return registry


def _vendor_field() -> ProposalField:
    return ProposalField(id="vendor", name="vendor", label="Vendor", type=FieldType.TEXT, required=True)


def test_seed_defaults_creates_three_types_once(registry):
    registry.seed_defaults()

    assert [t.id for t in registry.list_types()] == ["budget-type", "equipment-type", "hiring-type"]


def test_fields_resolve_custom_then_builtin_then_empty(registry):
    assert [f.name for f in registry.get_fields_for_type("hiring-type")] == [
        "department",
        "justification",
        "timeline",
    ]
    assert [f.id for f in registry.get_fields_for_type("BUDGET")] == ["budget-amount", "budget-timeline"]
    assert registry.get_fields_for_type("OTHER") == []
    assert registry.get_fields_for_type("nope") == []


def test_options_list_builtins_before_custom_types(registry):
    options = registry.get_proposal_type_options()

    assert [o.value for o in options[:4]] == ["BUDGET", "EQUIPMENT", "HIRING", "OTHER"]
    assert options[4].label == "Budget Request"
    assert options[4].value == "budget-type"


def test_admin_can_create_update_and_delete(registry):
    created = registry.create_type(
        Cast.admin,
        ProposalTypeCreateRequest(name="Vendor Onboarding", required_fields=[_vendor_field()]),
    )
    assert created.id == "type_1"
    assert created.created_by == "user3"

    updated = registry.update_type(
        Cast.admin, created.id, ProposalTypeUpdateRequest(description="New vendors")
    )
    assert updated.description == "New vendors"
    assert updated.name == "Vendor Onboarding"
    assert [f.id for f in updated.required_fields] == ["vendor"]

    registry.delete_type(Cast.admin, created.id)
    assert registry.get_type(created.id) is None
    with pytest.raises(NotFoundError):
        registry.delete_type(Cast.admin, created.id)


def test_non_admin_cannot_manage_types(registry):
    with pytest.raises(AuthorizationError):
        registry.create_type(Cast.creator, ProposalTypeCreateRequest(name="Mine"))
    with pytest.raises(AuthorizationError):
        registry.delete_type(Cast.registrar, "budget-type")


def test_blank_name_is_rejected(registry):
    with pytest.raises(ValidationError) as exc:
        registry.create_type(Cast.admin, ProposalTypeCreateRequest(name=" "))

    assert exc.value.code == "NAME_REQUIRED"


def test_types_persist_through_blob_store():
    blob_store = InMemoryBlobStore()
    ProposalTypeRegistry(blob_store).seed_defaults()

    reloaded = ProposalTypeRegistry(blob_store)

    assert reloaded.require_type("equipment-type").name == "Equipment Request"
    assert blob_store.read("customProposalTypes")[0]["requiredFields"][0]["id"] == "budget-amount"
