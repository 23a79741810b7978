import logging

from app.clients.blob_store import BlobStore
from app.contracts.identity import User, UserRole
from app.contracts.proposal_types import (
    CustomProposalType,
    FieldType,
    ProposalField,
    ProposalTypeCreateRequest,
    ProposalTypeOption,
    ProposalTypeUpdateRequest,
)
from app.contracts.proposals import ProposalType
from app.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.services.clock import Clock, IdFactory, new_id, now_ms

logger = logging.getLogger(__name__)

BUDGET_FIELDS = (
    ProposalField(
        id="budget-amount",
        name="budget",
        label="Budget Amount",
        type=FieldType.NUMBER,
        required=True,
        description="Specify the exact budget amount needed",
    ),
    ProposalField(
        id="budget-timeline",
        name="timeline",
        label="Timeline",
        type=FieldType.TEXT,
        description="When do you need this approved by?",
    ),
)

EQUIPMENT_FIELDS = (
    ProposalField(
        id="equipment-cost",
        name="budget",
        label="Estimated Cost",
        type=FieldType.NUMBER,
        required=True,
        description="The approximate cost of the requested equipment",
    ),
    ProposalField(
        id="equipment-justification",
        name="justification",
        label="Business Justification",
        type=FieldType.TEXTAREA,
        required=True,
        description="Provide clear reasons why this equipment is needed",
    ),
    ProposalField(
        id="equipment-timeline",
        name="timeline",
        label="Timeline",
        type=FieldType.TEXT,
        description="When do you need this approved by?",
    ),
)

HIRING_FIELDS = (
    ProposalField(
        id="hiring-department",
        name="department",
        label="Department",
        type=FieldType.TEXT,
        required=True,
        description="The department where the new position will be located",
    ),
    ProposalField(
        id="hiring-justification",
        name="justification",
        label="Hiring Justification",
        type=FieldType.TEXTAREA,
        required=True,
        description="Provide clear reasons why this position needs to be filled",
    ),
    ProposalField(
        id="hiring-timeline",
        name="timeline",
        label="Timeline",
        type=FieldType.TEXT,
        description="When do you need this position filled by?",
    ),
)

BUILTIN_FIELDS: dict[str, tuple[ProposalField, ...]] = {
    ProposalType.BUDGET.value: BUDGET_FIELDS,
    ProposalType.EQUIPMENT.value: EQUIPMENT_FIELDS,
    ProposalType.HIRING.value: HIRING_FIELDS,
}

BUILTIN_OPTIONS = (
    ProposalTypeOption(label="Budget Request", value=ProposalType.BUDGET.value),
    ProposalTypeOption(label="Equipment Request", value=ProposalType.EQUIPMENT.value),
    ProposalTypeOption(label="Hiring Request", value=ProposalType.HIRING.value),
    ProposalTypeOption(label="Other", value=ProposalType.OTHER.value),
)


def default_custom_types(now: int) -> list[CustomProposalType]:
    defaults = (
        ("budget-type", "Budget Request", "Request for budget allocation", BUDGET_FIELDS),
        ("equipment-type", "Equipment Request", "Request for new equipment", EQUIPMENT_FIELDS),
        ("hiring-type", "Hiring Request", "Request to hire new personnel", HIRING_FIELDS),
    )
    return [
        CustomProposalType(
            id=type_id,
            name=name,
            description=description,
            required_fields=list(fields),
            created_at=now,
            created_by="system",
            updated_at=now,
        )
        for type_id, name, description, fields in defaults
    ]


class ProposalTypeRegistry:
    """Custom proposal type definitions; the workflow never validates against them."""

    def __init__(
        self,
        blob_store: BlobStore,
        blob_key: str = "customProposalTypes",
        clock: Clock = now_ms,
        id_factory: IdFactory = new_id,
    ):
        self._blob_store = blob_store
        self._blob_key = blob_key
        self._clock = clock
        self._id_factory = id_factory
        self._types: dict[str, CustomProposalType] | None = None

    def seed_defaults(self) -> None:
        if self._load():
            return
        for custom_type in default_custom_types(self._clock()):
            self._load()[custom_type.id] = custom_type
        self._persist()

    def list_types(self) -> list[CustomProposalType]:
        return [t.model_copy(deep=True) for t in self._load().values()]

    def get_type(self, type_id: str) -> CustomProposalType | None:
        found = self._load().get(type_id)
        return found.model_copy(deep=True) if found is not None else None

    def require_type(self, type_id: str) -> CustomProposalType:
        found = self.get_type(type_id)
        if found is None:
            raise NotFoundError(
                f"Proposal type '{type_id}' not found.",
                code="PROPOSAL_TYPE_NOT_FOUND",
                actual=type_id,
            )
        return found

    def create_type(self, actor: User, request: ProposalTypeCreateRequest) -> CustomProposalType:
        self._require_admin(actor, "create_type")
        if not request.name.strip():
            raise ValidationError(
                "Proposal type name is required.", code="NAME_REQUIRED", operation="create_type"
            )
        now = self._clock()
        custom_type = CustomProposalType(
            id=self._id_factory("type"),
            name=request.name.strip(),
            description=request.description,
            required_fields=list(request.required_fields),
            created_at=now,
            created_by=actor.id,
            updated_at=now,
        )
        self._load()[custom_type.id] = custom_type
        self._persist()
        logger.info("Custom proposal type %s created by %s", custom_type.id, actor.id)
        return custom_type.model_copy(deep=True)

    def update_type(
        self, actor: User, type_id: str, request: ProposalTypeUpdateRequest
    ) -> CustomProposalType:
        self._require_admin(actor, "update_type")
        current = self.require_type(type_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and not changes["name"].strip():
            raise ValidationError(
                "Proposal type name is required.", code="NAME_REQUIRED", operation="update_type"
            )
        if request.required_fields is not None:
            changes["required_fields"] = list(request.required_fields)
        updated = current.model_copy(update={**changes, "updated_at": self._clock()})
        self._load()[type_id] = updated
        self._persist()
        return updated.model_copy(deep=True)

    def delete_type(self, actor: User, type_id: str) -> None:
        self._require_admin(actor, "delete_type")
        if self._load().pop(type_id, None) is None:
            raise NotFoundError(
                f"Proposal type '{type_id}' not found.",
                code="PROPOSAL_TYPE_NOT_FOUND",
                operation="delete_type",
                actual=type_id,
            )
        self._persist()

    def get_fields_for_type(self, type_id_or_builtin: str) -> list[ProposalField]:
        custom_type = self._load().get(type_id_or_builtin)
        if custom_type is not None:
            return list(custom_type.required_fields)
        return list(BUILTIN_FIELDS.get(type_id_or_builtin, ()))

    def get_proposal_type_options(self) -> list[ProposalTypeOption]:
        custom = [ProposalTypeOption(label=t.name, value=t.id) for t in self._load().values()]
        return [*BUILTIN_OPTIONS, *custom]

    def _require_admin(self, actor: User, operation: str) -> None:
        if actor.role != UserRole.ADMIN:
            raise AuthorizationError(
                "Only admins can manage proposal types.",
                operation=operation,
                expected=UserRole.ADMIN,
                actual=actor.role,
            )

    def _load(self) -> dict[str, CustomProposalType]:
        if self._types is None:
            raw = self._blob_store.read(self._blob_key) or []
            self._types = {}
            for record in raw:
                custom_type = CustomProposalType.model_validate(record)
                self._types[custom_type.id] = custom_type
        return self._types

    def _persist(self) -> None:
        self._blob_store.write(
            self._blob_key,
            [t.model_dump(mode="json", by_alias=True) for t in self._load().values()],
        )
