from enum import Enum

from pydantic import BaseModel, Field

from app.contracts.identity import UserRole

FieldScalar = str | int | float | bool


class ProposalStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_SUPERIOR = "PENDING_SUPERIOR"
    PENDING_ADMIN = "PENDING_ADMIN"
    PENDING_APPROVERS = "PENDING_APPROVERS"
    PENDING_REGISTRAR = "PENDING_REGISTRAR"
    NEEDS_REVISION = "NEEDS_REVISION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ProposalType(str, Enum):
    BUDGET = "BUDGET"
    EQUIPMENT = "EQUIPMENT"
    HIRING = "HIRING"
    OTHER = "OTHER"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESUBMIT = "resubmit"


RESPONDED_STEP_STATUSES = frozenset(
    {StepStatus.APPROVED, StepStatus.REJECTED, StepStatus.RESUBMIT}
)
COMPLETED_STEP_STATUSES = frozenset({StepStatus.APPROVED, StepStatus.REJECTED})


class ApprovalStep(BaseModel):
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    user_role: UserRole = Field(alias="userRole")
    status: StepStatus
    timestamp: int | None = None
    comment: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}


class Comment(BaseModel):
    id: str
    proposal_id: str = Field(alias="proposalId")
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    user_avatar: str | None = Field(default=None, alias="userAvatar")
    text: str
    timestamp: int

    model_config = {"populate_by_name": True, "frozen": True}


class Proposal(BaseModel):
    id: str
    title: str
    description: str = ""
    type: str = ProposalType.OTHER.value
    budget: str | None = None
    timeline: str | None = None
    justification: str | None = None
    department: str | None = None
    field_values: dict[str, FieldScalar] = Field(default_factory=dict, alias="fieldValues")

    created_by: str = Field(alias="createdBy")
    created_by_name: str = Field(alias="createdByName")
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")

    status: ProposalStatus
    assigned_to: str = Field(alias="assignedTo")
    assigned_to_name: str = Field(alias="assignedToName")
    approved_by_superior: bool = Field(default=False, alias="approvedBySuperior")
    approved_by_admin: bool = Field(default=False, alias="approvedByAdmin")
    assigned_to_registrar: bool = Field(default=False, alias="assignedToRegistrar")

    approvers: list[str] = Field(default_factory=list)
    pending_approvers: list[str] = Field(default_factory=list, alias="pendingApprovers")
    approvers_assigned: bool = Field(default=False, alias="approversAssigned")
    needs_reassignment: bool = Field(default=False, alias="needsReassignment")
    approval_steps: list[ApprovalStep] = Field(default_factory=list, alias="approvalSteps")

    rejected_by: str | None = Field(default=None, alias="rejectedBy")
    rejected_by_name: str | None = Field(default=None, alias="rejectedByName")
    rejection_reason: str | None = Field(default=None, alias="rejectionReason")
    rejected_by_registrar: bool = Field(default=False, alias="rejectedByRegistrar")
    resubmitted: bool = False
    resubmitted_at: int | None = Field(default=None, alias="resubmittedAt")

    comments: list[Comment] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ProposalCreateRequest(BaseModel):
    title: str
    description: str = ""
    type: str = Field(
        default=ProposalType.OTHER.value,
        description="Built-in proposal type or the id of a custom proposal type.",
    )
    assigned_to: str = Field(alias="assignedTo", description="Superior who reviews first.")
    budget: str | None = None
    timeline: str | None = None
    justification: str | None = None
    department: str | None = None
    field_values: dict[str, FieldScalar] = Field(default_factory=dict, alias="fieldValues")

    model_config = {"populate_by_name": True}


class ProposalUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    type: str | None = None
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    budget: str | None = None
    timeline: str | None = None
    justification: str | None = None
    department: str | None = None
    field_values: dict[str, FieldScalar] | None = Field(default=None, alias="fieldValues")

    model_config = {"populate_by_name": True}


class DecisionRequest(BaseModel):
    comment: str | None = Field(
        default=None,
        description="Optional note recorded on the approval step.",
    )


class ReasonRequest(BaseModel):
    reason: str = Field(default="", description="Required reason for rejection or revision.")


class ApproverAssignmentRequest(BaseModel):
    approver_ids: list[str] = Field(default_factory=list, alias="approverIds")

    model_config = {"populate_by_name": True}


class CommentCreateRequest(BaseModel):
    text: str


class ApprovalProgress(BaseModel):
    proposal_id: str = Field(alias="proposalId")
    percentage: int
    completed_steps: int = Field(alias="completedSteps")
    total_steps: int = Field(alias="totalSteps")
    pending_approvers: list[str] = Field(default_factory=list, alias="pendingApprovers")

    model_config = {"populate_by_name": True}


class ProposalResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: Proposal


class ProposalListResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[Proposal] = Field(default_factory=list)


class CommentListResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[Comment] = Field(default_factory=list)


class ProgressResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: ApprovalProgress


class AllowedActionsResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[str] = Field(default_factory=list)
