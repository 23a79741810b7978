"""Authorization table for proposal workflow operations.

``AUTHORIZATION_TABLE`` maps each operation to the statuses it may run in and,
per status, the actor relationship required. Every engine transition and the
allowed-actions projection consult this table; nothing else decides who may do
what.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from app.contracts.identity import User, UserRole
from app.contracts.proposals import Proposal, ProposalStatus
from app.exceptions import AuthorizationError, StateError
from app.services.approval_rounds import awaiting_registrar_reassignment, is_pending_approver


class WorkflowOperation(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_REVISION = "request_revision"
    RESUBMIT = "resubmit"
    ASSIGN_APPROVERS = "assign_approvers"
    APPROVE_AS_APPROVER = "approve_as_approver"
    REJECT_AS_APPROVER = "reject_as_approver"
    ASSIGN_TO_REGISTRAR = "assign_to_registrar"
    APPROVE_AS_REGISTRAR = "approve_as_registrar"
    REJECT_AS_REGISTRAR = "reject_as_registrar"
    REQUEST_REVISION_AS_REGISTRAR = "request_revision_as_registrar"
    UPDATE = "update"
    ADD_COMMENT = "add_comment"
    DELETE = "delete"


class ActorRequirement(str, Enum):
    ANY = "any"
    CREATOR = "creator"
    ASSIGNEE = "assignee"
    ADMIN = "admin"
    REGISTRAR = "registrar"
    PENDING_APPROVER = "pending_approver"
    CREATOR_OR_ADMIN = "creator_or_admin"


@dataclass(frozen=True)
class StateGuard:
    check: Callable[[Proposal], bool]
    code: str
    message: str


_S = ProposalStatus
_A = ActorRequirement
_EDITABLE_BY_CREATOR = frozenset({_S.DRAFT, _S.REJECTED, _S.PENDING_SUPERIOR, _S.NEEDS_REVISION})
_PRE_APPROVER_STAGES = {_S.PENDING_SUPERIOR: _A.ASSIGNEE, _S.PENDING_ADMIN: _A.ADMIN}

AUTHORIZATION_TABLE: dict[WorkflowOperation, dict[ProposalStatus, ActorRequirement]] = {
    WorkflowOperation.APPROVE: dict(_PRE_APPROVER_STAGES),
    WorkflowOperation.REJECT: dict(_PRE_APPROVER_STAGES),
    WorkflowOperation.REQUEST_REVISION: dict(_PRE_APPROVER_STAGES),
    WorkflowOperation.RESUBMIT: {_S.REJECTED: _A.CREATOR, _S.NEEDS_REVISION: _A.CREATOR},
    WorkflowOperation.ASSIGN_APPROVERS: {_S.PENDING_APPROVERS: _A.ADMIN, _S.NEEDS_REVISION: _A.ADMIN},
    WorkflowOperation.APPROVE_AS_APPROVER: {_S.PENDING_APPROVERS: _A.PENDING_APPROVER},
    WorkflowOperation.REJECT_AS_APPROVER: {_S.PENDING_APPROVERS: _A.PENDING_APPROVER},
    WorkflowOperation.ASSIGN_TO_REGISTRAR: {_S.PENDING_APPROVERS: _A.ADMIN},
    WorkflowOperation.APPROVE_AS_REGISTRAR: {_S.PENDING_REGISTRAR: _A.REGISTRAR},
    WorkflowOperation.REJECT_AS_REGISTRAR: {_S.PENDING_REGISTRAR: _A.REGISTRAR},
    WorkflowOperation.REQUEST_REVISION_AS_REGISTRAR: {_S.PENDING_REGISTRAR: _A.REGISTRAR},
    WorkflowOperation.UPDATE: {
        status: _A.CREATOR_OR_ADMIN if status in _EDITABLE_BY_CREATOR else _A.ADMIN
        for status in ProposalStatus
    },
    WorkflowOperation.ADD_COMMENT: {status: _A.ANY for status in ProposalStatus},
    WorkflowOperation.DELETE: {status: _A.CREATOR_OR_ADMIN for status in ProposalStatus},
}

STATE_GUARDS: dict[tuple[WorkflowOperation, ProposalStatus], StateGuard] = {
    (WorkflowOperation.RESUBMIT, _S.REJECTED): StateGuard(
        check=lambda p: not p.rejected_by_registrar,
        code="RESUBMISSION_BLOCKED",
        message="Proposals rejected by the registrar cannot be resubmitted.",
    ),
    (WorkflowOperation.RESUBMIT, _S.NEEDS_REVISION): StateGuard(
        check=lambda p: not p.rejected_by_registrar,
        code="RESUBMISSION_BLOCKED",
        message="Proposals rejected by the registrar cannot be resubmitted.",
    ),
    (WorkflowOperation.ASSIGN_APPROVERS, _S.NEEDS_REVISION): StateGuard(
        check=awaiting_registrar_reassignment,
        code="INVALID_STATE",
        message="Approvers can only be reassigned after a registrar revision request.",
    ),
}


def actor_satisfies(requirement: ActorRequirement, actor: User, proposal: Proposal) -> bool:
    if requirement == ActorRequirement.ANY:
        return True
    if requirement == ActorRequirement.CREATOR:
        return actor.id == proposal.created_by
    if requirement == ActorRequirement.ASSIGNEE:
        return actor.id == proposal.assigned_to
    if requirement == ActorRequirement.ADMIN:
        return actor.role == UserRole.ADMIN
    if requirement == ActorRequirement.REGISTRAR:
        return actor.role == UserRole.REGISTRAR
    if requirement == ActorRequirement.PENDING_APPROVER:
        return is_pending_approver(proposal, actor.id)
    return actor.id == proposal.created_by or actor.role == UserRole.ADMIN


def authorize(operation: WorkflowOperation, actor: User, proposal: Proposal) -> ActorRequirement:
    """Check state then actor for ``operation``; raise on the first failed precondition."""
    rules = AUTHORIZATION_TABLE[operation]
    requirement = rules.get(proposal.status)
    if requirement is None:
        raise StateError(
            f"Cannot {operation.value} a proposal in status {proposal.status.value}.",
            operation=operation.value,
            proposal_id=proposal.id,
            expected=list(rules),
            actual=proposal.status,
        )

    guard = STATE_GUARDS.get((operation, proposal.status))
    if guard is not None and not guard.check(proposal):
        raise StateError(
            guard.message,
            code=guard.code,
            operation=operation.value,
            proposal_id=proposal.id,
            actual=proposal.status,
        )

    if not actor_satisfies(requirement, actor, proposal):
        raise AuthorizationError(
            f"Actor '{actor.id}' ({actor.role.value}) may not {operation.value} "
            f"proposal '{proposal.id}'; requires {requirement.value}.",
            operation=operation.value,
            proposal_id=proposal.id,
            expected=requirement,
            actual=actor.role,
        )
    return requirement


def is_allowed(operation: WorkflowOperation, actor: User, proposal: Proposal) -> bool:
    requirement = AUTHORIZATION_TABLE[operation].get(proposal.status)
    if requirement is None:
        return False
    guard = STATE_GUARDS.get((operation, proposal.status))
    if guard is not None and not guard.check(proposal):
        return False
    return actor_satisfies(requirement, actor, proposal)


def allowed_operations(actor: User, proposal: Proposal) -> list[WorkflowOperation]:
    return [op for op in WorkflowOperation if is_allowed(op, actor, proposal)]


def can_resubmit(actor: User, proposal: Proposal) -> bool:
    return is_allowed(WorkflowOperation.RESUBMIT, actor, proposal)
