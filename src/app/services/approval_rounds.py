"""Fan-out/fan-in bookkeeping for the approver stage.

``approvalSteps`` is authoritative. ``pendingApprovers`` is only ever written
from :func:`derive_pending_approvers`, so a proposal persisted with a stale
pending list neither advances nor stalls because of it.
"""

from app.contracts.identity import UserRole
from app.contracts.proposals import (
    RESPONDED_STEP_STATUSES,
    ApprovalStep,
    Proposal,
    StepStatus,
)


def latest_approver_step(proposal: Proposal, user_id: str) -> ApprovalStep | None:
    for step in reversed(proposal.approval_steps):
        if step.user_id == user_id and step.user_role == UserRole.APPROVER:
            return step
    return None


def has_responded(proposal: Proposal, user_id: str) -> bool:
    step = latest_approver_step(proposal, user_id)
    return step is not None and step.status in RESPONDED_STEP_STATUSES


def has_all_approvers_responded(proposal: Proposal) -> bool:
    if not proposal.approvers:
        return False
    return all(has_responded(proposal, user_id) for user_id in proposal.approvers)


def derive_pending_approvers(proposal: Proposal) -> list[str]:
    return [user_id for user_id in proposal.approvers if not has_responded(proposal, user_id)]


def is_pending_approver(proposal: Proposal, user_id: str) -> bool:
    return user_id in proposal.approvers and not has_responded(proposal, user_id)


def round_complete(proposal: Proposal) -> bool:
    return proposal.approvers_assigned and has_all_approvers_responded(proposal)


def awaiting_registrar_reassignment(proposal: Proposal) -> bool:
    """True when the latest step is a registrar revision request."""
    if not proposal.needs_reassignment or not proposal.approval_steps:
        return False
    last = proposal.approval_steps[-1]
    return last.user_role == UserRole.REGISTRAR and last.status == StepStatus.RESUBMIT


def steps_without_stale_approvers(
    proposal: Proposal, new_roster: list[str]
) -> list[ApprovalStep]:
    """Drop prior-round steps for reassigned ids and unanswered steps for dropped ids."""
    kept: list[ApprovalStep] = []
    for step in proposal.approval_steps:
        if step.user_role == UserRole.APPROVER:
            if step.user_id in new_roster:
                continue
            if step.status == StepStatus.PENDING:
                continue
        kept.append(step)
    return kept
