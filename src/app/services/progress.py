from app.contracts.proposals import COMPLETED_STEP_STATUSES, ApprovalProgress, Proposal
from app.exceptions import NotFoundError
from app.services.proposal_store import ProposalStore


def approval_percentage(proposal: Proposal) -> int:
    total = len(proposal.approval_steps)
    if total == 0:
        return 0
    completed = sum(1 for step in proposal.approval_steps if step.status in COMPLETED_STEP_STATUSES)
    return round(completed / total * 100)


class ProgressProjection:
    """Read-only views derived from a proposal's step history."""

    def __init__(self, store: ProposalStore):
        self._store = store

    def get_approval_progress(self, proposal_id: str) -> int:
        return approval_percentage(self._require(proposal_id))

    def get_pending_approvers(self, proposal_id: str) -> list[str]:
        return list(self._require(proposal_id).pending_approvers)

    def summarize(self, proposal_id: str) -> ApprovalProgress:
        proposal = self._require(proposal_id)
        steps = proposal.approval_steps
        return ApprovalProgress(
            proposal_id=proposal.id,
            percentage=approval_percentage(proposal),
            completed_steps=sum(1 for s in steps if s.status in COMPLETED_STEP_STATUSES),
            total_steps=len(steps),
            pending_approvers=list(proposal.pending_approvers),
        )

    def _require(self, proposal_id: str) -> Proposal:
        proposal = self._store.get_by_id(proposal_id)
        if proposal is None:
            raise NotFoundError(
                f"Proposal '{proposal_id}' not found.",
                code="PROPOSAL_NOT_FOUND",
                proposal_id=proposal_id,
            )
        return proposal
