from app.contracts.identity import UserRole
from app.contracts.proposals import (
    ApprovalStep,
    Comment,
    Proposal,
    ProposalStatus,
    ProposalType,
    StepStatus,
)

DAY_MS = 86_400_000


def demo_proposals(now: int) -> list[Proposal]:
    return [
        Proposal(
            id="proposal1",
            title="Marketing Budget Increase",
            description="Request to increase Q3 marketing budget by 15% to support new product launch.",
            type=ProposalType.BUDGET.value,
            budget="$15,000",
            timeline="Q3",
            created_by="user1",
            created_by_name="John Doe",
            created_at=now - DAY_MS * 2,
            updated_at=now - DAY_MS * 2,
            status=ProposalStatus.PENDING_SUPERIOR,
            assigned_to="user2",
            assigned_to_name="Jane Smith",
        ),
        Proposal(
            id="proposal2",
            title="Office Equipment Upgrade",
            description="Proposal to upgrade office computers and monitors for the design team.",
            type=ProposalType.EQUIPMENT.value,
            budget="$8,500",
            justification="Current equipment is over 5 years old and significantly slowing down productivity.",
            timeline="Next month",
            created_by="user1",
            created_by_name="John Doe",
            created_at=now - DAY_MS * 5,
            updated_at=now - DAY_MS * 3,
            status=ProposalStatus.APPROVED,
            assigned_to="user8",
            assigned_to_name="Tom Becker",
            approved_by_superior=True,
            approved_by_admin=True,
            assigned_to_registrar=True,
            approvers=["user5"],
            approvers_assigned=True,
            approval_steps=[
                ApprovalStep(
                    user_id="user2",
                    user_name="Jane Smith",
                    user_role=UserRole.SUPERIOR,
                    status=StepStatus.APPROVED,
                    timestamp=now - DAY_MS * 4,
                    comment="I approve this request. The design team needs this upgrade.",
                ),
                ApprovalStep(
                    user_id="user3",
                    user_name="Alex Johnson",
                    user_role=UserRole.ADMIN,
                    status=StepStatus.APPROVED,
                    timestamp=now - DAY_MS * 4 + 3_600_000,
                ),
                ApprovalStep(
                    user_id="user5",
                    user_name="Maria Garcia",
                    user_role=UserRole.APPROVER,
                    status=StepStatus.APPROVED,
                    timestamp=now - DAY_MS * 3 - 3_600_000,
                ),
                ApprovalStep(
                    user_id="user8",
                    user_name="Tom Becker",
                    user_role=UserRole.REGISTRAR,
                    status=StepStatus.APPROVED,
                    timestamp=now - DAY_MS * 3,
                    comment="Approved. Please proceed with the procurement process.",
                ),
            ],
            comments=[
                Comment(
                    id="comment1",
                    proposal_id="proposal2",
                    user_id="user2",
                    user_name="Jane Smith",
                    user_avatar="https://i.pravatar.cc/150?img=2",
                    text="I approve this request. The design team needs this upgrade.",
                    timestamp=now - DAY_MS * 4,
                ),
            ],
        ),
        Proposal(
            id="proposal3",
            title="New Hiring Request",
            description="Request to open a new position for a Senior Developer in the backend team.",
            type=ProposalType.HIRING.value,
            department="Engineering",
            justification="Increased workload due to new projects.",
            timeline="Q2",
            created_by="user1",
            created_by_name="John Doe",
            created_at=now - DAY_MS * 7,
            updated_at=now - DAY_MS * 6,
            status=ProposalStatus.REJECTED,
            assigned_to="user4",
            assigned_to_name="Sarah Williams",
            rejected_by="user4",
            rejected_by_name="Sarah Williams",
            rejection_reason=(
                "We need more details about the budget implications and specific "
                "requirements for this position."
            ),
            approval_steps=[
                ApprovalStep(
                    user_id="user4",
                    user_name="Sarah Williams",
                    user_role=UserRole.SUPERIOR,
                    status=StepStatus.REJECTED,
                    timestamp=now - DAY_MS * 6,
                    comment=(
                        "We need more details about the budget implications and specific "
                        "requirements for this position."
                    ),
                ),
            ],
            comments=[
                Comment(
                    id="comment3",
                    proposal_id="proposal3",
                    user_id="user4",
                    user_name="Sarah Williams",
                    user_avatar="https://i.pravatar.cc/150?img=4",
                    text=(
                        "Rejected: We need more details about the budget implications and "
                        "specific requirements for this position."
                    ),
                    timestamp=now - DAY_MS * 6,
                ),
            ],
        ),
    ]
