"""Proposal lifecycle state machine.

Stages run Superior -> Admin -> Approvers (fan-out/fan-in) -> Registrar.
Each operation is one transaction: under the proposal's lock it reads a copy
from the store, checks preconditions through the authorization table, mutates
the copy and writes it back. A failed precondition raises before anything is
written, so the stored proposal is left untouched.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from prometheus_client import Counter

from app.contracts.identity import User, UserRole
from app.contracts.proposals import (
    ApprovalStep,
    Proposal,
    ProposalCreateRequest,
    ProposalStatus,
    ProposalUpdateRequest,
    StepStatus,
)
from app.exceptions import NotFoundError, StateError, ValidationError, WorkflowError
from app.services.approval_rounds import (
    derive_pending_approvers,
    latest_approver_step,
    round_complete,
    steps_without_stale_approvers,
)
from app.services.clock import Clock, IdFactory, new_id, now_ms
from app.services.comment_log import (
    REGISTRAR_REVISION_PREFIX,
    REJECTED_PREFIX,
    REVISION_PREFIX,
    CommentLog,
)
from app.services.identity_service import IdentityProvider
from app.services.proposal_store import ProposalStore
from app.services.workflow_policy import WorkflowOperation, authorize

logger = logging.getLogger(__name__)

REVIEWER_SELECTION_STATUSES = (ProposalStatus.DRAFT, ProposalStatus.PENDING_SUPERIOR)

WORKFLOW_TRANSITIONS = Counter(
    "proposal_workflow_transitions_total",
    "Proposal workflow operations by outcome.",
    ["operation", "outcome"],
)


class WorkflowEngine:
    def __init__(
        self,
        store: ProposalStore,
        identity: IdentityProvider,
        comment_log: CommentLog,
        clock: Clock = now_ms,
        id_factory: IdFactory = new_id,
    ):
        self._store = store
        self._identity = identity
        self._comments = comment_log
        self._clock = clock
        self._id_factory = id_factory
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    # -- queries --------------------------------------------------------------

    def get_proposal(self, proposal_id: str) -> Proposal:
        proposal = self._store.get_by_id(proposal_id)
        if proposal is None:
            raise _proposal_not_found("get", proposal_id)
        return proposal

    def list_proposals(self, actor: User, scope: str = "all") -> list[Proposal]:
        if scope == "mine":
            return self._store.filter_by_creator(actor.id)
        if scope == "attention":
            return self._store.filter_assigned_or_pending_for(actor.id, actor.role)
        return self._store.list_all()

    # -- creation and editing -------------------------------------------------

    async def create(self, actor: User, request: ProposalCreateRequest) -> Proposal:
        operation = "create"
        try:
            if not request.title.strip():
                raise ValidationError(
                    "Proposal title is required.", code="TITLE_REQUIRED", operation=operation
                )
            reviewer = await self._require_superior(request.assigned_to, operation)
        except WorkflowError as exc:
            self._record_failure(operation, None, actor, exc)
            raise

        now = self._clock()
        proposal = Proposal(
            id=self._id_factory("proposal"),
            title=request.title.strip(),
            description=request.description,
            type=request.type or "OTHER",
            budget=request.budget,
            timeline=request.timeline,
            justification=request.justification,
            department=request.department,
            field_values=dict(request.field_values),
            created_by=actor.id,
            created_by_name=actor.name,
            created_at=now,
            updated_at=now,
            status=ProposalStatus.PENDING_SUPERIOR,
            assigned_to=reviewer.id,
            assigned_to_name=reviewer.name,
        )
        async with self._proposal_lock(proposal.id):
            self._store.put(proposal)
        self._record_commit(operation, proposal.id, actor, None, proposal.status)
        return proposal

    async def update(
        self, actor: User, proposal_id: str, changes: ProposalUpdateRequest
    ) -> Proposal:
        operation = WorkflowOperation.UPDATE
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            data = changes.model_dump(exclude_unset=True)
            if "title" in data:
                data["title"] = (data["title"] or "").strip()
                if not data["title"]:
                    raise ValidationError(
                        "Proposal title is required.",
                        code="TITLE_REQUIRED",
                        operation=operation.value,
                        proposal_id=proposal_id,
                    )
            new_assignee = data.pop("assigned_to", None)
            if new_assignee and new_assignee != proposal.assigned_to:
                if proposal.status not in REVIEWER_SELECTION_STATUSES:
                    raise StateError(
                        "The reviewer can only be changed before the superior has acted.",
                        code="REASSIGNMENT_NOT_ALLOWED",
                        operation=operation.value,
                        proposal_id=proposal_id,
                        expected=list(REVIEWER_SELECTION_STATUSES),
                        actual=proposal.status,
                    )
                reviewer = await self._require_superior(new_assignee, operation.value, proposal_id)
                proposal.assigned_to = reviewer.id
                proposal.assigned_to_name = reviewer.name
            for required in ("description", "type", "field_values"):
                if data.get(required) is None:
                    data.pop(required, None)
            for name, value in data.items():
                setattr(proposal, name, value)
        return proposal

    async def delete(self, actor: User, proposal_id: str) -> None:
        operation = WorkflowOperation.DELETE
        async with self._proposal_lock(proposal_id):
            try:
                proposal = self.get_proposal(proposal_id)
                authorize(operation, actor, proposal)
            except WorkflowError as exc:
                self._record_failure(operation.value, proposal_id, actor, exc)
                raise
            self._store.delete(proposal_id)
        self._record_commit(operation.value, proposal_id, actor, proposal.status, None)

    async def add_comment(self, actor: User, proposal_id: str, text: str) -> Proposal:
        async with self._transaction(WorkflowOperation.ADD_COMMENT, actor, proposal_id) as proposal:
            authorize(WorkflowOperation.ADD_COMMENT, actor, proposal)
            if not text.strip():
                raise ValidationError(
                    "Comment text is required.",
                    code="COMMENT_REQUIRED",
                    operation=WorkflowOperation.ADD_COMMENT.value,
                    proposal_id=proposal_id,
                )
            self._comments.append(proposal, actor, text)
        return proposal

    # -- superior / admin stages ----------------------------------------------

    async def approve(self, actor: User, proposal_id: str, comment: str | None = None) -> Proposal:
        async with self._transaction(WorkflowOperation.APPROVE, actor, proposal_id) as proposal:
            authorize(WorkflowOperation.APPROVE, actor, proposal)
            if proposal.status == ProposalStatus.PENDING_SUPERIOR:
                admins = await self._identity.list_by_role(UserRole.ADMIN)
                if not admins:
                    raise ValidationError(
                        "No admin is available to take over the proposal.",
                        code="NO_ADMIN_AVAILABLE",
                        operation=WorkflowOperation.APPROVE.value,
                        proposal_id=proposal_id,
                    )
                proposal.approved_by_superior = True
                proposal.status = ProposalStatus.PENDING_ADMIN
                proposal.assigned_to = admins[0].id
                proposal.assigned_to_name = admins[0].name
            else:
                proposal.approved_by_admin = True
                proposal.status = ProposalStatus.PENDING_APPROVERS
                proposal.approvers = []
                proposal.pending_approvers = []
                proposal.approvers_assigned = False
                proposal.needs_reassignment = False
                proposal.assigned_to_registrar = False
            self._append_step(proposal, actor, StepStatus.APPROVED, comment)
            if comment:
                self._comments.append(proposal, actor, comment)
        return proposal

    async def reject(self, actor: User, proposal_id: str, reason: str) -> Proposal:
        async with self._transaction(WorkflowOperation.REJECT, actor, proposal_id) as proposal:
            authorize(WorkflowOperation.REJECT, actor, proposal)
            reason = _require_reason(reason, WorkflowOperation.REJECT, proposal_id)
            proposal.status = ProposalStatus.REJECTED
            proposal.rejected_by = actor.id
            proposal.rejected_by_name = actor.name
            proposal.rejection_reason = reason
            proposal.rejected_by_registrar = False
            self._append_step(proposal, actor, StepStatus.REJECTED, reason)
            self._comments.append_workflow_note(proposal, actor, REJECTED_PREFIX, reason)
        return proposal

    async def request_revision(self, actor: User, proposal_id: str, reason: str) -> Proposal:
        operation = WorkflowOperation.REQUEST_REVISION
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            reason = _require_reason(reason, operation, proposal_id)
            proposal.status = ProposalStatus.NEEDS_REVISION
            proposal.needs_reassignment = True
            proposal.rejected_by = actor.id
            proposal.rejected_by_name = actor.name
            proposal.rejection_reason = reason
            self._append_step(proposal, actor, StepStatus.RESUBMIT, reason)
            self._comments.append_workflow_note(proposal, actor, REVISION_PREFIX, reason)
        return proposal

    async def resubmit(self, actor: User, proposal_id: str) -> Proposal:
        async with self._transaction(WorkflowOperation.RESUBMIT, actor, proposal_id) as proposal:
            authorize(WorkflowOperation.RESUBMIT, actor, proposal)
            superior = _first_superior_step(proposal)
            if superior is not None:
                proposal.assigned_to = superior.user_id
                proposal.assigned_to_name = superior.user_name
            proposal.status = ProposalStatus.PENDING_SUPERIOR
            proposal.rejected_by = None
            proposal.rejected_by_name = None
            proposal.rejection_reason = None
            proposal.approved_by_superior = False
            proposal.approved_by_admin = False
            proposal.approvers_assigned = False
            proposal.needs_reassignment = False
            proposal.assigned_to_registrar = False
            proposal.resubmitted = True
            proposal.resubmitted_at = self._clock()
        return proposal

    # -- approver fan-out / fan-in --------------------------------------------

    async def assign_approvers(
        self, actor: User, proposal_id: str, approver_ids: list[str]
    ) -> Proposal:
        operation = WorkflowOperation.ASSIGN_APPROVERS
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            roster = list(dict.fromkeys(i for i in approver_ids if i))
            if not roster:
                message = (
                    "Approvers must be reassigned after a revision; the roster cannot be empty."
                    if proposal.needs_reassignment
                    else "At least one approver is required."
                )
                raise ValidationError(
                    message,
                    code="EMPTY_ROSTER",
                    operation=operation.value,
                    proposal_id=proposal_id,
                )
            approvers: list[User] = []
            for user_id in roster:
                user = await self._identity.require_user(
                    user_id, operation=operation.value, proposal_id=proposal_id
                )
                if user.role != UserRole.APPROVER:
                    raise ValidationError(
                        f"User '{user_id}' is not an approver.",
                        code="NOT_AN_APPROVER",
                        operation=operation.value,
                        proposal_id=proposal_id,
                        expected=UserRole.APPROVER,
                        actual=user.role,
                    )
                approvers.append(user)

            steps = steps_without_stale_approvers(proposal, roster)
            steps.extend(
                ApprovalStep(
                    user_id=user.id,
                    user_name=user.name,
                    user_role=user.role,
                    status=StepStatus.PENDING,
                )
                for user in approvers
            )
            proposal.approval_steps = steps
            proposal.approvers = roster
            proposal.pending_approvers = list(roster)
            proposal.approvers_assigned = True
            proposal.needs_reassignment = False
            proposal.assigned_to_registrar = False
            proposal.status = ProposalStatus.PENDING_APPROVERS
        return proposal

    async def approve_as_approver(
        self, actor: User, proposal_id: str, comment: str | None = None
    ) -> Proposal:
        operation = WorkflowOperation.APPROVE_AS_APPROVER
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            await self._record_approver_response(
                operation, proposal, actor, StepStatus.APPROVED, comment
            )
        return proposal

    async def reject_as_approver(self, actor: User, proposal_id: str, reason: str) -> Proposal:
        operation = WorkflowOperation.REJECT_AS_APPROVER
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            reason = _require_reason(reason, operation, proposal_id)
            self._comments.append_workflow_note(proposal, actor, REJECTED_PREFIX, reason)
            # One rejection does not end the round; the registrar decides once all respond.
            await self._record_approver_response(
                operation, proposal, actor, StepStatus.REJECTED, reason
            )
        return proposal

    async def assign_to_registrar(self, actor: User, proposal_id: str) -> Proposal:
        operation = WorkflowOperation.ASSIGN_TO_REGISTRAR
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            if not round_complete(proposal):
                still_pending = derive_pending_approvers(proposal)
                raise StateError(
                    "All approvers must respond before the proposal goes to the registrar.",
                    code="APPROVERS_PENDING",
                    operation=operation.value,
                    proposal_id=proposal_id,
                    expected=[],
                    actual=still_pending or ["<no roster assigned>"],
                )
            await self._hand_to_registrar(proposal, operation)
        return proposal

    # -- registrar stage ------------------------------------------------------

    async def approve_as_registrar(
        self, actor: User, proposal_id: str, comment: str | None = None
    ) -> Proposal:
        operation = WorkflowOperation.APPROVE_AS_REGISTRAR
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            proposal.status = ProposalStatus.APPROVED
            self._append_step(proposal, actor, StepStatus.APPROVED, comment)
            if comment:
                self._comments.append(proposal, actor, comment)
        return proposal

    async def reject_as_registrar(self, actor: User, proposal_id: str, reason: str) -> Proposal:
        operation = WorkflowOperation.REJECT_AS_REGISTRAR
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            reason = _require_reason(reason, operation, proposal_id)
            proposal.status = ProposalStatus.REJECTED
            proposal.rejected_by_registrar = True
            proposal.rejected_by = actor.id
            proposal.rejected_by_name = actor.name
            proposal.rejection_reason = reason
            self._append_step(proposal, actor, StepStatus.REJECTED, reason)
            self._comments.append_workflow_note(proposal, actor, REJECTED_PREFIX, reason)
        return proposal

    async def request_revision_as_registrar(
        self, actor: User, proposal_id: str, reason: str
    ) -> Proposal:
        operation = WorkflowOperation.REQUEST_REVISION_AS_REGISTRAR
        async with self._transaction(operation, actor, proposal_id) as proposal:
            authorize(operation, actor, proposal)
            reason = _require_reason(reason, operation, proposal_id)
            proposal.status = ProposalStatus.NEEDS_REVISION
            proposal.needs_reassignment = True
            proposal.rejection_reason = reason
            self._append_step(proposal, actor, StepStatus.RESUBMIT, reason)
            self._comments.append_workflow_note(
                proposal, actor, REGISTRAR_REVISION_PREFIX, reason
            )
        return proposal

    # -- internals ------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(
        self, operation: WorkflowOperation, actor: User, proposal_id: str
    ) -> AsyncIterator[Proposal]:
        async with self._proposal_lock(proposal_id):
            try:
                proposal = self._store.get_by_id(proposal_id)
                if proposal is None:
                    raise _proposal_not_found(operation.value, proposal_id)
                from_status = proposal.status
                yield proposal
            except WorkflowError as exc:
                self._record_failure(operation.value, proposal_id, actor, exc)
                raise
            proposal.updated_at = self._clock()
            self._store.put(proposal)
        self._record_commit(operation.value, proposal_id, actor, from_status, proposal.status)

    async def _record_approver_response(
        self,
        operation: WorkflowOperation,
        proposal: Proposal,
        actor: User,
        status: StepStatus,
        comment: str | None,
    ) -> None:
        responded = ApprovalStep(
            user_id=actor.id,
            user_name=actor.name,
            user_role=UserRole.APPROVER,
            status=status,
            timestamp=self._clock(),
            comment=comment,
        )
        pending_step = latest_approver_step(proposal, actor.id)
        steps = list(proposal.approval_steps)
        if pending_step is not None and pending_step.status == StepStatus.PENDING:
            steps[_last_index(steps, pending_step)] = responded
        else:
            steps.append(responded)
        proposal.approval_steps = steps
        proposal.pending_approvers = derive_pending_approvers(proposal)
        if round_complete(proposal):
            await self._hand_to_registrar(proposal, operation)

    async def _hand_to_registrar(self, proposal: Proposal, operation: WorkflowOperation) -> None:
        registrars = await self._identity.list_by_role(UserRole.REGISTRAR)
        if not registrars:
            raise ValidationError(
                "No registrar is available to take over the proposal.",
                code="NO_REGISTRAR_AVAILABLE",
                operation=operation.value,
                proposal_id=proposal.id,
            )
        proposal.status = ProposalStatus.PENDING_REGISTRAR
        proposal.assigned_to_registrar = True
        proposal.pending_approvers = derive_pending_approvers(proposal)
        proposal.assigned_to = registrars[0].id
        proposal.assigned_to_name = registrars[0].name

    async def _require_superior(
        self, user_id: str, operation: str, proposal_id: str | None = None
    ) -> User:
        reviewer = await self._identity.require_user(
            user_id, operation=operation, proposal_id=proposal_id
        )
        if reviewer.role != UserRole.SUPERIOR:
            raise ValidationError(
                f"User '{reviewer.id}' is not a superior and cannot review proposals.",
                code="ASSIGNEE_NOT_SUPERIOR",
                operation=operation,
                proposal_id=proposal_id,
                expected=UserRole.SUPERIOR,
                actual=reviewer.role,
            )
        return reviewer

    @asynccontextmanager
    async def _proposal_lock(self, proposal_id: str) -> AsyncIterator[None]:
        """Serialize work on one proposal; the entry is dropped with its last holder."""
        lock = self._locks.setdefault(proposal_id, asyncio.Lock())
        self._lock_holders[proposal_id] = self._lock_holders.get(proposal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[proposal_id] -= 1
            if not self._lock_holders[proposal_id]:
                del self._lock_holders[proposal_id]
                del self._locks[proposal_id]

    def _append_step(
        self, proposal: Proposal, actor: User, status: StepStatus, comment: str | None
    ) -> None:
        step = ApprovalStep(
            user_id=actor.id,
            user_name=actor.name,
            user_role=actor.role,
            status=status,
            timestamp=self._clock(),
            comment=comment or None,
        )
        proposal.approval_steps = [*proposal.approval_steps, step]

    def _record_commit(
        self,
        operation: str,
        proposal_id: str,
        actor: User,
        from_status: ProposalStatus | None,
        to_status: ProposalStatus | None,
    ) -> None:
        WORKFLOW_TRANSITIONS.labels(operation=operation, outcome="committed").inc()
        logger.info(
            "proposal %s: %s by %s (%s -> %s)",
            proposal_id,
            operation,
            actor.id,
            from_status.value if from_status else "-",
            to_status.value if to_status else "-",
            extra={"proposal_id": proposal_id, "operation": operation, "actor_id": actor.id},
        )

    def _record_failure(
        self, operation: str, proposal_id: str | None, actor: User, exc: WorkflowError
    ) -> None:
        WORKFLOW_TRANSITIONS.labels(operation=operation, outcome=exc.code).inc()
        logger.warning(
            "proposal %s: %s by %s refused [%s] %s",
            proposal_id or "-",
            operation,
            actor.id,
            exc.code,
            exc.message,
            extra={"proposal_id": proposal_id, "operation": operation, "actor_id": actor.id},
        )


def _proposal_not_found(operation: str, proposal_id: str) -> NotFoundError:
    return NotFoundError(
        f"Proposal '{proposal_id}' not found.",
        code="PROPOSAL_NOT_FOUND",
        operation=operation,
        proposal_id=proposal_id,
    )


def _require_reason(reason: str | None, operation: WorkflowOperation, proposal_id: str) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError(
            "A reason is required.",
            code="REASON_REQUIRED",
            operation=operation.value,
            proposal_id=proposal_id,
        )
    return cleaned


def _first_superior_step(proposal: Proposal) -> ApprovalStep | None:
    return next((s for s in proposal.approval_steps if s.user_role == UserRole.SUPERIOR), None)


def _last_index(steps: list[ApprovalStep], target: ApprovalStep) -> int:
    for index in range(len(steps) - 1, -1, -1):
        if steps[index] is target:
            return index
    raise ValueError("step not in sequence")
