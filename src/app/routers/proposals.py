from typing import Literal

from fastapi import APIRouter, Header, Query, Response, status

from app.config import settings
from app.contracts.identity import User
from app.contracts.proposals import (
    AllowedActionsResponse,
    ApproverAssignmentRequest,
    CommentCreateRequest,
    CommentListResponse,
    DecisionRequest,
    ProgressResponse,
    Proposal,
    ProposalCreateRequest,
    ProposalListResponse,
    ProposalResponse,
    ProposalUpdateRequest,
    ReasonRequest,
)
from app.middleware.correlation import correlation_id_var
from app.services.comment_log import CommentLog
from app.services.container import (
    get_comment_log,
    get_identity_provider,
    get_progress_projection,
    get_workflow_engine,
)
from app.services.progress import ProgressProjection
from app.services.workflow_engine import WorkflowEngine
from app.services.workflow_policy import allowed_operations

router = APIRouter(prefix="/api/v1/proposals", tags=["proposals"])

ActorHeader = Header(default=None, alias="X-Actor-Id")


def _workflow_engine() -> WorkflowEngine:
    return get_workflow_engine()


def _progress_projection() -> ProgressProjection:
    return get_progress_projection()


def _comment_log() -> CommentLog:
    return get_comment_log()


async def _actor(actor_id: str | None) -> User:
    return await get_identity_provider().current_actor(actor_id)


def _comment(request: DecisionRequest | None) -> str | None:
    return request.comment if request is not None else None


def _envelope(proposal: Proposal) -> ProposalResponse:
    return ProposalResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=proposal,
    )


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    request: ProposalCreateRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().create(actor, request))


@router.get("", response_model=ProposalListResponse)
async def list_proposals(
    scope: Literal["all", "mine", "attention"] = Query(default="all"),
    actor_id: str | None = ActorHeader,
) -> ProposalListResponse:
    actor = await _actor(actor_id)
    return ProposalListResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_workflow_engine().list_proposals(actor, scope),
    )


@router.get("/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(proposal_id: str, actor_id: str | None = ActorHeader) -> ProposalResponse:
    await _actor(actor_id)
    return _envelope(_workflow_engine().get_proposal(proposal_id))


@router.patch("/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: str,
    request: ProposalUpdateRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().update(actor, proposal_id, request))


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_proposal(proposal_id: str, actor_id: str | None = ActorHeader) -> Response:
    actor = await _actor(actor_id)
    await _workflow_engine().delete(actor, proposal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{proposal_id}/approve", response_model=ProposalResponse)
async def approve_proposal(
    proposal_id: str,
    request: DecisionRequest | None = None,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().approve(actor, proposal_id, _comment(request)))


@router.post("/{proposal_id}/reject", response_model=ProposalResponse)
async def reject_proposal(
    proposal_id: str,
    request: ReasonRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().reject(actor, proposal_id, request.reason))


@router.post("/{proposal_id}/request-revision", response_model=ProposalResponse)
async def request_revision(
    proposal_id: str,
    request: ReasonRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().request_revision(actor, proposal_id, request.reason))


@router.post("/{proposal_id}/resubmit", response_model=ProposalResponse)
async def resubmit_proposal(
    proposal_id: str, actor_id: str | None = ActorHeader
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().resubmit(actor, proposal_id))


@router.post("/{proposal_id}/approvers", response_model=ProposalResponse)
async def assign_approvers(
    proposal_id: str,
    request: ApproverAssignmentRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().assign_approvers(actor, proposal_id, request.approver_ids)
    )


@router.post("/{proposal_id}/approvers/approve", response_model=ProposalResponse)
async def approve_as_approver(
    proposal_id: str,
    request: DecisionRequest | None = None,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().approve_as_approver(actor, proposal_id, _comment(request))
    )


@router.post("/{proposal_id}/approvers/reject", response_model=ProposalResponse)
async def reject_as_approver(
    proposal_id: str,
    request: ReasonRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().reject_as_approver(actor, proposal_id, request.reason)
    )


@router.post("/{proposal_id}/assign-to-registrar", response_model=ProposalResponse)
async def assign_to_registrar(
    proposal_id: str, actor_id: str | None = ActorHeader
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().assign_to_registrar(actor, proposal_id))


@router.post("/{proposal_id}/registrar/approve", response_model=ProposalResponse)
async def approve_as_registrar(
    proposal_id: str,
    request: DecisionRequest | None = None,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().approve_as_registrar(actor, proposal_id, _comment(request))
    )


@router.post("/{proposal_id}/registrar/reject", response_model=ProposalResponse)
async def reject_as_registrar(
    proposal_id: str,
    request: ReasonRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().reject_as_registrar(actor, proposal_id, request.reason)
    )


@router.post("/{proposal_id}/registrar/request-revision", response_model=ProposalResponse)
async def request_revision_as_registrar(
    proposal_id: str,
    request: ReasonRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(
        await _workflow_engine().request_revision_as_registrar(actor, proposal_id, request.reason)
    )


@router.get("/{proposal_id}/comments", response_model=CommentListResponse)
async def list_comments(
    proposal_id: str,
    kind: Literal["all", "conversation", "workflow"] = Query(default="all"),
    actor_id: str | None = ActorHeader,
) -> CommentListResponse:
    await _actor(actor_id)
    proposal = _workflow_engine().get_proposal(proposal_id)
    return CommentListResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_comment_log().entries(proposal, kind),
    )


@router.post(
    "/{proposal_id}/comments",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    proposal_id: str,
    request: CommentCreateRequest,
    actor_id: str | None = ActorHeader,
) -> ProposalResponse:
    actor = await _actor(actor_id)
    return _envelope(await _workflow_engine().add_comment(actor, proposal_id, request.text))


@router.get("/{proposal_id}/progress", response_model=ProgressResponse)
async def get_progress(proposal_id: str, actor_id: str | None = ActorHeader) -> ProgressResponse:
    await _actor(actor_id)
    return ProgressResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_progress_projection().summarize(proposal_id),
    )


@router.get("/{proposal_id}/actions", response_model=AllowedActionsResponse)
async def get_allowed_actions(
    proposal_id: str, actor_id: str | None = ActorHeader
) -> AllowedActionsResponse:
    actor = await _actor(actor_id)
    proposal = _workflow_engine().get_proposal(proposal_id)
    return AllowedActionsResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=[operation.value for operation in allowed_operations(actor, proposal)],
    )
