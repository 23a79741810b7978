from fastapi import APIRouter, Header, Response, status

from app.config import settings
from app.contracts.proposal_types import (
    ProposalFieldListResponse,
    ProposalTypeCreateRequest,
    ProposalTypeListResponse,
    ProposalTypeOptionsResponse,
    ProposalTypeResponse,
    ProposalTypeUpdateRequest,
)
from app.middleware.correlation import correlation_id_var
from app.services.container import get_identity_provider, get_type_registry
from app.services.proposal_type_registry import ProposalTypeRegistry

router = APIRouter(prefix="/api/v1/proposal-types", tags=["proposal-types"])


def _type_registry() -> ProposalTypeRegistry:
    return get_type_registry()


@router.get("", response_model=ProposalTypeListResponse, summary="Custom Proposal Types")
async def list_proposal_types() -> ProposalTypeListResponse:
    return ProposalTypeListResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().list_types(),
    )


@router.get(
    "/options",
    response_model=ProposalTypeOptionsResponse,
    summary="Proposal Type Options",
    description="Built-in proposal types followed by custom types, for creation form selectors.",
)
async def get_proposal_type_options() -> ProposalTypeOptionsResponse:
    return ProposalTypeOptionsResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().get_proposal_type_options(),
    )


@router.get("/{type_id}", response_model=ProposalTypeResponse)
async def get_proposal_type(type_id: str) -> ProposalTypeResponse:
    return ProposalTypeResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().require_type(type_id),
    )


@router.get(
    "/{type_id}/fields",
    response_model=ProposalFieldListResponse,
    summary="Fields For Proposal Type",
    description="Accepts a custom type id or a built-in type (BUDGET, EQUIPMENT, HIRING, OTHER).",
)
async def get_fields_for_type(type_id: str) -> ProposalFieldListResponse:
    return ProposalFieldListResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().get_fields_for_type(type_id),
    )


@router.post("", response_model=ProposalTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal_type(
    request: ProposalTypeCreateRequest,
    actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
) -> ProposalTypeResponse:
    actor = await get_identity_provider().current_actor(actor_id)
    return ProposalTypeResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().create_type(actor, request),
    )


@router.patch("/{type_id}", response_model=ProposalTypeResponse)
async def update_proposal_type(
    type_id: str,
    request: ProposalTypeUpdateRequest,
    actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
) -> ProposalTypeResponse:
    actor = await get_identity_provider().current_actor(actor_id)
    return ProposalTypeResponse(
        correlation_id=correlation_id_var.get(),
        contract_version=settings.contract_version,
        data=_type_registry().update_type(actor, type_id, request),
    )


@router.delete("/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_proposal_type(
    type_id: str,
    actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
) -> Response:
    actor = await get_identity_provider().current_actor(actor_id)
    _type_registry().delete_type(actor, type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
