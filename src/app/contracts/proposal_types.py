from enum import Enum

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    DATE = "DATE"
    SELECT = "SELECT"
    CHECKBOX = "CHECKBOX"


class ProposalField(BaseModel):
    id: str
    name: str
    label: str
    type: FieldType
    required: bool = False
    description: str | None = None
    options: list[str] | None = None


class CustomProposalType(BaseModel):
    id: str
    name: str
    description: str = ""
    required_fields: list[ProposalField] = Field(default_factory=list, alias="requiredFields")
    created_at: int = Field(alias="createdAt")
    created_by: str = Field(alias="createdBy")
    updated_at: int = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


class ProposalTypeCreateRequest(BaseModel):
    name: str
    description: str = ""
    required_fields: list[ProposalField] = Field(default_factory=list, alias="requiredFields")

    model_config = {"populate_by_name": True}


class ProposalTypeUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    required_fields: list[ProposalField] | None = Field(default=None, alias="requiredFields")

    model_config = {"populate_by_name": True}


class ProposalTypeOption(BaseModel):
    label: str
    value: str


class ProposalTypeResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: CustomProposalType


class ProposalTypeListResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[CustomProposalType] = Field(default_factory=list)


class ProposalFieldListResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[ProposalField] = Field(default_factory=list)


class ProposalTypeOptionsResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[ProposalTypeOption] = Field(default_factory=list)
