from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    USER = "USER"
    SUPERIOR = "SUPERIOR"
    ADMIN = "ADMIN"
    APPROVER = "APPROVER"
    REGISTRAR = "REGISTRAR"


class User(BaseModel):
    id: str
    name: str
    email: str = ""
    role: UserRole
    avatar: str | None = None

    model_config = {"frozen": True}

    @property
    def display_name(self) -> str:
        return self.name


class UserResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: User


class UserListResponse(BaseModel):
    correlation_id: str
    contract_version: str = "v1"
    data: list[User] = Field(default_factory=list)
