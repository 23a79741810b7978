from typing import Any

from pydantic import BaseModel, Field


class ProblemDetails(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str
    correlation_id: str
    error_code: str
    context: dict[str, Any] = Field(default_factory=dict)
