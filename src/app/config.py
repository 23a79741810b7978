from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Proposal Approval API"
    contract_version: str = "v1"
    store_backend: Literal["memory", "file"] = Field(default="memory")
    store_directory: str = Field(default=".data")
    proposals_blob_key: str = Field(default="proposals")
    proposal_types_blob_key: str = Field(default="customProposalTypes")
    seed_demo_data: bool = Field(default=True)
    identity_service_base_url: str = Field(default="")
    upstream_timeout_seconds: float = Field(default=3.0)
    upstream_max_retries: int = Field(default=2)
    upstream_retry_backoff_seconds: float = Field(default=0.2)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)


settings = Settings()
