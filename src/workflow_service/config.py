"""Settings for the workflow service.

Settings load from the environment and an optional `.env` file. A missing
snapshot bucket is not a startup error; operations that need it report
`InvalidArguments` instead.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Root directory for the file-backed event table and object store.
    state_path: Path = Field(default=Path("agent_state"), validation_alias="WORKFLOW_STATE_PATH")

    bucket_name: str = Field(
        default="",
        validation_alias="WORKFLOW_SERVICE_BUCKET_NAME",
        description="Container that holds workflow snapshots.",
    )
    snapshot_prefix: str = Field(
        default="",
        validation_alias="WORKFLOW_SNAPSHOT_PREFIX",
        description="Optional key prefix placed before `<workflowId>/` in snapshot keys.",
    )

    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4", validation_alias="OPENAI_MODEL")
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        validation_alias="OPENAI_TEMPERATURE",
    )

    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="WORKFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    @property
    def event_store_dir(self) -> Path:
        return self.state_path / "events"

    @property
    def snapshot_store_dir(self) -> Path:
        return self.state_path / "snapshots"

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
