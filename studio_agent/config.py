"""Agent settings, read from ``STUDIO_AGENT_*`` environment variables or ``.env``."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STUDIO_AGENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    audit_db_path: str = Field(
        default=":memory:",
        description="SQLite path for the agent action log",
    )
    proposal_ttl_seconds: float = Field(
        default=900,
        gt=0,
        description="How long an issued proposal can still be approved",
    )
    log_level: str = Field(default="INFO", description="Level for studio_agent loggers")


@lru_cache(maxsize=1)
def get_settings() -> AgentSettings:
    return AgentSettings()
