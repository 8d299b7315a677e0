from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vehnt.domain.schedule import PURGE_FOLLOWUP_OFFSET_SECONDS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    state_db_path: str = Field(default="vehnt_state.db", alias="STATE_DB_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    purge_followup_offset_seconds: int = Field(
        default=PURGE_FOLLOWUP_OFFSET_SECONDS, alias="PURGE_FOLLOWUP_OFFSET_SECONDS"
    )
    # test-only: finalize positions whose lockup has not expired yet
    purge_bypass_expiry_check: bool = Field(default=False, alias="PURGE_BYPASS_EXPIRY_CHECK")

    scheduler_base_url: str | None = Field(default=None, alias="SCHEDULER_BASE_URL")
    scheduler_timeout_seconds: float = Field(default=10.0, alias="SCHEDULER_TIMEOUT_SECONDS")
    scheduler_max_attempts: int = Field(default=4, alias="SCHEDULER_MAX_ATTEMPTS")
    scheduler_base_delay_ms: int = Field(default=400, alias="SCHEDULER_BASE_DELAY_MS")
    scheduler_max_delay_ms: int = Field(default=4000, alias="SCHEDULER_MAX_DELAY_MS")

    @field_validator("purge_followup_offset_seconds")
    def validate_followup_offset(cls, value: int) -> int:
        if value < 0:
            raise ValueError("PURGE_FOLLOWUP_OFFSET_SECONDS must be >= 0")
        return value

    @field_validator("scheduler_max_attempts")
    def validate_max_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SCHEDULER_MAX_ATTEMPTS must be >= 1")
        return value

    @field_validator("scheduler_base_url", mode="before")
    def normalize_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip().rstrip("/")
        return stripped or None

    @field_validator("log_level")
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"
