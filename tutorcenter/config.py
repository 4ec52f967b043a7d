"""Configuration for the scheduling service."""

from __future__ import annotations

from datetime import tzinfo

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tutorcenter.services.timeutils import resolve_timezone


class Settings(BaseSettings):
    """Runtime configuration pulled from ``TUTORCENTER_*`` environment variables."""

    org_timezone: str = Field(
        default="UTC",
        description="Reference zone for day-of-week and wall-clock availability checks.",
    )
    conflict_window_padding_hours: int = Field(
        default=24,
        ge=0,
        description="How far around a candidate lesson existing lessons are loaded.",
    )
    log_level: str = "INFO"
    seed_demo_data: bool = False

    model_config = SettingsConfigDict(
        env_prefix="TUTORCENTER_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("org_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value

    @property
    def reference_tz(self) -> tzinfo:
        return resolve_timezone(self.org_timezone)
