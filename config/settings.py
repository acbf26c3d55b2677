"""Pydantic Settings for Crowd Notify configuration."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from config.constants import (
    DEFAULT_COOLDOWN_HOURS,
    DEFAULT_ENGAGEMENT_RADIUS_M,
    DEFAULT_ENGAGEMENT_THRESHOLD,
    DEFAULT_GEOHASH_PREFIX_LENGTH,
    DEFAULT_PROXIMITY_RADIUS_M,
    FCM_MULTICAST_LIMIT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Firebase: service-account JSON string takes precedence over the file path
    firebase_service_account: str = ""
    firebase_credentials: str = "firebase-service-account.json"
    firebase_project_id: str = ""

    # Operational
    log_level: str = "INFO"
    timezone: str = "America/Chicago"

    # Eligibility
    proximity_radius_m: float = DEFAULT_PROXIMITY_RADIUS_M
    engagement_radius_m: float = DEFAULT_ENGAGEMENT_RADIUS_M
    proximity_cooldown_hours: float = DEFAULT_COOLDOWN_HOURS
    engagement_cooldown_hours: float = DEFAULT_COOLDOWN_HOURS
    geohash_prefix_length: int = Field(default=DEFAULT_GEOHASH_PREFIX_LENGTH, ge=1, le=12)
    engagement_threshold: int = Field(default=DEFAULT_ENGAGEMENT_THRESHOLD, ge=1)

    # Scheduled nudges, "HH:MM" in `timezone`
    study_nudge_times: list[str] = Field(default=["12:00", "15:00"])
    social_nudge_times: list[str] = Field(default=["19:30", "22:30"])

    multicast_batch_size: int = Field(default=FCM_MULTICAST_LIMIT, ge=1, le=FCM_MULTICAST_LIMIT)

    @field_validator("study_nudge_times", "social_nudge_times", mode="after")
    @classmethod
    def check_times(cls, v: list[str]) -> list[str]:
        for value in v:
            hour, _, minute = value.partition(":")
            if not (hour.isdigit() and minute.isdigit()):
                raise ValueError(f"invalid time {value!r}, expected HH:MM")
            if not (0 <= int(hour) < 24 and 0 <= int(minute) < 60):
                raise ValueError(f"time out of range: {value!r}")
        return v


settings = Settings()
