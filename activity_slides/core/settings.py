import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


PROJECT_ROOT = Path(__file__).resolve().parents[2]
ROOT_ENV = PROJECT_ROOT / ".env"
ROOT_ENV_LOCAL = PROJECT_ROOT / ".env.local"


class Settings(BaseSettings):
    """
    Activity Slides - Global Configuration Registry
    Centralizes all environment variables using Pydantic Settings.
    """

    model_config = SettingsConfigDict(
        env_file=(str(ROOT_ENV), str(ROOT_ENV_LOCAL)),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend service
    ACTIVITY_API_URL: str = "http://localhost:8000"
    ACTIVITY_API_TIMEOUT_SECONDS: float = 30.0
    ACTIVITY_API_USER_ID: Optional[str] = None

    # Variations
    VARIATION_DESCRIPTION_DEFAULT: str = "Age group variation"
    VARIATION_INHERIT_CREATOR_ID: bool = True

    # Slide insertion pacing (document host admits ~3 page appends per 10s)
    INSERTION_DELAY_SECONDS: float = 4.0
    INSERTION_PACING_MODE: Literal["fixed", "window"] = "fixed"
    INSERTION_WINDOW_MAX_CALLS: int = 3
    INSERTION_WINDOW_SECONDS: float = 10.0
    GENERATION_CONNECTED_PROGRESS: int = 25

    # Advisories
    LINK_VALID_ALERT_SECONDS: float = 3.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @field_validator("INSERTION_PACING_MODE", mode="before")
    @classmethod
    def _normalize_pacing_mode(cls, value: str | None) -> str:
        return str(value or "fixed").strip().lower()

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str | None) -> str:
        return str(value or "INFO").strip().upper()

    @field_validator("ACTIVITY_API_URL", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str:
        return str(value or "").strip().rstrip("/")

    @model_validator(mode="after")
    def _enforce_pacing_constraints(self) -> "Settings":
        if self.INSERTION_DELAY_SECONDS < 0:
            logger.warning(
                "INSERTION_DELAY_SECONDS must not be negative; using default",
                extra={"value": self.INSERTION_DELAY_SECONDS},
            )
            self.INSERTION_DELAY_SECONDS = 4.0
        if self.INSERTION_WINDOW_MAX_CALLS < 1 or self.INSERTION_WINDOW_SECONDS <= 0:
            logger.warning(
                "Invalid insertion window; using 3 calls per 10 seconds",
                extra={
                    "max_calls": self.INSERTION_WINDOW_MAX_CALLS,
                    "window_seconds": self.INSERTION_WINDOW_SECONDS,
                },
            )
            self.INSERTION_WINDOW_MAX_CALLS = 3
            self.INSERTION_WINDOW_SECONDS = 10.0
        self.GENERATION_CONNECTED_PROGRESS = max(0, min(100, int(self.GENERATION_CONNECTED_PROGRESS)))
        return self


settings = Settings()  # type: ignore[call-arg]
