from pathlib import Path

import pytz
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Timezone used for hosts that never set one
    default_timezone: str = "UTC"

    # Slot generation
    slot_step_minutes: int = 15
    # Client-side rounding tolerance before the end time is recomputed
    duration_tolerance_minutes: int = 1

    # Alternative-slot search
    same_day_suggestions: int = 3
    per_day_suggestions: int = 2
    suggestion_search_days: int = 7
    max_suggestions: int = 5
    range_suggestions: int = 50
    smart_suggestion_days_ahead: int = 30

    # Advisory warnings
    typical_hours_start: int = 6
    typical_hours_end: int = 22  # inclusive
    long_meeting_warning_hours: int = 8

    # Env
    env: str = "development"

    @field_validator("default_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Invalid timezone: {value}")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
