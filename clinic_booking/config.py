"""Configuration for the clinic booking client.

Defaults live here; override them with a .env file or CLINIC_* environment
variables without touching code.
"""
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_LANGUAGE = "ru"
SUPPORTED_LANGUAGES = ["ru", "ky"]

# Slot durations shown next to each slot (minutes)
SLOT_DURATIONS: Dict[str, int] = {
    "consultation": 15,
    "examination": 15,
    "treatment": 40,
}

# Mock backend (python -m clinic_booking.mock_api)
MOCK_API_PORT = 8000
AVAILABILITY_DAYS_RANGE = 30

ENV_PREFIX = "CLINIC_"


class Settings(BaseModel):
    """Runtime settings for the booking client."""
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, description="Backend origin")
    supported_languages: List[str] = Field(default_factory=lambda: list(SUPPORTED_LANGUAGES))
    default_language: str = Field(default=DEFAULT_LANGUAGE, description="Locale used before any choice is persisted")
    language_file: Path = Field(
        default=Path("~/.clinic_booking/lang.json"),
        description="Where the locale preference is persisted"
    )
    request_timeout: float = Field(default=15, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries for idempotent GET requests")
    slot_row_width: int = Field(default=4, ge=1, le=10, description="Slots per rendered row")
    log_level: str = Field(default="INFO")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("language_file")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return Path(v).expanduser()

    @field_validator("default_language")
    @classmethod
    def check_default_language(cls, v: str, info) -> str:
        supported = info.data.get("supported_languages") or SUPPORTED_LANGUAGES
        if v not in supported:
            raise ValueError(f"Unsupported default language: {v}")
        return v


def load_settings(env_file: Optional[str] = None, **overrides) -> Settings:
    """
    Build settings from .env, CLINIC_* environment variables and overrides.

    Args:
        env_file: Optional path to a .env file (default: search from cwd)
        **overrides: Explicit values that win over the environment

    Returns:
        Validated Settings
    """
    load_dotenv(env_file)

    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if name == "supported_languages":
            values[name] = [code.strip() for code in raw.split(",") if code.strip()]
        else:
            values[name] = raw

    values.update(overrides)
    return Settings(**values)
