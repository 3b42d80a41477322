"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_API_URL = "https://azbs-backend.onrender.com/api"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_url: str = DEFAULT_API_URL
    request_timeout_seconds: float = 15.0
    session_store_path: Path = Path.home() / ".event_registry" / "session.json"
    inactivity_timeout_seconds: float = 15 * 60
    inactivity_warning_seconds: float = 2 * 60
    inactivity_tick_seconds: float = 1.0
    admin_role: str = "admin"
    banking_bank: str = "ABSA"
    banking_account_number: str = "4088026917"
    banking_branch_code: str = "334107"
    banking_account_type: str = "Cheque"
    banking_reference_prefix: str = "azbs"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def normalize_api_url(raw: str | None) -> str:
    """Return the backend base URL without a trailing slash."""
    if raw is None:
        return DEFAULT_API_URL
    cleaned = raw.strip().rstrip("/")
    return cleaned or DEFAULT_API_URL
