"""Application settings and configuration management."""
from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/assessments.db")
    LLM_CONFIG_PATH: str = "app_config.json"
    SIGNALS_CONFIG: str = ""

    ASSESSMENT_FLOW: str = "flow1_locked_v2"
    ASSISTANT_NAME: str = "Vetta"

    # Dealer-fit defaults used when a dealer has no stored settings row
    DEFAULT_THEME_COLOR: str = "#1E3A8A"
    DEFAULT_MAX_PTI_RATIO: float = 0.35
    DEFAULT_REQUIRE_VALID_DRIVER_LICENSE: bool = True
    DEFAULT_MIN_DOWN_PAYMENT: float = 1000
    DEFAULT_MIN_RESIDENCE_MONTHS: int = 8
    DEFAULT_MIN_EMPLOYMENT_MONTHS: int = 6

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
