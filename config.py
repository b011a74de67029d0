"""
Runtime settings for the options chain dashboard.
Reads the process environment (and a local .env file) once at startup.
"""

import logging
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TICKER = "AAPL"
POLYGON_BASE_URL = "https://api.polygon.io"
PLACEHOLDER_API_KEY = "your_polygon_api_key_here"

MIN_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 1000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # VITE_ prefix kept so an existing front-end .env keeps working.
    POLYGON_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("POLYGON_API_KEY", "VITE_POLYGON_API_KEY"),
    )
    POLYGON_BASE_URL: str = POLYGON_BASE_URL
    POLYGON_PAGE_LIMIT: int = MAX_PAGE_LIMIT
    POLYGON_ACTIVE_ONLY: bool = True
    # None = whatever the networking stack does by default
    POLYGON_TIMEOUT: Optional[float] = None
    OPTIONS_TICKER: str = DEFAULT_TICKER
    LOG_LEVEL: str = "INFO"

    @field_validator("POLYGON_PAGE_LIMIT")
    @classmethod
    def _limit_in_range(cls, v: int) -> int:
        if not MIN_PAGE_LIMIT <= v <= MAX_PAGE_LIMIT:
            raise ValueError(f"page limit must be between {MIN_PAGE_LIMIT} and {MAX_PAGE_LIMIT}, got {v}")
        return v

    @field_validator("OPTIONS_TICKER")
    @classmethod
    def _upper_ticker(cls, v: str) -> str:
        return (v or DEFAULT_TICKER).strip().upper() or DEFAULT_TICKER

    @property
    def api_key(self) -> Optional[str]:
        return self.POLYGON_API_KEY

    @property
    def ticker(self) -> str:
        return self.OPTIONS_TICKER


def load_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Root logger setup for the dashboard process. Safe to call on every Streamlit rerun."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
