"""Catalogue settings, read from the environment and `.env`."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore

DEFAULT_FACET_LISTS_DIR = Path(__file__).resolve().parent.parent / "static" / "facets"


class Settings(BaseSettings):
    """Service, search backend and export settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Yazma Eserler Catalogue API")
    API_PREFIX: str = Field(default="/v1")
    CORS_ORIGINS: list[str] = Field(default=["http://localhost:3000"])
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["json", "text"] = Field(default="json")

    # Search backend: POST {SEARCH_API_URL}/{SEARCH_API_INDEX}/_search with basic auth
    SEARCH_API_URL: str = Field(default="https://api.mihbara.com/opensearch")
    SEARCH_API_INDEX: str = Field(default="yaz-scrape")
    SEARCH_API_USER: str = Field(default="")
    SEARCH_API_PASS: str = Field(default="")
    SEARCH_REQUEST_TIMEOUT_S: float = Field(default=30.0, gt=0)

    # Directory holding collections.txt, subjects.txt and languages.txt
    FACET_LISTS_DIR: str = Field(default=str(DEFAULT_FACET_LISTS_DIR))

    # offset + size ceiling enforced by the index
    MAX_RESULT_WINDOW: int = Field(default=10_000, gt=0)
    EXPORT_MAX_ROWS: int = Field(default=2_000, gt=0)

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def split_cors_origins(cls, value):
        """Accept a comma-separated string as well as a list."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("SEARCH_API_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def require_credentials_in_prod(self) -> "Settings":
        if self.ENV == "prod" and not (self.SEARCH_API_USER and self.SEARCH_API_PASS):
            raise ValueError("SEARCH_API_USER and SEARCH_API_PASS must be set in production")
        return self

    @property
    def search_endpoint(self) -> str:
        """Full `_search` URL of the manuscript index."""
        return f"{self.SEARCH_API_URL.rstrip('/')}/{self.SEARCH_API_INDEX}/_search"


settings = Settings()
