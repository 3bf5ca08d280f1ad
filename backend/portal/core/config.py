"""Application settings and environment configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    """Typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        # Load `backend/.env` regardless of current working directory.
        env_file=[DEFAULT_ENV_FILE, ".env"],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./portal.db"

    # Database lifecycle
    db_auto_create: bool = False
    db_seed_directory: bool = False

    # Unassigned requests stay visible to every approver until one is assigned.
    unassigned_visible_to_approvers: bool = True

    # Remote collaborators
    store_base_url: str = "http://localhost:8000"
    export_base_url: str = "http://localhost:8000"
    remote_timeout_seconds: float = Field(default=10.0, gt=0)

    cors_origins: str = ""

    # Logging
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    log_use_utc: bool = False

    @model_validator(mode="after")
    def _defaults(self) -> Self:
        # Dev databases are created and seeded on startup unless told otherwise.
        if self.environment == "dev":
            if "db_auto_create" not in self.model_fields_set:
                self.db_auto_create = True
            if "db_seed_directory" not in self.model_fields_set:
                self.db_seed_directory = True
        self.log_level = self.log_level.strip().upper() or "INFO"
        return self

    def allowed_cors_origins(self) -> tuple[str, ...]:
        """Return normalized CORS origins from config."""
        values: list[str] = []
        for raw in self.cors_origins.split(","):
            normalized = raw.strip()
            if normalized and normalized not in values:
                values.append(normalized)
        return tuple(values)


settings = Settings()
