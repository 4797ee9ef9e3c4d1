"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1024, le=65535)
    debug: bool = Field(default=False)
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"]
    )

    # Authentication
    jwt_secret_key: str = Field(min_length=32)
    user_accounts: str = Field(default="")  # base64 encoded JSON list, see busops.cli
    account_store: Literal["database", "memory"] = Field(default="database")
    password_hash_rounds: int = Field(default=12, ge=4, le=16)

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./data/busops.db")
    database_echo: bool = Field(default=False)

    # Upstream workspace (Notion)
    notion_api_key: Optional[str] = Field(default=None)
    notion_base_url: str = Field(default="https://api.notion.com/v1")
    notion_version: str = Field(default="2022-06-28")
    notion_bookings_db_id: str = Field(default="")
    notion_maintenance_db_id: str = Field(default="")
    notion_vehicles_db_id: str = Field(default="")

    # Cache Configuration
    cache_ttl: float = Field(default=300, gt=0)

    # Scheduled sync
    daily_sync: bool = Field(default=False)
    sync_cron: str = Field(default="0 2 * * *")
    sync_timezone: str = Field(default="UTC")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database directory exists for SQLite."""
        if v and v.startswith("sqlite"):
            if ":///" in v:
                db_path = v.split("///")[1]
                if db_path and db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def features(self) -> dict:
        """Feature flags reported by the health endpoint."""
        return {"DAILY_SYNC": self.daily_sync}

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
