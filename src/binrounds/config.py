"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="BINROUNDS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Binrounds Collection Scheduling API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for reports and seed files.")
    route_catalogue_file: Optional[Path] = Field(
        default=None,
        description="JSON file of route areas used when no database is configured.",
    )
    operational_timezone: str = Field(
        default="Europe/London",
        description="Timezone in which 'today' is evaluated. Collection days are local civil days.",
    )
    recurrence_max_iterations: int = Field(
        default=10_000,
        ge=1,
        description="Upper bound on recurrence cycles walked before the anchor is treated as corrupt.",
    )
    bulk_reassign_max_limit: int = Field(default=500, ge=1)
    bulk_reassign_default_limit: int = Field(default=100, ge=1)
    notification_delay_hours: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before a 'subscription collected' notification becomes sendable.",
    )
    ops_admin_key: Optional[str] = Field(
        default=None,
        description="Shared key expected in X-Ops-Admin-Key for ops-only endpoints. Unset disables the check.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("route_catalogue_file", mode="before")
    @classmethod
    def _expand_optional_path(cls, value: Any) -> Optional[Path]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
