"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="LANEPAIRS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Lane Pairs API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied when the app starts.")
    data_root: Path = Field(default=Path("data"), description="Root directory for static data and exports.")
    city_file: Path = Field(
        default=Path("data/cities.csv"),
        description="City directory snapshot used when the database is not configured.",
    )
    default_radius_miles: float = Field(default=75.0, gt=0.0)
    standard_alternate_count: int = Field(default=3, ge=0)
    fill_alternate_count: int = Field(default=5, ge=0)
    contact_methods: tuple[str, ...] = Field(
        default=("email", "primary phone"),
        description="Contact methods each posting expands into, in export order.",
    )
    lookup_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_parallel_lanes: int = Field(default=8, ge=1)
    directory_query_limit: int = Field(default=5000, ge=1)
    directory_page_size: int = Field(default=1000, ge=1, description="Rows per directory request; PostgREST caps responses at 1000.")

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # HERE geocoding (advisory verification only)
    here_api_key: Optional[str] = Field(default=None, description="HERE.com API key.")
    here_geocode_url: str = "https://geocode.search.hereapi.com/v1/geocode"
    geocode_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocode_max_retries: int = Field(default=1, ge=0, le=1)
    geocode_backoff_seconds: float = Field(default=0.5, ge=0.0)
    geocode_requests_per_minute: int = Field(default=100, ge=1)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "city_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "contact_methods", mode="before")
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
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
