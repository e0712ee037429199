"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without polluting the CLI.
- Lets adapters (HTTP client) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.errors import ConfigurationError


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "kaasctl"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "kaasctl"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "kaasctl"
    return Path.home() / ".config" / "kaasctl"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Central application configuration.

    Why pydantic-settings:
    - Typing + validation at the edge (env vars) without leaking into the core.
    - A single configuration contract for CLI and adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="KAASCTL_",
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_endpoint: str | None = Field(
        default=None,
        description="Base URL of the control-plane API, e.g. https://api.example.com.",
    )
    auth_token: str | None = Field(
        default=None,
        description="Token sent in the Authorization header.",
    )
    auth_scheme: str = Field(
        default="giantswarm",
        min_length=1,
        description="Authorization scheme prefix ('giantswarm' or 'Bearer').",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    ping_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for the connectivity check (seconds).",
    )
    user_agent: str = Field(
        default="kaasctl/0.1",
        min_length=1,
        description="User-Agent sent with every request.",
    )
    ca_file: Path | None = Field(
        default=None,
        description="PEM bundle used to verify the API certificate instead of the system store.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Root log level (DEBUG, INFO, WARNING, ERROR).",
    )

    @field_validator("api_endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level


def load_settings(**overrides: Any) -> AppSettings:
    """Build `AppSettings`, turning validation errors into a `ConfigurationError`."""

    try:
        return AppSettings(**overrides)
    except ValidationError as exc:
        problems = []
        for item in exc.errors():
            field = ".".join(str(part) for part in item["loc"]) or "settings"
            problems.append(f"{field}: {item['msg']}")
        raise ConfigurationError(problems) from exc
