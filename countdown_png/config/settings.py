"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Countdown PNG Server", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5001, description="Server port")

    # Storage Configuration
    storage_path: Path = Field(default=Path("./storage"), description="Storage directory path")
    output_dir: Path = Field(
        default=Path("./public/timers"), description="Directory for one-shot timer images"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    viewport_width: int = Field(default=360, gt=0, description="Render viewport width")
    viewport_height: int = Field(default=100, gt=0, description="Render viewport height")
    render_wait_until: str = Field(
        default="domcontentloaded", description="Page state to wait for before capture"
    )
    render_timeout_ms: int = Field(
        default=10000, gt=0, description="Content load timeout in milliseconds"
    )
    optimize_png: bool = Field(default=False, description="Recompress rendered frames")

    # Scheduler Configuration
    render_interval: float = Field(default=1.0, gt=0, description="Seconds between live renders")
    check_interval: float = Field(
        default=0.1, gt=0, description="Seconds between scheduler due checks"
    )
    backoff_base: float = Field(
        default=1.0, ge=0, description="Initial backoff after an engine launch failure"
    )
    backoff_max: float = Field(
        default=30.0, ge=0, description="Backoff ceiling in seconds, 0 disables backoff"
    )
    live_session_id: str = Field(default="default", description="Session rendered by the scheduler")

    # Session Configuration
    session_ttl: float = Field(default=3600.0, gt=0, description="Session TTL in seconds")
    sweep_interval: float = Field(
        default=60.0, gt=0, description="Seconds between expired session sweeps"
    )

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("render_wait_until")
    @classmethod
    def validate_wait_until(cls, v: str) -> str:
        """Validate the page load state used before capture."""
        allowed = {"domcontentloaded", "load", "networkidle"}
        if v not in allowed:
            raise ValueError(f"Wait condition must be one of: {allowed}")
        return v

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("storage_path", "output_dir")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="COUNTDOWN_PNG_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
