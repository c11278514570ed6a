"""
Shared configuration management for entity permission evaluation.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PermissionsConfig(BaseSettings):
    """Settings read from ``PERMISSIONS_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="PERMISSIONS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Trace rendering
    trace_colors: bool = Field(default=True, description="Render traces with ANSI colours")
    log_traces: bool = Field(default=True, description="Log expression traces before and after evaluation")

    # Observability
    enable_metrics: bool = Field(default=True)


@lru_cache()
def get_config() -> PermissionsConfig:
    """Get the process-wide configuration."""
    return PermissionsConfig()
