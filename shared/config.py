"""
Shared configuration management for the CMS services.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Every field can be set from the environment with the ``CMS_`` prefix,
    e.g. ``CMS_LOG_LEVEL=debug`` or ``CMS_CACHE_SWEEP_INTERVAL=0``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CMS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Content
    pages_root: str = Field(default="content/pages")
    static_root: Optional[str] = Field(default=None)

    # Page cache
    cache_sweep_interval: int = Field(default=300)
    cache_ttl_overrides: Dict[str, int] = Field(default_factory=dict)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
