"""
Shared configuration management for the authorization layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # God mode (break-glass access). Read once at startup.
    god_mode_enabled: bool = Field(default=False)
    god_mode_user_id: Optional[str] = Field(default=None)
    god_mode_authz_sub: Optional[str] = Field(default=None)
    god_mode_first_name: str = Field(default="God")
    god_mode_role: str = Field(default="administrator")
    god_mode_picture: Optional[str] = Field(default=None)
    god_mode_team_ids: List[str] = Field(default_factory=list)
    god_mode_company_ids: List[str] = Field(default_factory=list)


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
