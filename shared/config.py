"""
Shared configuration management for the Partner Signing Proxy.
"""

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="development")
    log_level: str = Field(default="info")

    # Listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8810)
    cors_allow_origin: Optional[str] = Field(default=None)

    # Upstream gateway
    upstream_url: str = Field(default="http://localhost:3360")
    api_key: str = Field(default="")
    api_secret: SecretStr = Field(default=SecretStr(""))
    upstream_timeout_seconds: float = Field(default=30.0)
    max_body_bytes: int = Field(default=102400)

    # API versioning
    supported_versions: Optional[str] = Field(default=None)
    default_version: Optional[str] = Field(default=None)
    gateway_version_map: Optional[str] = Field(default=None)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "proxy"

    # Identity resolution
    identity_provider: str = Field(default="header")
    identity_header: str = Field(default="X-Partner-User-Id")
    identity_failure_status: int = Field(default=500)
    jwt_secret: SecretStr = Field(default=SecretStr(""))
    jwt_algorithms: str = Field(default="HS256")
    jwt_audience: Optional[str] = Field(default=None)
    jwt_issuer: Optional[str] = Field(default=None)
    api_keys: Optional[str] = Field(default=None)
    session_secret: SecretStr = Field(default=SecretStr(""))


def get_config(service_name: str = "proxy", **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
