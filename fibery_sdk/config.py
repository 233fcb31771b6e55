"""
Configuration for the Fibery SDK.

Uses pydantic-settings for environment variable loading. Every setting
can be overridden with a FIBERY_ prefixed variable, e.g.
FIBERY_SCHEMA_CACHE_TTL=60.

Invariants:
    - All settings have defaults that work without any environment
    - The API token is never part of Settings (credentials live elsewhere)
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """SDK configuration loaded from environment."""

    # Schema cache
    schema_cache_size: int = Field(default=100, ge=1, description="Max cached workspace schemas")
    schema_cache_ttl: float = Field(
        default=600.0, gt=0, description="Seconds before a cached schema is revalidated"
    )

    # Transport
    request_timeout: float = Field(default=30.0, description="HTTP timeout seconds")
    user_agent: str = Field(default="fibery-sdk-python", description="User-Agent header")
    base_domain: str = Field(default="fibery.io", description="Workspace host suffix")

    # Query compilation
    default_timezone: str = Field(default="UTC", description="Timezone for naive date filters")
    include_file_fields: bool = Field(
        default=False, description="Treat fibery/file fields as supported"
    )

    model_config = {"env_prefix": "FIBERY_"}


@lru_cache
def get_settings() -> Settings:
    """Get process-wide settings (read once from the environment)."""
    return Settings()
