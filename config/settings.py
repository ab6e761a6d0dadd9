"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )
    catalog_table: str = Field(
        default="products",
        description="Table holding catalog items"
    )

    # ===================
    # RECONCILIATION
    # ===================
    identifier_max_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="SKU regenerations allowed after the first insert collides"
    )
    merge_max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Compare-and-swap attempts when merging stock into an item"
    )
    default_min_stock_level: int = Field(
        default=10,
        ge=0,
        description="Low-stock threshold for newly created items"
    )

    # ===================
    # PRICING
    # ===================
    vat_multiplier: float = Field(
        default=1.18,
        ge=1,
        le=2,
        description="VAT applied to cost when recommending a final price"
    )
    margin_multiplier: float = Field(
        default=1.30,
        ge=1,
        le=5,
        description="Retail margin applied after VAT"
    )

    # ===================
    # BULK IMPORT
    # ===================
    import_max_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Concurrent row groups during a spreadsheet import"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
