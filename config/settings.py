"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Secrets (API keys, Supabase keys) only ever come from the environment.
"""

import tempfile
from pathlib import Path
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
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for storage uploads)"
    )

    # ===================
    # FEED DOWNLOAD
    # ===================
    feed_download_timeout_seconds: int = Field(
        default=300,
        ge=10,
        le=3600,
        description="Timeout for downloading the full vendor feed"
    )
    feed_user_agent: str = Field(
        default="CatalogFeedImporter/1.0",
        description="User-Agent header sent to the feed host"
    )
    feed_temp_dir: Optional[str] = Field(
        None,
        description="Directory for on-disk feed copies (defaults to system temp)"
    )
    progress_log_every: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Log import progress every N products"
    )

    # ===================
    # LANGUAGE
    # ===================
    source_language: str = Field(
        default="eng",
        description="Language code picked from multi-language feed fields"
    )
    target_language: str = Field(
        default="bg",
        description="Language the catalog is translated into"
    )

    # ===================
    # TEXT GENERATION
    # ===================
    ai_provider: str = Field(
        default="claude",
        pattern="^(claude|ollama|none)$",
        description="Text generation backend used for enrichment"
    )
    anthropic_api_key: Optional[str] = Field(
        None,
        description="Anthropic API key"
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model used for enrichment"
    )
    anthropic_max_tokens: int = Field(
        default=4096,
        ge=256,
        le=32000,
        description="Default max tokens per completion"
    )
    anthropic_timeout_seconds: int = Field(
        default=240,
        ge=10,
        le=900,
        description="Timeout per Anthropic request"
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL"
    )
    ollama_model: str = Field(
        default="gemma3:latest",
        description="Ollama model tag"
    )
    ollama_timeout_seconds: int = Field(
        default=120,
        ge=10,
        le=900,
        description="Timeout for short Ollama generations"
    )
    ollama_seo_timeout_seconds: int = Field(
        default=600,
        ge=60,
        le=1800,
        description="Timeout for long-form SEO description generation"
    )

    # ===================
    # IMAGES
    # ===================
    image_mode: str = Field(
        default="passthrough",
        pattern="^(passthrough|materialize)$",
        description="Keep vendor image URLs or copy images into the blob store"
    )
    image_fetch_timeout_seconds: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Timeout per image download"
    )
    storage_bucket: str = Field(
        default="product-images",
        description="Supabase Storage bucket for materialized images"
    )

    # ===================
    # IMPORT
    # ===================
    import_batch_size: int = Field(
        default=25,
        ge=1,
        le=500,
        description="Products mapped and upserted per batch"
    )
    shipping_profile_id: Optional[str] = Field(
        None,
        description="Default shipping profile for imported products"
    )
    sales_channel_id: Optional[str] = Field(
        None,
        description="Default sales channel for imported products"
    )

    # ===================
    # PRICE SYNC
    # ===================
    price_sync_interval_hours: int = Field(
        default=2,
        ge=1,
        le=48,
        description="Hours between scheduled price syncs"
    )
    price_sync_batch_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="External ids looked up per catalog query"
    )
    price_currency_code: str = Field(
        default="eur",
        description="Currency of variant prices written by the sync"
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

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def resolved_temp_dir(self) -> Path:
        """Directory holding downloaded feeds."""
        if self.feed_temp_dir:
            return Path(self.feed_temp_dir)
        return Path(tempfile.gettempdir()) / "feed-imports"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
