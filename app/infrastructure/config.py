"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "1.0.0"
    debug: bool = False

    # Shopify Admin API
    shopify_api_version: str = "2024-01"
    shopify_timeout_seconds: float = 30.0
    shopify_max_retries: int = 3
    shopify_retry_base_delay: float = 1.0
    shopify_retry_max_delay: float = 30.0
    shopify_validate_tokens: bool = True

    # Public listing
    public_token_prefix: str = "shpua_"

    # Import
    image_check_timeout_seconds: float = 10.0
    image_download_timeout_seconds: float = 15.0

    # Storage ("memory" or "database")
    storage_backend: str = "memory"
    database_url: str = "postgresql+asyncpg://upsellr:upsellr_dev_password@db:5432/upsellr"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
