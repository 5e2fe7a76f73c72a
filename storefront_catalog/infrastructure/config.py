"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Cache store
    database_url: str = "sqlite+aiosqlite:///./catalog_cache.db"
    cache_backend: str = "sql"  # "sql" or "memory"

    # Search index
    search_url: str = "http://localhost:9200"
    search_index: str = "vue_storefront_catalog"

    # Commerce platform
    platform_products_endpoint: str = "http://localhost:8080/api/products"
    currency_code: str = "USD"
    request_timeout: float = 10.0

    # Tax
    tax_calculate_server_side: bool = False
    tax_country: str = "US"
    tax_region: str = ""

    # Price sync
    always_sync_platform_prices_over: bool = False
    clear_prices_before_platform_sync: bool = False
    wait_for_platform_sync: bool = True
    server_side_rendering: bool = False

    # Connectivity
    offline_mode: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
