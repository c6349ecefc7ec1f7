"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
All secrets should be provided via environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENGINE_CONFIG = Path(__file__).parent / "data" / "engine.yaml"
DEFAULT_CATEGORY_SCHEME = Path(__file__).parent / "data" / "categories.yaml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # =========================================================================
    # Database
    # =========================================================================
    db_driver: str = Field(
        default="postgresql+asyncpg",
        description="SQLAlchemy async driver prefix",
    )
    db_user: str = Field(
        default="catalog_app",
        description="Database user",
    )
    db_password: str = Field(
        default="",
        description="Database password",
    )
    db_name: str = Field(
        default="catalog",
        description="Database name",
    )
    db_host: str = Field(
        default="localhost",
        description="Database host",
    )
    db_port: int = Field(
        default=5432,
        description="Database port",
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size",
    )
    db_pool_max_overflow: int = Field(
        default=10,
        description="Max overflow connections beyond pool size",
    )
    database_url_override: str | None = Field(
        default=None,
        description="Full database URL (takes precedence over the db_* fields)",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Build the async database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"{self.db_driver}://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================================================================
    # Engine
    # =========================================================================
    engine_config_path: Path = Field(
        default=DEFAULT_ENGINE_CONFIG,
        description="YAML file with classification rules and mapping tables",
    )
    category_scheme_path: Path = Field(
        default=DEFAULT_CATEGORY_SCHEME,
        description="YAML classification scheme imported into an empty categories table",
    )
    import_scheme_on_startup: bool = Field(
        default=True,
        description="Import the category scheme at startup when the table is empty",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Rows per batch in correction pipelines",
    )
    auto_apply_min_confidence: Literal["high", "medium", "low"] = Field(
        default="medium",
        description="Lowest classifier confidence applied without manual review",
    )
    max_matches_per_product: int = Field(
        default=20,
        ge=1,
        description="Cached product/price matches kept per product",
    )

    # =========================================================================
    # Extraction service
    # =========================================================================
    extraction_url: str = Field(
        default="http://localhost:8090",
        description="Base URL of the product extraction service",
    )
    extraction_timeout: float = Field(
        default=90.0,
        description="Extraction request timeout in seconds",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
