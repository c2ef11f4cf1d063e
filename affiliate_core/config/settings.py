"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (tracking sessions and Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/affiliate.log"

    # Storefront URLs used to build click redirects
    site_base_url: str = "http://localhost:3000"
    product_path: str = "/san-pham/{slug}"
    category_path: str = "/danh-muc/{slug}"

    # Affiliate program defaults (used until a settings version is published)
    default_commission_rate: Decimal = Field(
        default=Decimal("0.15"), ge=0, le=1,
        description="Fallback level-1 rate when neither link nor account sets one"
    )
    level_two_factor: Decimal = Field(
        default=Decimal("0.30"), ge=0, le=1,
        description="Share of the upline's own rate paid as level-2 override"
    )
    min_withdrawal: Decimal = Field(
        default=Decimal("100000"), ge=0,
        description="Minimum withdrawal amount"
    )
    withdrawal_fee_floor: Decimal = Field(
        default=Decimal("5000"), ge=0,
        description="Flat minimum withdrawal fee"
    )
    withdrawal_fee_rate: Decimal = Field(
        default=Decimal("0.02"), ge=0, le=1,
        description="Proportional withdrawal fee"
    )
    max_links_per_account: int = Field(
        default=50, gt=0, description="Active link cap per account"
    )
    link_expiry_days: int = Field(
        default=365, ge=0, description="Default link lifetime (0 = no expiry)"
    )
    tracking_window_days: int = Field(
        default=30, gt=0, description="Attribution window after a click"
    )
    commission_hold_days: int = Field(
        default=7, ge=0,
        description="Age a PENDING commission must reach before batch payout"
    )
    slug_max_attempts: int = Field(
        default=5, gt=0, description="Generated slug collision retries"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("site_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL."""
        return v.rstrip("/")

    @field_validator("product_path", "category_path")
    @classmethod
    def validate_path_template(cls, v: str) -> str:
        """Catalog path templates must carry a slug placeholder."""
        if "{slug}" not in v:
            raise ValueError("Path template must contain '{slug}'")
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Row locks are not enforced on SQLite."
                )
        return self


settings = Settings()
