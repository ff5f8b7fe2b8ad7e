"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- Carrier credentials have no defaults (calls fail with a ConfigurationError until set)
- Runtime validation catches insecure configurations
"""
import json
import os
import logging
from typing import Annotated, List, Literal
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Default CORS origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

# BoxNow API hosts per environment
BOXNOW_STAGE_URL = "https://api-stage.boxnow.gr"
BOXNOW_PRODUCTION_URL = "https://api-production.boxnow.gr"


def _parse_list(v, default: List[str]) -> List[str]:
    """Accept a JSON array or a comma-separated string."""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if not v or v.strip() == "":
            return list(default)
        # Try JSON first
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fallback to comma-separated
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App - defaults are PRODUCTION safe
    APP_NAME: str = "BoxNow Checkout Bridge"
    DEBUG: bool = False  # SECURE DEFAULT: off in production
    ENVIRONMENT: str = "production"  # Explicit env marker

    # Server bind, read by scripts/start_api.py
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Annotated[List[str], NoDecode] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        return _parse_list(v, DEFAULT_CORS_ORIGINS)

    # ===== BOXNOW CARRIER =====
    BOXNOW_ENV: Literal["stage", "production"] = "stage"
    BOXNOW_API_URL: str = ""  # Overrides BOXNOW_ENV when set
    BOXNOW_CLIENT_ID: str = ""
    BOXNOW_CLIENT_SECRET: str = ""
    BOXNOW_PARTNER_ID: str = ""

    # Warehouse/origin - "2" for both stage and production, "any-apm" for AnyAPM drop-off
    BOXNOW_ORIGIN_LOCATION_ID: str = "2"
    BOXNOW_ORIGIN_CONTACT_NAME: str = ""
    BOXNOW_ORIGIN_CONTACT_EMAIL: str = ""
    BOXNOW_ORIGIN_CONTACT_NUMBER: str = ""
    BOXNOW_COUNTRY: str = "GR"

    # Payment mode controls
    BOXNOW_COD_ENABLED: bool = False
    BOXNOW_FORCE_PREPAID: bool = False

    # "international" -> +306912345678, "digits" -> 6912345678
    BOXNOW_PHONE_FORMAT: Literal["international", "digits"] = "international"

    BOXNOW_ALLOW_RETURN: bool = False
    BOXNOW_DEFAULT_SERVICE_TYPE: str = "next-day"
    BOXNOW_TOKEN_SAFETY_MARGIN_SECONDS: int = 60
    BOXNOW_TIMEOUT_SECONDS: float = 30.0

    @field_validator("BOXNOW_API_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @property
    def boxnow_base_url(self) -> str:
        """Explicit URL wins, otherwise pick the host for BOXNOW_ENV."""
        if self.BOXNOW_API_URL:
            return self.BOXNOW_API_URL
        return BOXNOW_PRODUCTION_URL if self.BOXNOW_ENV == "production" else BOXNOW_STAGE_URL

    # ===== LABEL EMAIL (SMTP) =====
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False  # True = implicit TLS (465), False = STARTTLS
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    SMTP_FROM: str = ""
    LABEL_EMAIL_RECIPIENTS: Annotated[List[str], NoDecode] = []

    @field_validator("LABEL_EMAIL_RECIPIENTS", mode="before")
    @classmethod
    def parse_label_recipients(cls, v):
        return _parse_list(v, [])

    # ===== ORDERS =====
    ORDERS_STORE_PATH: str = "data/orders.json"  # Empty = in-memory store
    SHIPPING_FLAT_FEE: float = 3.00
    FREE_SHIPPING_THRESHOLD: float = 0.0  # 0 disables free shipping
    PUBLIC_API_PREFIX: str = "/api"

    # ===== PAYMENTS (Stripe) =====
    STRIPE_SECRET_KEY: str = ""
    STRIPE_CURRENCY: str = "eur"

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            # Check DEBUG
            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            for origin in self.CORS_ORIGINS:
                if origin == "*":
                    errors.append("Wildcard '*' CORS origin is forbidden in production")

            if not (self.BOXNOW_CLIENT_ID and self.BOXNOW_CLIENT_SECRET):
                logger.warning(
                    "BOXNOW_CLIENT_ID / BOXNOW_CLIENT_SECRET not set - "
                    "carrier calls will fail until configured"
                )

            if self.BOXNOW_ENV == "stage" and not self.BOXNOW_API_URL:
                logger.warning("BOXNOW_ENV=stage in production environment")

            if errors:
                raise ValueError(
                    "PRODUCTION SECURITY VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        return self


# Try to load settings, provide helpful error on failure
try:
    settings = Settings()
except Exception as e:
    # In development, allow fallback defaults
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(f"Settings validation failed ({e}), using development defaults.")
        os.environ.setdefault("ENVIRONMENT", "development")
        settings = Settings(ENVIRONMENT="development", DEBUG=False)
    else:
        raise
