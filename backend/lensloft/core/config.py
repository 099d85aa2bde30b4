"""
Centralized application configuration

Application settings for the LensLoft storefront backend. Values come from
the environment or a `.env` file next to the backend.
"""
from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_TITLE: str = "LensLoft API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Cart, wishlist and checkout API for the LensLoft camera storefront"
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase (PostgREST) - primary store
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # Direct Postgres access. When set, orders are written in a real transaction.
    DATABASE_URL: Optional[str] = None

    # Auth
    AUTH_SECRET: str = ""
    # Non-production only: every request runs as BYPASS_USER_ID
    BYPASS_AUTH: bool = False
    BYPASS_USER_ID: str = "00000000-0000-0000-0000-000000000000"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://lensloft.id" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173,http://localhost:3000"

    # Pricing policy
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("2000000")
    FLAT_SHIPPING_FEE: Decimal = Decimal("50000")
    TAX_RATE: Decimal = Decimal("0.11")
    CURRENCY: str = "IDR"
    # Smallest currency unit amounts are rounded to (IDR has no minor unit)
    CURRENCY_QUANTUM: Decimal = Decimal("1")

    # Checkout / orders
    ORDER_SUBMIT_TIMEOUT_SECONDS: float = 30.0
    ORDER_STAGING_TTL_MINUTES: int = 15
    ORDER_NUMBER_ATTEMPTS: int = 3
    CHECKOUT_RATE_LIMIT: int = 10
    # Idle checkout sessions are dropped after this long
    CHECKOUT_SESSION_TTL_MINUTES: int = 60

    # Guest cart merge: "increment" (add-or-increment) or "max"
    GUEST_MERGE_STRATEGY: str = "increment"
    # How long a merged login session key is remembered
    GUEST_MERGE_SESSION_TTL_MINUTES: int = 720

    # Maintenance endpoints (saga sweep). Unset = endpoints disabled.
    MAINTENANCE_API_KEY: str = ""

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
