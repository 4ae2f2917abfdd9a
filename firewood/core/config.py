# firewood/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Typical env vars (.env):
      - DATABASE_URL (Postgres connection string; SQLite works for local runs)
      - ADMIN_USER / ADMIN_PASS (shared admin Basic-auth credentials)
      - MOLLIE_API_KEY (card payments)
      - APP_BASE_URL (public site URL, used for redirects and email links)

    Optional:
      - MOLLIE_WEBHOOK_BASE_URL (public host Mollie can reach; overrides APP_BASE_URL)
      - ADMIN_NOTIFY_TO / SEND_CUSTOMER_EMAIL (order emails)
      - GOOGLE_MAPS_API_KEY / GOOGLE_PLACES_QUERY (rating badge)
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (product image uploads)
    """

    PROJECT_NAME: str = "Verrington Firewood API"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str = "sqlite:///./firewood.db"

    # Admin area (HTTP Basic). Missing values deny every admin request.
    ADMIN_USER: str | None = None
    ADMIN_PASS: str | None = None

    APP_BASE_URL: str = "http://localhost:3000"
    CURRENCY: str = "GBP"

    # Mollie
    MOLLIE_API_KEY: str | None = None
    MOLLIE_API_BASE: str = "https://api.mollie.com/v2"
    MOLLIE_WEBHOOK_BASE_URL: str | None = None

    # Outbound HTTP calls (Mollie, Google Places)
    HTTP_TIMEOUT_SECONDS: float = 20.0

    # Emails
    ADMIN_NOTIFY_TO: str | None = None
    SEND_CUSTOMER_EMAIL: bool = False

    # Google rating badge
    GOOGLE_MAPS_API_KEY: str | None = None
    GOOGLE_PLACES_QUERY: str | None = None
    GOOGLE_REVIEW_URL: str | None = None

    # Supabase Storage (product images)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def app_base_url(self) -> str:
        return self.APP_BASE_URL.strip().rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
