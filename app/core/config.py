# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Env vars (.env), all optional:
      - SUPABASE_URL
      - SUPABASE_KEY (anon key, used for Realtime)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)
      - SUPABASE_SERVICE_ROLE_KEY (only used for the storage client)

    When DATABASE_URL is missing the catalog runs in "configuration absent"
    mode: reads return empty collections, writes report failure, and the
    public catalog falls back to the legacy JSON file.
    """

    PROJECT_NAME: str = "SEO Rocket Catalog API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Supabase / DB config
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    DATABASE_URL: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str | None = None
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "product-icons"

    # Realtime cache coherence
    REALTIME_ENABLED: bool = True
    REALTIME_SCHEMA: str = "public"
    REALTIME_DEBOUNCE_SECONDS: float = 0.5
    FOCUS_DEBOUNCE_SECONDS: float = 1.0
    POLL_INTERVAL_SECONDS: float = 10.0

    # Legacy JSON-file product data
    LEGACY_DATA_PATH: str = "data/software.json"
    LEGACY_DATA_WRITABLE: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def database_configured(self) -> bool:
        return bool(self.DATABASE_URL)

    @property
    def realtime_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
