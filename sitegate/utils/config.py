"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.

List-valued settings are kept as comma-separated strings and split by
``parse_csv`` (BaseSettings would otherwise try to JSON-decode them).
"""

from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


def parse_csv(raw: Optional[str]) -> List[str]:
    """Split a comma-separated setting into lower-cased, non-empty items."""
    if not raw:
        return []
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Backend: "sql" (SQLAlchemy, DATABASE_URL) or "rest" (PostgREST/Supabase)
    STORE_BACKEND: str = "sql"
    DATABASE_URL: Optional[str] = None
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None

    # Every backend lookup is bounded; a timeout counts as a miss
    LOOKUP_TIMEOUT_MS: int = 300

    # Platform domains (not tenant custom domains)
    SYSTEM_DOMAINS: str = "app.ecombuildr.com,get.ecombuildr.com"
    PLATFORM_ROOT_DOMAIN: str = "ecombuildr.com"
    PLATFORM_SITE_NAME: str = "EcomBuildr"

    # Live interactive application for human pass-through
    APP_ORIGIN: str = "https://app.ecombuildr.com"
    PASS_THROUGH_MODE: str = "redirect"  # redirect | proxy

    # Deployment policy: humans on custom domains get the shell, not the app
    SERVE_SHELL_TO_HUMANS_ON_CUSTOM_DOMAINS: bool = False
    # When False, unknown/unverified domains get a 404 instead of a generic shell
    FALLBACK_FOR_UNKNOWN_DOMAINS: bool = True

    # Diagnostic crawler override; disabled while the token is unset
    PRERENDER_OVERRIDE_HEADER: str = "X-Sitegate-Prerender"
    PRERENDER_OVERRIDE_QUERY: str = "_prerender"
    PRERENDER_OVERRIDE_TOKEN: Optional[str] = None

    # Routing table overrides (empty = built-in defaults)
    COURSE_PREFIXES: str = ""
    WEBSITE_SYSTEM_ROUTES: str = ""
    GENERAL_SYSTEM_ROUTES: str = ""

    # Rendering
    DEFAULT_DESCRIPTION: str = "Discover our latest products and offers."
    DEFAULT_LOCALE: str = "en_US"
    DESCRIPTION_MAX_LENGTH: int = 155
    RENDER_PAGE_BODY: bool = False
    DIAGNOSTIC_HEADERS: bool = True

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def system_domains(self) -> List[str]:
        return parse_csv(self.SYSTEM_DOMAINS)

    @property
    def lookup_timeout(self) -> float:
        """Lookup timeout in seconds."""
        return max(self.LOOKUP_TIMEOUT_MS, 1) / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
