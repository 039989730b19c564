"""
Content Store Package

Backends for the read-only tenant content queries:
- SqlContentStore: SQLAlchemy (PostgreSQL in production, SQLite locally)
- RestContentStore: PostgREST / Supabase over httpx
"""

from .base import ContentStore, bounded_lookup
from .sql import SqlContentStore
from .rest import RestContentStore, RestStoreError
from sitegate.utils.config import Settings


def create_store(settings: Settings) -> ContentStore:
    """Build the configured backend."""
    backend = settings.STORE_BACKEND.lower()
    if backend == "rest":
        return RestContentStore(
            base_url=settings.SUPABASE_URL or "",
            api_key=settings.SUPABASE_ANON_KEY or "",
            timeout=settings.lookup_timeout,
        )
    if backend == "sql":
        return SqlContentStore.from_url(settings.DATABASE_URL)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


__all__ = [
    "ContentStore",
    "bounded_lookup",
    "SqlContentStore",
    "RestContentStore",
    "RestStoreError",
    "create_store",
]
