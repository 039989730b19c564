"""
SQL Content Store

SQLAlchemy-backed implementation of the read path. Sessions are short-lived
(one per lookup) and run in a worker thread so the event loop is never
blocked; the caller's ``bounded_lookup`` applies the timeout.

Designed for both production (PostgreSQL) and local development (SQLite).
"""

import asyncio
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, TypeVar

from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from sitegate.models import (
    CustomDomain,
    DomainConnection,
    FunnelEntity,
    FunnelStep,
    PlatformPage,
    Store,
    WebsiteEntity,
    WebsitePage,
)
from .base import ContentStore
from .schema import (
    Base,
    CustomDomainRow,
    DomainConnectionRow,
    FunnelRow,
    FunnelStepRow,
    SeoPageRow,
    StoreRow,
    WebsitePageRow,
    WebsiteRow,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def get_database_url(url: Optional[str] = None) -> str:
    """
    Resolve the database URL.

    Priority:
    1. Explicit argument
    2. DATABASE_URL
    3. SQLite fallback for local development
    """
    url = url or os.getenv("DATABASE_URL")

    if url:
        # Hosted PostgreSQL URLs use postgres:// but SQLAlchemy needs postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    sqlite_path = os.getenv("SQLITE_PATH", "sitegate_dev.db")
    logger.warning(f"No DATABASE_URL found, using SQLite: {sqlite_path}")
    return f"sqlite:///{sqlite_path}"


def create_db_engine(url: Optional[str] = None):
    """
    Create database engine with appropriate settings.

    PostgreSQL: small pool, short connect/statement timeouts (edge serving)
    SQLite: thread-shared connection; in-memory URLs share one connection
    """
    url = get_database_url(url)
    echo = os.getenv("SQL_DEBUG", "false").lower() == "true"

    if url.startswith("postgresql"):
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=2,
            pool_recycle=1800,
            pool_pre_ping=True,
            connect_args={"connect_timeout": 2, "options": "-c statement_timeout=1000"},
            echo=echo,
        )
        logger.info("Created PostgreSQL engine with connection pooling")
        return engine

    kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.info("Created SQLite engine")
    return engine


def _row_to_dict(row) -> Dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


# =============================================================================
# STORE
# =============================================================================

class SqlContentStore(ContentStore):
    """
    Content store over SQLAlchemy.

    Usage:
        store = SqlContentStore.from_url("postgresql://...")
        domain = await store.find_custom_domain(["shop.example", "www.shop.example"])
    """

    supports_batch_step_lookup = True

    def __init__(self, engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    @classmethod
    def from_url(cls, url: Optional[str] = None) -> "SqlContentStore":
        return cls(create_db_engine(url))

    def create_tables(self) -> None:
        """Create tables (local development and tests only)."""
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self._session_factory()

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._session_factory() as db:
                return fn(db)

        return await asyncio.to_thread(work)

    # --- tenant ---------------------------------------------------------

    async def find_custom_domain(self, variants: Sequence[str]) -> Optional[CustomDomain]:
        if not variants:
            return None

        def query(db: Session):
            rows = db.execute(
                select(CustomDomainRow)
                .where(CustomDomainRow.domain.in_(list(variants)))
                .where(CustomDomainRow.is_verified.is_(True))
                .where(CustomDomainRow.dns_configured.is_(True))
            ).scalars().all()
            # Prefer the variant the visitor actually typed
            by_domain = {row.domain: row for row in rows}
            for variant in variants:
                if variant in by_domain:
                    return CustomDomain.from_record(_row_to_dict(by_domain[variant]))
            return None

        return await self._run(query)

    async def list_connections(self, domain_id: str) -> List[DomainConnection]:
        def query(db: Session):
            rows = db.execute(
                select(DomainConnectionRow)
                .where(DomainConnectionRow.domain_id == domain_id)
                .order_by(DomainConnectionRow.created_at, DomainConnectionRow.id)
            ).scalars().all()
            connections = []
            for row in rows:
                try:
                    connections.append(DomainConnection.from_record(_row_to_dict(row)))
                except (KeyError, ValueError) as e:
                    logger.warning(f"Skipping malformed domain connection {row.id}: {e}")
            return connections

        return await self._run(query)

    async def get_store(self, store_id: str) -> Optional[Store]:
        def query(db: Session):
            row = db.get(StoreRow, store_id)
            return Store.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    # --- funnels --------------------------------------------------------

    async def has_published_step(self, funnel_id: str, slug: str) -> bool:
        def query(db: Session):
            row = db.execute(
                select(FunnelStepRow.id)
                .where(FunnelStepRow.funnel_id == funnel_id)
                .where(FunnelStepRow.slug == slug)
                .where(FunnelStepRow.is_published.is_(True))
                .limit(1)
            ).first()
            return row is not None

        return await self._run(query)

    async def funnels_with_published_step(
        self, funnel_ids: Sequence[str], slug: str
    ) -> Set[str]:
        if not funnel_ids:
            return set()

        def query(db: Session):
            rows = db.execute(
                select(FunnelStepRow.funnel_id)
                .where(FunnelStepRow.funnel_id.in_(list(funnel_ids)))
                .where(FunnelStepRow.slug == slug)
                .where(FunnelStepRow.is_published.is_(True))
            ).all()
            return {str(r[0]) for r in rows}

        return await self._run(query)

    async def get_funnel(self, funnel_id: str) -> Optional[FunnelEntity]:
        def query(db: Session):
            row = db.get(FunnelRow, funnel_id)
            if row is None or row.is_active is False:
                return None
            return FunnelEntity.from_record(_row_to_dict(row))

        return await self._run(query)

    async def get_step(self, funnel_id: str, slug: str) -> Optional[FunnelStep]:
        def query(db: Session):
            row = db.execute(
                select(FunnelStepRow)
                .where(FunnelStepRow.funnel_id == funnel_id)
                .where(FunnelStepRow.slug == slug)
                .where(FunnelStepRow.is_published.is_(True))
                .limit(1)
            ).scalars().first()
            return FunnelStep.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    async def get_first_step(self, funnel_id: str) -> Optional[FunnelStep]:
        def query(db: Session):
            row = db.execute(
                select(FunnelStepRow)
                .where(FunnelStepRow.funnel_id == funnel_id)
                .where(FunnelStepRow.is_published.is_(True))
                .order_by(FunnelStepRow.step_order, FunnelStepRow.created_at)
                .limit(1)
            ).scalars().first()
            return FunnelStep.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    # --- websites -------------------------------------------------------

    async def get_website(self, website_id: str) -> Optional[WebsiteEntity]:
        def query(db: Session):
            row = db.get(WebsiteRow, website_id)
            return WebsiteEntity.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    async def get_website_by_slug(self, slug: str) -> Optional[WebsiteEntity]:
        def query(db: Session):
            row = db.execute(
                select(WebsiteRow).where(WebsiteRow.slug == slug).limit(1)
            ).scalars().first()
            return WebsiteEntity.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    async def get_store_website(self, store_slug: str) -> Optional[WebsiteEntity]:
        def query(db: Session):
            row = db.execute(
                select(WebsiteRow)
                .join(StoreRow, StoreRow.id == WebsiteRow.store_id)
                .where(StoreRow.slug == store_slug)
                .where(StoreRow.is_active.is_(True))
                .order_by(WebsiteRow.created_at)
                .limit(1)
            ).scalars().first()
            return WebsiteEntity.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    async def get_homepage(self, website_id: str) -> Optional[WebsitePage]:
        def query(db: Session):
            row = db.execute(
                select(WebsitePageRow)
                .where(WebsitePageRow.website_id == website_id)
                .where(WebsitePageRow.is_homepage.is_(True))
                .where(WebsitePageRow.is_published.is_(True))
                .limit(1)
            ).scalars().first()
            return WebsitePage.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    async def get_page(self, website_id: str, slug: str) -> Optional[WebsitePage]:
        def query(db: Session):
            row = db.execute(
                select(WebsitePageRow)
                .where(WebsitePageRow.website_id == website_id)
                .where(WebsitePageRow.slug == slug)
                .where(WebsitePageRow.is_published.is_(True))
                .limit(1)
            ).scalars().first()
            return WebsitePage.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    # --- platform -------------------------------------------------------

    async def get_platform_page(self, slug: str) -> Optional[PlatformPage]:
        def query(db: Session):
            row = db.execute(
                select(SeoPageRow).where(SeoPageRow.page_slug == slug).limit(1)
            ).scalars().first()
            return PlatformPage.from_record(_row_to_dict(row)) if row else None

        return await self._run(query)

    # --- lifecycle ------------------------------------------------------

    async def ping(self) -> bool:
        def query(db: Session):
            db.execute(select(1))
            return True

        return await self._run(query)

    async def close(self) -> None:
        self.engine.dispose()
