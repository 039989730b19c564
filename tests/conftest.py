"""
Pytest Configuration and Shared Fixtures

Provides an in-memory content store with call tracking and failure
injection, plus the tenant fixtures most modules share.
"""

import asyncio
from typing import Dict, List, Optional, Sequence, Set

import pytest

from sitegate.models import (
    ContentType,
    CustomDomain,
    DomainConnection,
    FunnelEntity,
    FunnelStep,
    PlatformPage,
    Store,
    WebsiteEntity,
    WebsitePage,
)
from sitegate.store.base import ContentStore
from sitegate.utils.config import Settings


# ============================================================================
# Fake Store
# ============================================================================

class FakeStore(ContentStore):
    """
    In-memory ContentStore.

    - ``calls`` records (operation, args) in call order
    - ``fail[op]`` makes an operation raise
    - ``delay[op]`` makes an operation sleep first (timeout tests)
    - ``fail_funnels`` makes has_published_step raise for specific funnels
    """

    def __init__(self, supports_batch: bool = False):
        self.supports_batch_step_lookup = supports_batch
        self.domains: List[CustomDomain] = []
        self.connections: Dict[str, List[DomainConnection]] = {}
        self.stores: Dict[str, Store] = {}
        self.store_slugs: Dict[str, str] = {}
        self.websites: Dict[str, WebsiteEntity] = {}
        self.website_slugs: Dict[str, str] = {}
        self.website_store: Dict[str, str] = {}
        self.pages: Dict[str, List[WebsitePage]] = {}
        self.funnels: Dict[str, FunnelEntity] = {}
        self.steps: Dict[str, List[FunnelStep]] = {}
        self.platform_pages: Dict[str, PlatformPage] = {}

        self.calls: List[tuple] = []
        self.fail: Dict[str, Exception] = {}
        self.delay: Dict[str, float] = {}
        self.fail_funnels: Set[str] = set()

    # --- builders -------------------------------------------------------

    def add_domain(self, domain: str, store_id: str = "store-1", domain_id: Optional[str] = None,
                   verified: bool = True, dns: bool = True) -> CustomDomain:
        record = CustomDomain(
            id=domain_id or f"dom-{len(self.domains) + 1}",
            domain=domain,
            store_id=store_id,
            is_verified=verified,
            dns_configured=dns,
        )
        self.domains.append(record)
        return record

    def connect(self, domain_id: str, content_type: ContentType, content_id: str,
                path: Optional[str] = None, is_homepage: bool = False) -> DomainConnection:
        conns = self.connections.setdefault(domain_id, [])
        conn = DomainConnection(
            id=f"conn-{domain_id}-{len(conns) + 1}",
            domain_id=domain_id,
            content_type=content_type,
            content_id=content_id,
            path=path,
            is_homepage=is_homepage,
        )
        conns.append(conn)
        return conn

    def add_store(self, store: Store, slug: Optional[str] = None) -> Store:
        self.stores[store.id] = store
        if slug:
            self.store_slugs[slug] = store.id
        return store

    def add_website(self, website: WebsiteEntity, slug: Optional[str] = None,
                    store_id: Optional[str] = None) -> WebsiteEntity:
        self.websites[website.id] = website
        if slug:
            self.website_slugs[slug] = website.id
        if store_id:
            self.website_store[store_id] = website.id
        return website

    def add_page(self, website_id: str, page: WebsitePage) -> WebsitePage:
        self.pages.setdefault(website_id, []).append(page)
        return page

    def add_funnel(self, funnel: FunnelEntity, steps: Sequence[FunnelStep] = ()) -> FunnelEntity:
        self.funnels[funnel.id] = funnel
        self.steps[funnel.id] = list(steps)
        return funnel

    # --- plumbing -------------------------------------------------------

    async def _enter(self, op: str, *args):
        self.calls.append((op, args))
        if op in self.delay:
            await asyncio.sleep(self.delay[op])
        if op in self.fail:
            raise self.fail[op]

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    # --- ContentStore ---------------------------------------------------

    async def find_custom_domain(self, variants):
        await self._enter("find_custom_domain", tuple(variants))
        for variant in variants:
            for domain in self.domains:
                if domain.domain == variant and domain.is_eligible:
                    return domain
        return None

    async def list_connections(self, domain_id):
        await self._enter("list_connections", domain_id)
        return list(self.connections.get(domain_id, []))

    async def get_store(self, store_id):
        await self._enter("get_store", store_id)
        return self.stores.get(store_id)

    async def has_published_step(self, funnel_id, slug):
        await self._enter("has_published_step", funnel_id, slug)
        if funnel_id in self.fail_funnels:
            raise ConnectionError(f"funnel {funnel_id} lookup failed")
        return any(s.slug == slug and s.is_published for s in self.steps.get(funnel_id, []))

    async def funnels_with_published_step(self, funnel_ids, slug):
        await self._enter("funnels_with_published_step", tuple(funnel_ids), slug)
        return {
            fid for fid in funnel_ids
            if any(s.slug == slug and s.is_published for s in self.steps.get(fid, []))
        }

    async def get_funnel(self, funnel_id):
        await self._enter("get_funnel", funnel_id)
        return self.funnels.get(funnel_id)

    async def get_step(self, funnel_id, slug):
        await self._enter("get_step", funnel_id, slug)
        for step in self.steps.get(funnel_id, []):
            if step.slug == slug and step.is_published:
                return step
        return None

    async def get_first_step(self, funnel_id):
        await self._enter("get_first_step", funnel_id)
        published = [s for s in self.steps.get(funnel_id, []) if s.is_published]
        return min(published, key=lambda s: s.step_order) if published else None

    async def get_website(self, website_id):
        await self._enter("get_website", website_id)
        return self.websites.get(website_id)

    async def get_website_by_slug(self, slug):
        await self._enter("get_website_by_slug", slug)
        website_id = self.website_slugs.get(slug)
        return self.websites.get(website_id) if website_id else None

    async def get_store_website(self, store_slug):
        await self._enter("get_store_website", store_slug)
        store_id = self.store_slugs.get(store_slug)
        website_id = self.website_store.get(store_id) if store_id else None
        return self.websites.get(website_id) if website_id else None

    async def get_homepage(self, website_id):
        await self._enter("get_homepage", website_id)
        for page in self.pages.get(website_id, []):
            if page.is_homepage and page.is_published:
                return page
        return None

    async def get_page(self, website_id, slug):
        await self._enter("get_page", website_id, slug)
        for page in self.pages.get(website_id, []):
            if page.slug == slug and page.is_published:
                return page
        return None

    async def get_platform_page(self, slug):
        await self._enter("get_platform_page", slug)
        return self.platform_pages.get(slug)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        STORE_BACKEND="sql",
        SYSTEM_DOMAINS="app.ecombuildr.com,get.ecombuildr.com",
        PLATFORM_ROOT_DOMAIN="ecombuildr.com",
        APP_ORIGIN="https://app.ecombuildr.com",
        LOOKUP_TIMEOUT_MS=200,
    )


@pytest.fixture
def shop_store(store: FakeStore) -> FakeStore:
    """
    A tenant on shop.example with a website (homepage + about) and a funnel
    (offer-a, thank-you). Connections are inserted funnel first, so the
    homepage flag, not insertion order, must decide the root.
    """
    domain = store.add_domain("shop.example", store_id="store-1", domain_id="dom-shop")
    store.add_store(Store(id="store-1", name="Acme Store", description="Everything Acme."), slug="acme")

    store.add_website(
        WebsiteEntity(id="web-1", name="Acme", seo_description="The Acme storefront."),
        slug="acme-site",
        store_id="store-1",
    )
    store.add_page("web-1", WebsitePage(
        id="page-home", slug="home", is_homepage=True, is_published=True,
        title="Home", seo_title="Acme Home",
    ))
    store.add_page("web-1", WebsitePage(
        id="page-about", slug="about", is_published=True,
        title="About us", seo_description="Who we are.", og_image="/img/about.png",
    ))

    store.add_funnel(
        FunnelEntity(id="fun-1", name="Spring Sale"),
        steps=[
            FunnelStep(id="step-1", slug="offer-a", step_order=1, is_published=True, title="Offer A"),
            FunnelStep(id="step-2", slug="thank-you", step_order=2, is_published=True, title="Thanks"),
        ],
    )

    store.connect(domain.id, ContentType.FUNNEL, "fun-1")
    store.connect(domain.id, ContentType.WEBSITE, "web-1", is_homepage=True)
    return store
