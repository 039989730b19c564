"""
Resolution Pipeline

Orchestrates one request from hostname + path to an SEO record:

    Domain Normalizer -> Tenant Resolver -> Content Router
        -> entity fetch -> SEO Metadata Resolver

System (platform) hosts skip tenant resolution and use the platform
patterns instead:
- ``{slug}.{platform_root}`` and ``/site/{slug}/...``: website by slug
- ``/store/{slug}/...``: the store's first website
- ``/funnel/{funnel_id}/{step?}``: funnel landing or step
- anything else: the platform's own page for the path

Every failure is recovered here by degrading to more generic data. The
only non-document outcome is ``not_found`` for unknown domains when the
deployment disables fallbacks, and never when the backend was the problem.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Optional, TypeVar

from sitegate.errors import BackendUnavailable, NoContent, TenantNotFound
from sitegate.models import (
    ContentType,
    CourseAreaContent,
    CourseAreaEntity,
    FunnelContent,
    PlatformContent,
    ResolvedContent,
    SEORecord,
    Store,
    Tenant,
    WebsiteContent,
    WebsiteEntity,
)
from sitegate.render.document import render_document
from sitegate.render.synthesizer import synthesize_document
from sitegate.routing.domain import (
    clean_hostname,
    domain_variants,
    is_system_domain,
    platform_subdomain,
)
from sitegate.routing.router import ContentRouter, RouteSelection
from sitegate.routing.routes import RequestPath, RoutingConfig, parse_path
from sitegate.routing.tenant import resolve_tenant
from sitegate.seo.resolver import SeoDefaults, canonical_url, fallback_record, resolve_seo
from sitegate.store.base import ContentStore, bounded_lookup
from sitegate.utils.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# TYPES
# =============================================================================


class Outcome(str, Enum):
    """How far resolution got."""
    RESOLVED = "resolved"
    NO_CONTENT = "no_content"
    UNKNOWN_DOMAIN = "unknown_domain"
    BACKEND_UNAVAILABLE = "backend_unavailable"


@dataclass(frozen=True)
class PageRequest:
    hostname: str
    path: str = "/"


@dataclass
class Resolution:
    """Pipeline output for one request."""
    record: SEORecord
    outcome: Outcome
    path: RequestPath
    trace_id: str
    content: Optional[ResolvedContent] = None
    is_custom_domain: bool = False
    rule: Optional[str] = None
    not_found: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.outcome != Outcome.RESOLVED


def new_trace_id() -> str:
    return uuid.uuid4().hex[:12]


def split_system_path(path: RequestPath, prefix: str) -> Optional[tuple]:
    """
    ``/prefix/{slug}/rest`` -> (slug, RequestPath(rest)); None when not matching.

    Examples:
        >>> split_system_path(parse_path("/site/acme/about"), "site")[0]
        'acme'
    """
    if len(path.segments) < 2 or path.first_segment != prefix:
        return None
    return path.segments[1], parse_path("/".join(path.segments[2:]))


# =============================================================================
# PIPELINE
# =============================================================================


class RenderPipeline:
    """
    Resolve requests to SEO records and render documents.

    Usage:
        pipeline = RenderPipeline(store, get_settings())
        resolution = await pipeline.resolve(PageRequest("shop.example", "/about"))
        html = pipeline.render(resolution)
    """

    def __init__(self, store: ContentStore, settings: Settings):
        self.store = store
        self.settings = settings
        self.timeout = settings.lookup_timeout
        self.router = ContentRouter(
            store,
            RoutingConfig.from_settings(settings),
            timeout=self.timeout,
        )
        self.defaults = SeoDefaults(
            description=settings.DEFAULT_DESCRIPTION,
            locale=settings.DEFAULT_LOCALE,
            platform_name=settings.PLATFORM_SITE_NAME,
            max_description_length=settings.DESCRIPTION_MAX_LENGTH,
        )

    def is_custom_domain(self, hostname: str) -> bool:
        return not is_system_domain(
            hostname, self.settings.system_domains, self.settings.PLATFORM_ROOT_DOMAIN
        )

    async def _optional(self, awaitable: Awaitable[T], operation: str) -> Optional[T]:
        """A lookup whose failure is just a miss for its tier."""
        try:
            return await bounded_lookup(awaitable, operation, self.timeout)
        except BackendUnavailable:
            return None

    async def resolve(self, request: PageRequest, trace_id: Optional[str] = None) -> Resolution:
        """
        Resolve a request. Never raises for backend or content problems.
        """
        trace_id = trace_id or new_trace_id()
        host = clean_hostname(request.hostname)
        path = parse_path(request.path)

        if self.is_custom_domain(host):
            resolution = await self._resolve_custom(host, path, trace_id)
        else:
            resolution = await self._resolve_system(host, path, trace_id)

        logger.info(
            f"[{trace_id}] {host}/{path.clean} -> {resolution.outcome.value} "
            f"(source={resolution.record.source}, rule={resolution.rule})"
        )
        return resolution

    # --- custom domains -------------------------------------------------

    async def _resolve_custom(self, host: str, path: RequestPath, trace_id: str) -> Resolution:
        def fallback(outcome: Outcome, source: str, store: Optional[Store] = None) -> Resolution:
            return Resolution(
                record=fallback_record(
                    host, path, source, self.defaults, site_name=store.name if store else None
                ),
                outcome=outcome,
                path=path,
                trace_id=trace_id,
                is_custom_domain=True,
                not_found=(
                    outcome == Outcome.UNKNOWN_DOMAIN
                    and not self.settings.FALLBACK_FOR_UNKNOWN_DOMAINS
                ),
            )

        try:
            tenant = await resolve_tenant(self.store, domain_variants(host), self.timeout)
        except TenantNotFound:
            return fallback(Outcome.UNKNOWN_DOMAIN, "fallback_unknown_domain")
        except BackendUnavailable:
            return fallback(Outcome.BACKEND_UNAVAILABLE, "fallback_no_data")

        store = await self._optional(self.store.get_store(tenant.store_id), "get_store")

        try:
            connections = await bounded_lookup(
                self.store.list_connections(tenant.domain_id), "list_connections", self.timeout
            )
            selection = await self.router.select(tenant.domain_id, path, connections)
        except BackendUnavailable:
            return fallback(Outcome.BACKEND_UNAVAILABLE, "fallback_no_data", store)
        except NoContent:
            return fallback(Outcome.NO_CONTENT, "fallback_no_content", store)

        content = await self.fetch_content(selection, path, tenant)
        if content is None:
            logger.warning(
                f"[{trace_id}] {selection.content_type.value} selected by rule "
                f"{selection.rule} could not be loaded"
            )
            return fallback(Outcome.NO_CONTENT, "fallback_no_data", store)

        return Resolution(
            record=resolve_seo(content, store, host, path, self.defaults),
            outcome=Outcome.RESOLVED,
            path=path,
            trace_id=trace_id,
            content=content,
            is_custom_domain=True,
            rule=selection.rule,
        )

    async def fetch_content(
        self,
        selection: RouteSelection,
        path: RequestPath,
        tenant: Tenant,
    ) -> Optional[ResolvedContent]:
        """Load the selected entity and its child for the path."""
        content_id = selection.content_id

        if selection.content_type == ContentType.WEBSITE:
            website = await self._optional(self.store.get_website(content_id), "get_website")
            if website is None:
                return None
            return await self._website_content(website, path)

        if selection.content_type == ContentType.FUNNEL:
            return await self._funnel_content(content_id, None if path.is_root else path.last_segment)

        return CourseAreaContent(area=CourseAreaEntity(id=content_id, store_id=tenant.store_id))

    async def _website_content(self, website: WebsiteEntity, path: RequestPath) -> WebsiteContent:
        if path.is_root:
            page = await self._optional(self.store.get_homepage(website.id), "get_homepage")
            return WebsiteContent(website=website, page=page)

        page = await self._optional(self.store.get_page(website.id, path.clean), "get_page")
        if page is None and path.last_segment != path.clean:
            page = await self._optional(
                self.store.get_page(website.id, path.last_segment), "get_page"
            )
        return WebsiteContent(website=website, page=page)

    async def _funnel_content(self, funnel_id: str, step_slug: Optional[str]) -> Optional[FunnelContent]:
        funnel = await self._optional(self.store.get_funnel(funnel_id), "get_funnel")
        if funnel is None:
            return None

        step = None
        if step_slug:
            step = await self._optional(self.store.get_step(funnel_id, step_slug), "get_step")
        if step is None:
            step = await self._optional(self.store.get_first_step(funnel_id), "get_first_step")
        return FunnelContent(funnel=funnel, step=step)

    # --- system domains -------------------------------------------------

    async def _resolve_system(self, host: str, path: RequestPath, trace_id: str) -> Resolution:
        content: Optional[ResolvedContent] = None
        content_path = path
        rule = None

        subdomain = platform_subdomain(host, self.settings.PLATFORM_ROOT_DOMAIN)
        site = split_system_path(path, "site")
        store_site = split_system_path(path, "store")
        funnel = split_system_path(path, "funnel")

        if subdomain:
            rule = "platform_subdomain"
            website = await self._optional(
                self.store.get_website_by_slug(subdomain), "get_website_by_slug"
            )
            if website is not None:
                content = await self._website_content(website, path)
        elif site:
            rule = "site_path"
            slug, content_path = site
            website = await self._optional(self.store.get_website_by_slug(slug), "get_website_by_slug")
            if website is not None:
                content = await self._website_content(website, content_path)
        elif store_site:
            rule = "store_path"
            slug, content_path = store_site
            website = await self._optional(self.store.get_store_website(slug), "get_store_website")
            if website is not None:
                content = await self._website_content(website, content_path)
        elif funnel:
            rule = "funnel_path"
            funnel_id, content_path = funnel
            content = await self._funnel_content(funnel_id, content_path.first_segment)
        else:
            rule = "platform_page"
            slug = path.clean or "/"
            page = await self._optional(self.store.get_platform_page(slug), "get_platform_page")
            if page is not None:
                content = PlatformContent(page=page)

        if content is None:
            return Resolution(
                record=fallback_record(
                    host, path, "fallback_no_data", self.defaults,
                    site_name=self.settings.PLATFORM_SITE_NAME,
                ),
                outcome=Outcome.NO_CONTENT,
                path=path,
                trace_id=trace_id,
                rule=rule,
            )

        record = resolve_seo(content, None, host, content_path, self.defaults)
        if content_path is not path and record.canonical == canonical_url(None, host, content_path):
            # Canonical keeps the full platform path, not the path inside the site
            record.canonical = canonical_url(None, host, path)
        return Resolution(
            record=record,
            outcome=Outcome.RESOLVED,
            path=path,
            trace_id=trace_id,
            content=content,
            rule=rule,
        )

    # --- rendering ------------------------------------------------------

    def page_body(self, resolution: Resolution) -> Optional[str]:
        """Document Renderer output for the resolved page/step, if it has one."""
        content = resolution.content
        document = None
        if isinstance(content, WebsiteContent) and content.page is not None:
            document = content.page.content
        elif isinstance(content, FunnelContent) and content.step is not None:
            document = content.step.content
        if not document or (isinstance(document, str) and not document.lstrip().startswith("{")):
            return None
        return render_document(document)

    def render(self, resolution: Resolution, with_body: Optional[bool] = None) -> str:
        """Synthesized document, optionally with the rendered page body."""
        if with_body is None:
            with_body = self.settings.RENDER_PAGE_BODY
        body = self.page_body(resolution) if with_body else None
        return synthesize_document(resolution.record, body_html=body)
