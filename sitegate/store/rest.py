"""
PostgREST Content Store

Async client for the Supabase/PostgREST REST interface with:
- Connection pooling
- Short per-request timeouts (edge serving)
- Equality / IN filters only

No retries: a slow or failed lookup is a miss for the current tier and the
cascade moves on, which is cheaper than retrying at the edge.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

import httpx

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

logger = logging.getLogger(__name__)


class RestStoreError(Exception):
    """PostgREST returned a non-success status."""
    def __init__(self, message: str, status_code: int = None, table: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.table = table


def _in_filter(values: Sequence[str]) -> str:
    quoted = ",".join(f'"{v}"' for v in values)
    return f"in.({quoted})"


class RestContentStore(ContentStore):
    """
    Content store over PostgREST.

    Usage:
        store = RestContentStore(base_url="https://xyz.supabase.co", api_key="...")
        domain = await store.find_custom_domain(["shop.example"])
        await store.close()
    """

    supports_batch_step_lookup = True

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 0.3,
        max_connections: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the REST store.

        Args:
            base_url: Project URL (``/rest/v1`` is appended)
            api_key: Anon key; the read path needs nothing more privileged
            timeout: Per-request timeout in seconds
            max_connections: Maximum concurrent connections
            transport: Optional httpx transport (tests)
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections // 2,
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """GET /{table} with PostgREST filter params."""
        query = {"select": "*", **params}
        logger.debug(f"GET /{table} {params}")

        response = await self._client.get(f"/{table}", params=query)
        if response.status_code != 200:
            raise RestStoreError(
                f"PostgREST {table} query failed: {response.status_code}",
                status_code=response.status_code,
                table=table,
            )
        data = response.json()
        return data if isinstance(data, list) else []

    async def _first(self, table: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        rows = await self._select(table, {**params, "limit": "1"})
        return rows[0] if rows else None

    # --- tenant ---------------------------------------------------------

    async def find_custom_domain(self, variants: Sequence[str]) -> Optional[CustomDomain]:
        if not variants:
            return None
        rows = await self._select("custom_domains", {
            "domain": _in_filter(variants),
            "is_verified": "eq.true",
            "dns_configured": "eq.true",
        })
        by_domain = {row.get("domain"): row for row in rows}
        for variant in variants:
            if variant in by_domain:
                return CustomDomain.from_record(by_domain[variant])
        return None

    async def list_connections(self, domain_id: str) -> List[DomainConnection]:
        rows = await self._select("domain_connections", {
            "domain_id": f"eq.{domain_id}",
            "order": "created_at.asc,id.asc",
        })
        connections = []
        for row in rows:
            try:
                connections.append(DomainConnection.from_record(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed domain connection {row.get('id')}: {e}")
        return connections

    async def get_store(self, store_id: str) -> Optional[Store]:
        row = await self._first("stores", {"id": f"eq.{store_id}"})
        return Store.from_record(row) if row else None

    # --- funnels --------------------------------------------------------

    async def has_published_step(self, funnel_id: str, slug: str) -> bool:
        rows = await self._select("funnel_steps", {
            "select": "id",
            "funnel_id": f"eq.{funnel_id}",
            "slug": f"eq.{slug}",
            "is_published": "eq.true",
            "limit": "1",
        })
        return bool(rows)

    async def funnels_with_published_step(
        self, funnel_ids: Sequence[str], slug: str
    ) -> Set[str]:
        if not funnel_ids:
            return set()
        rows = await self._select("funnel_steps", {
            "select": "funnel_id",
            "funnel_id": _in_filter(funnel_ids),
            "slug": f"eq.{slug}",
            "is_published": "eq.true",
        })
        return {str(row["funnel_id"]) for row in rows if row.get("funnel_id")}

    async def get_funnel(self, funnel_id: str) -> Optional[FunnelEntity]:
        row = await self._first("funnels", {"id": f"eq.{funnel_id}", "is_active": "eq.true"})
        return FunnelEntity.from_record(row) if row else None

    async def get_step(self, funnel_id: str, slug: str) -> Optional[FunnelStep]:
        row = await self._first("funnel_steps", {
            "funnel_id": f"eq.{funnel_id}",
            "slug": f"eq.{slug}",
            "is_published": "eq.true",
        })
        return FunnelStep.from_record(row) if row else None

    async def get_first_step(self, funnel_id: str) -> Optional[FunnelStep]:
        row = await self._first("funnel_steps", {
            "funnel_id": f"eq.{funnel_id}",
            "is_published": "eq.true",
            "order": "step_order.asc",
        })
        return FunnelStep.from_record(row) if row else None

    # --- websites -------------------------------------------------------

    async def get_website(self, website_id: str) -> Optional[WebsiteEntity]:
        row = await self._first("websites", {"id": f"eq.{website_id}"})
        return WebsiteEntity.from_record(row) if row else None

    async def get_website_by_slug(self, slug: str) -> Optional[WebsiteEntity]:
        row = await self._first("websites", {"slug": f"eq.{slug}"})
        return WebsiteEntity.from_record(row) if row else None

    async def get_store_website(self, store_slug: str) -> Optional[WebsiteEntity]:
        store = await self._first("stores", {
            "select": "id",
            "slug": f"eq.{store_slug}",
            "is_active": "eq.true",
        })
        if not store:
            return None
        row = await self._first("websites", {
            "store_id": f"eq.{store['id']}",
            "order": "created_at.asc",
        })
        return WebsiteEntity.from_record(row) if row else None

    async def get_homepage(self, website_id: str) -> Optional[WebsitePage]:
        row = await self._first("website_pages", {
            "website_id": f"eq.{website_id}",
            "is_homepage": "eq.true",
            "is_published": "eq.true",
        })
        return WebsitePage.from_record(row) if row else None

    async def get_page(self, website_id: str, slug: str) -> Optional[WebsitePage]:
        row = await self._first("website_pages", {
            "website_id": f"eq.{website_id}",
            "slug": f"eq.{slug}",
            "is_published": "eq.true",
        })
        return WebsitePage.from_record(row) if row else None

    # --- platform -------------------------------------------------------

    async def get_platform_page(self, slug: str) -> Optional[PlatformPage]:
        row = await self._first("seo_pages", {"page_slug": f"eq.{slug}"})
        return PlatformPage.from_record(row) if row else None

    # --- lifecycle ------------------------------------------------------

    async def ping(self) -> bool:
        response = await self._client.get("/", params={"limit": "1"})
        return response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()
