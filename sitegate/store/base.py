"""
Content Store Interface

The pipeline only ever reads. Each method is a single filtered lookup
against an indexed column (domain, domain_id, slug, is_published,
is_homepage); implementations must not hold connections across calls.

Stores may raise anything on failure. ``bounded_lookup`` is the single
place where a backend call gets its timeout and where failures are turned
into ``BackendUnavailable``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, List, Optional, Sequence, Set, TypeVar

from sitegate.errors import BackendUnavailable
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

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded_lookup(awaitable: Awaitable[T], operation: str, timeout: float) -> T:
    """
    Await a backend call with a hard timeout.

    Raises:
        BackendUnavailable: on timeout or any backend error
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"Lookup '{operation}' timed out after {timeout * 1000:.0f}ms")
        raise BackendUnavailable(operation, e) from e
    except BackendUnavailable:
        raise
    except Exception as e:
        logger.warning(f"Lookup '{operation}' failed: {e}")
        raise BackendUnavailable(operation, e) from e


class ContentStore(ABC):
    """Read-only query capability over the tenant content collections."""

    # Stores that can answer "which of these funnels has a published step
    # with this slug" in one query set this and override the batch method.
    supports_batch_step_lookup: bool = False

    # --- tenant ---------------------------------------------------------

    @abstractmethod
    async def find_custom_domain(self, variants: Sequence[str]) -> Optional[CustomDomain]:
        """Verified + DNS-configured domain whose hostname is in ``variants``."""

    @abstractmethod
    async def list_connections(self, domain_id: str) -> List[DomainConnection]:
        """All connections of a domain in stable insertion order."""

    @abstractmethod
    async def get_store(self, store_id: str) -> Optional[Store]:
        ...

    # --- funnels --------------------------------------------------------

    @abstractmethod
    async def has_published_step(self, funnel_id: str, slug: str) -> bool:
        ...

    async def funnels_with_published_step(
        self, funnel_ids: Sequence[str], slug: str
    ) -> Set[str]:
        """
        Subset of ``funnel_ids`` that own a published step ``slug``.

        One lookup per funnel here; stores that answer in a single query
        override this and set ``supports_batch_step_lookup``.
        """
        matched = set()
        for funnel_id in funnel_ids:
            if await self.has_published_step(funnel_id, slug):
                matched.add(funnel_id)
        return matched

    @abstractmethod
    async def get_funnel(self, funnel_id: str) -> Optional[FunnelEntity]:
        ...

    @abstractmethod
    async def get_step(self, funnel_id: str, slug: str) -> Optional[FunnelStep]:
        """Published step by slug."""

    @abstractmethod
    async def get_first_step(self, funnel_id: str) -> Optional[FunnelStep]:
        """Lowest step_order published step (the funnel landing)."""

    # --- websites -------------------------------------------------------

    @abstractmethod
    async def get_website(self, website_id: str) -> Optional[WebsiteEntity]:
        ...

    @abstractmethod
    async def get_website_by_slug(self, slug: str) -> Optional[WebsiteEntity]:
        ...

    @abstractmethod
    async def get_store_website(self, store_slug: str) -> Optional[WebsiteEntity]:
        """First website of an active store, looked up by store slug."""

    @abstractmethod
    async def get_homepage(self, website_id: str) -> Optional[WebsitePage]:
        """Published homepage-flagged page."""

    @abstractmethod
    async def get_page(self, website_id: str, slug: str) -> Optional[WebsitePage]:
        """Published page by slug."""

    # --- platform -------------------------------------------------------

    @abstractmethod
    async def get_platform_page(self, slug: str) -> Optional[PlatformPage]:
        ...

    # --- lifecycle ------------------------------------------------------

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
