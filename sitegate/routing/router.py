"""
Content Router

Selects exactly one domain connection for a request path by walking the
routing table. Connections are fetched once per request by the caller; all
filtering here is in memory except the funnel step probe, which has to ask
the store whether a published step with the path's slug exists.

Funnel step probe:
- Funnels are checked in connection (insertion) order
- The first funnel with a matching published step wins; later funnels are
  never consulted
- A failed or timed-out probe is a miss for that funnel only
- Stores with a batched lookup answer for all funnels in one query; the
  winner is still the first funnel *by connection order*, so both paths
  select the same funnel
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sitegate.errors import BackendUnavailable, NoContent
from sitegate.models import ContentType, DomainConnection
from sitegate.store.base import ContentStore, bounded_lookup
from .routes import (
    ROUTING_TABLE,
    Pick,
    RequestPath,
    RoutingConfig,
    RoutingRule,
    rule_applies,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteSelection:
    """The connection chosen for a request and the rule that chose it."""
    connection: DomainConnection
    rule: str

    @property
    def content_type(self) -> ContentType:
        return self.connection.content_type

    @property
    def content_id(self) -> str:
        return self.connection.content_id


def _first_of_type(
    connections: Sequence[DomainConnection], content_type: ContentType
) -> Optional[DomainConnection]:
    for conn in connections:
        if conn.content_type == content_type:
            return conn
    return None


def _normalize_binding(path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    return "/".join(s for s in path.split("/") if s)


class ContentRouter:
    """
    Routing-table driven connection selection.

    Usage:
        router = ContentRouter(store, RoutingConfig(), timeout=0.3)
        selection = await router.select(domain_id, parse_path("/offer-a"), connections)
    """

    def __init__(
        self,
        store: ContentStore,
        config: Optional[RoutingConfig] = None,
        timeout: float = 0.3,
        table: Tuple[RoutingRule, ...] = ROUTING_TABLE,
    ):
        self.store = store
        self.config = config or RoutingConfig()
        self.timeout = timeout
        self.table = table

    async def select(
        self,
        domain_id: str,
        path: RequestPath,
        connections: Sequence[DomainConnection],
    ) -> RouteSelection:
        """
        Pick one connection.

        Raises:
            NoContent: the rule owning the path found no connection
        """
        for rule in self.table:
            if not rule_applies(rule, path, self.config):
                continue

            for pick in rule.picks:
                connection = await self._pick(pick, path, connections)
                if connection is not None:
                    logger.info(
                        f"Route '{path.clean or '/'}' -> {connection.content_type.value} "
                        f"via rule {rule.name} ({pick.value})"
                    )
                    return RouteSelection(connection=connection, rule=rule.name)

            if rule.binding_only:
                continue

            logger.info(
                f"Rule {rule.name} matched '{path.clean or '/'}' on domain {domain_id} "
                f"but no connection of its type exists"
            )
            raise NoContent(domain_id, path.raw)

        logger.info(f"No connection matches path '{path.clean or '/'}' on domain {domain_id}")
        raise NoContent(domain_id, path.raw)

    async def _pick(
        self,
        pick: Pick,
        path: RequestPath,
        connections: Sequence[DomainConnection],
    ) -> Optional[DomainConnection]:
        if pick == Pick.HOMEPAGE:
            for conn in connections:
                if conn.is_homepage:
                    return conn
            return None

        if pick == Pick.PATH_BINDING:
            for conn in connections:
                binding = _normalize_binding(conn.path)
                if binding is not None and binding == path.clean:
                    return conn
            return None

        if pick == Pick.FUNNEL_STEP:
            funnels = [c for c in connections if c.content_type == ContentType.FUNNEL]
            return await self.probe_funnel_steps(funnels, path.last_segment)

        return _first_of_type(connections, ContentType(pick.value))

    async def probe_funnel_steps(
        self,
        funnels: List[DomainConnection],
        slug: Optional[str],
    ) -> Optional[DomainConnection]:
        """First funnel connection (by order) owning a published step ``slug``."""
        if not funnels or not slug:
            return None

        if self.store.supports_batch_step_lookup:
            try:
                matched = await bounded_lookup(
                    self.store.funnels_with_published_step(
                        [c.content_id for c in funnels], slug
                    ),
                    "funnels_with_published_step",
                    self.timeout,
                )
            except BackendUnavailable:
                logger.warning("Batched step lookup failed; probing funnels one by one")
            else:
                for conn in funnels:
                    if conn.content_id in matched:
                        return conn
                return None

        for conn in funnels:
            try:
                found = await bounded_lookup(
                    self.store.has_published_step(conn.content_id, slug),
                    "has_published_step",
                    self.timeout,
                )
            except BackendUnavailable:
                continue
            if found:
                logger.debug(f"Funnel step '{slug}' found in funnel {conn.content_id}")
                return conn
        return None
