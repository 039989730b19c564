"""
Routing Table

The one source of truth for how a request path picks a domain connection.
Rules are ordered data: the router walks ROUTING_TABLE top to bottom and
the first rule whose path condition holds decides the request. Later rules
are never consulted, even when that rule finds no connection.

System route lists are configuration. Defaults live here; deployments
override them with COURSE_PREFIXES / WEBSITE_SYSTEM_ROUTES /
GENERAL_SYSTEM_ROUTES.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from sitegate.models import ContentType
from sitegate.utils.config import Settings, parse_csv


# =============================================================================
# ROUTE LISTS
# =============================================================================

DEFAULT_COURSE_PREFIXES = frozenset({"courses", "members"})

# Storefront pages rendered by the website app
DEFAULT_WEBSITE_SYSTEM_ROUTES = frozenset({
    "product", "products",
    "collection", "collections",
    "category", "categories",
    "shop", "search",
    "cart", "checkout",
    "about", "contact",
    "track-order", "wishlist",
})

# Post-purchase pages that exist for both funnels and websites
DEFAULT_GENERAL_SYSTEM_ROUTES = frozenset({
    "payment-processing",
    "order-confirmation",
    "payment-success",
    "payment-failed",
    "payment-cancelled",
})


@dataclass(frozen=True)
class RoutingConfig:
    """Route lists used by the matchers."""
    course_prefixes: FrozenSet[str] = DEFAULT_COURSE_PREFIXES
    website_system_routes: FrozenSet[str] = DEFAULT_WEBSITE_SYSTEM_ROUTES
    general_system_routes: FrozenSet[str] = DEFAULT_GENERAL_SYSTEM_ROUTES

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoutingConfig":
        """Settings lists replace (not extend) the defaults when set."""
        return cls(
            course_prefixes=frozenset(parse_csv(settings.COURSE_PREFIXES)) or DEFAULT_COURSE_PREFIXES,
            website_system_routes=(
                frozenset(parse_csv(settings.WEBSITE_SYSTEM_ROUTES)) or DEFAULT_WEBSITE_SYSTEM_ROUTES
            ),
            general_system_routes=(
                frozenset(parse_csv(settings.GENERAL_SYSTEM_ROUTES)) or DEFAULT_GENERAL_SYSTEM_ROUTES
            ),
        )


# =============================================================================
# REQUEST PATH
# =============================================================================

@dataclass(frozen=True)
class RequestPath:
    """A request path split the way the rules need it."""
    raw: str
    clean: str
    segments: Tuple[str, ...]

    @property
    def is_root(self) -> bool:
        return self.clean == ""

    @property
    def first_segment(self) -> Optional[str]:
        return self.segments[0] if self.segments else None

    @property
    def last_segment(self) -> Optional[str]:
        return self.segments[-1] if self.segments else None

    @property
    def canonical_path(self) -> str:
        """Path as emitted in canonical URLs; root renders as '/'."""
        return "/" + self.clean


def parse_path(path: Optional[str]) -> RequestPath:
    """Strip query/fragment and surrounding slashes; '' is the root."""
    raw = path or "/"
    bare = raw.split("?", 1)[0].split("#", 1)[0]
    segments = tuple(s for s in bare.split("/") if s)
    return RequestPath(raw=raw, clean="/".join(segments), segments=segments)


# =============================================================================
# RULES
# =============================================================================

class Match(str, Enum):
    """When a rule applies."""
    ROOT = "root"
    EXPLICIT_PATH = "explicit_path"
    COURSE_PREFIX = "course_prefix"
    WEBSITE_ROUTE = "website_route"
    GENERAL_ROUTE = "general_route"
    ANY_SLUG = "any_slug"


class Pick(str, Enum):
    """How a rule chooses among the domain's connections."""
    HOMEPAGE = "homepage"
    PATH_BINDING = "path_binding"
    WEBSITE = ContentType.WEBSITE.value
    FUNNEL = ContentType.FUNNEL.value
    COURSE_AREA = ContentType.COURSE_AREA.value
    FUNNEL_STEP = "funnel_step"


@dataclass(frozen=True)
class RoutingRule:
    """
    One row of the table.

    A rule whose path condition holds owns the request: if none of its picks
    finds a connection, selection ends in NoContent. ``binding_only`` rules
    are the exception; they only match when a connection is bound to the path.
    """
    name: str
    match: Match
    picks: Tuple[Pick, ...]
    binding_only: bool = False


ROUTING_TABLE: Tuple[RoutingRule, ...] = (
    RoutingRule("root", Match.ROOT, (Pick.HOMEPAGE, Pick.WEBSITE, Pick.COURSE_AREA, Pick.FUNNEL)),
    RoutingRule("explicit_path", Match.EXPLICIT_PATH, (Pick.PATH_BINDING,), binding_only=True),
    RoutingRule("course_prefix", Match.COURSE_PREFIX, (Pick.COURSE_AREA,)),
    RoutingRule("website_system_route", Match.WEBSITE_ROUTE, (Pick.WEBSITE,)),
    RoutingRule("general_system_route", Match.GENERAL_ROUTE, (Pick.FUNNEL, Pick.WEBSITE)),
    RoutingRule("funnel_step", Match.ANY_SLUG, (Pick.FUNNEL_STEP, Pick.WEBSITE)),
)


def rule_applies(rule: RoutingRule, path: RequestPath, config: RoutingConfig) -> bool:
    """Whether ``rule`` is eligible for ``path`` (before looking at connections)."""
    if rule.match == Match.ROOT:
        return path.is_root
    if path.is_root:
        return False
    if rule.match == Match.EXPLICIT_PATH:
        return True
    if rule.match == Match.COURSE_PREFIX:
        return path.first_segment in config.course_prefixes
    if rule.match == Match.WEBSITE_ROUTE:
        # /product/some-slug is a storefront route even though the last
        # segment is the product slug
        return (
            path.last_segment in config.website_system_routes
            or path.first_segment in config.website_system_routes
        )
    if rule.match == Match.GENERAL_ROUTE:
        return path.last_segment in config.general_system_routes
    if rule.match == Match.ANY_SLUG:
        return path.last_segment is not None
    raise ValueError(f"Unhandled match kind: {rule.match}")


def rule_names(table: Tuple[RoutingRule, ...] = ROUTING_TABLE) -> List[str]:
    return [rule.name for rule in table]
