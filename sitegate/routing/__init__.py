"""
Routing Package

Request -> tenant -> connection:
- domain: hostname normalization and system-domain detection
- tenant: verified custom domain lookup
- routes: the ordered routing table and route lists
- router: connection selection, including the funnel step probe
"""

from .domain import (
    apex_domain,
    clean_hostname,
    domain_variants,
    is_system_domain,
    platform_subdomain,
)
from .tenant import resolve_tenant
from .routes import (
    ROUTING_TABLE,
    Match,
    Pick,
    RequestPath,
    RoutingConfig,
    RoutingRule,
    parse_path,
)
from .router import ContentRouter, RouteSelection

__all__ = [
    "apex_domain",
    "clean_hostname",
    "domain_variants",
    "is_system_domain",
    "platform_subdomain",
    "resolve_tenant",
    "ROUTING_TABLE",
    "Match",
    "Pick",
    "RequestPath",
    "RoutingConfig",
    "RoutingRule",
    "parse_path",
    "ContentRouter",
    "RouteSelection",
]
