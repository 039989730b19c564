"""
Domain Normalization

Canonicalizes request hostnames for tenant lookup and tells platform
(system) hosts apart from tenant custom domains.
"""

from typing import List, Optional, Sequence


def clean_hostname(hostname: Optional[str]) -> str:
    """Lower-case, strip whitespace, trailing dot and any :port suffix."""
    if not hostname:
        return ""
    host = hostname.strip().lower()
    if host.startswith("[") and "]" in host:
        # IPv6 literal; keep the bracketed address, drop the port
        return host[: host.index("]") + 1]
    if ":" in host:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def apex_domain(hostname: str) -> str:
    """Remove a leading www. (exactly one)."""
    host = clean_hostname(hostname)
    if host.startswith("www."):
        return host[4:]
    return host


def domain_variants(hostname: Optional[str]) -> List[str]:
    """
    Lookup variants for a hostname: [hostname, apex, www.apex].

    Deduplicated, order preserved, so the host the visitor typed is always
    tried first.

    Examples:
        >>> domain_variants("www.shop.example")
        ['www.shop.example', 'shop.example']
        >>> domain_variants("shop.example")
        ['shop.example', 'www.shop.example']
    """
    host = clean_hostname(hostname)
    if not host:
        return []

    apex = apex_domain(host)
    variants = []
    for candidate in (host, apex, f"www.{apex}"):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def is_system_domain(
    hostname: Optional[str],
    system_domains: Sequence[str],
    platform_root: Optional[str] = None,
) -> bool:
    """
    Check whether a hostname belongs to the platform rather than a tenant.

    Matches:
    1. Exact configured system domains (app.example.com)
    2. The platform root and any subdomain of it (mysite.example.com)
    3. Local development hosts
    """
    host = clean_hostname(hostname)
    if not host:
        return True

    if host in system_domains:
        return True

    if host in ("localhost", "127.0.0.1", "[::1]"):
        return True

    if platform_root:
        root = platform_root.lower()
        if host == root or host.endswith("." + root):
            return True

    return False


def platform_subdomain(hostname: Optional[str], platform_root: Optional[str]) -> Optional[str]:
    """Tenant slug of ``{slug}.{platform_root}``; None for www/app/bare root."""
    host = clean_hostname(hostname)
    if not host or not platform_root:
        return None
    suffix = "." + platform_root.lower()
    if not host.endswith(suffix):
        return None
    label = host[: -len(suffix)]
    if not label or "." in label or label in ("www", "app", "get", "api"):
        return None
    return label
