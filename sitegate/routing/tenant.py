"""
Tenant Resolution

Maps a hostname to its verified custom domain and owning store. Fails fast:
an unknown domain raises TenantNotFound, a backend failure raises
BackendUnavailable, and the pipeline decides what to serve instead.
"""

import logging
from typing import Sequence

from sitegate.errors import TenantNotFound
from sitegate.models import Tenant
from sitegate.store.base import ContentStore, bounded_lookup

logger = logging.getLogger(__name__)


async def resolve_tenant(
    store: ContentStore,
    variants: Sequence[str],
    timeout: float,
) -> Tenant:
    """
    Resolve lookup variants to a tenant.

    Args:
        store: Content store
        variants: Output of ``domain_variants``
        timeout: Lookup timeout in seconds

    Returns:
        Tenant(domain_id, store_id, domain)

    Raises:
        TenantNotFound: no verified + DNS-configured domain matches
        BackendUnavailable: the lookup failed or timed out
    """
    hostname = variants[0] if variants else ""
    if not variants:
        raise TenantNotFound(hostname)

    domain = await bounded_lookup(
        store.find_custom_domain(list(variants)),
        "find_custom_domain",
        timeout,
    )

    # Stores filter on both flags already; re-check so a lax backend
    # can never resolve an unverified domain
    if domain is None or not domain.is_eligible:
        logger.info(f"No verified custom domain for {hostname}")
        raise TenantNotFound(hostname)

    logger.info(f"Custom domain {domain.domain} -> store {domain.store_id}")
    return Tenant(domain_id=domain.id, store_id=domain.store_id, domain=domain.domain)
