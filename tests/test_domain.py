"""
Tests for hostname normalization and tenant resolution.
"""

import asyncio

import pytest

from sitegate.errors import BackendUnavailable, TenantNotFound
from sitegate.routing.domain import (
    apex_domain,
    clean_hostname,
    domain_variants,
    is_system_domain,
    platform_subdomain,
)
from sitegate.routing.tenant import resolve_tenant


SYSTEM = ["app.ecombuildr.com", "get.ecombuildr.com"]


# =============================================================================
# NORMALIZATION TESTS
# =============================================================================

class TestCleanHostname:

    def test_lowercases_and_strips_port(self):
        assert clean_hostname("Shop.Example:8080") == "shop.example"

    def test_trailing_dot(self):
        assert clean_hostname("shop.example.") == "shop.example"

    def test_empty(self):
        assert clean_hostname(None) == ""
        assert clean_hostname("   ") == ""

    def test_ipv6_literal_keeps_brackets(self):
        assert clean_hostname("[::1]:3000") == "[::1]"


class TestDomainVariants:

    def test_www_host(self):
        assert domain_variants("www.shop.example") == ["www.shop.example", "shop.example"]

    def test_apex_host(self):
        assert domain_variants("shop.example") == ["shop.example", "www.shop.example"]

    def test_port_dropped_before_variants(self):
        assert domain_variants("shop.example:443")[0] == "shop.example"

    def test_only_one_www_removed(self):
        assert apex_domain("www.www.shop.example") == "www.shop.example"

    def test_no_duplicates(self):
        variants = domain_variants("WWW.Shop.Example")
        assert len(variants) == len(set(variants))

    def test_empty_host(self):
        assert domain_variants("") == []


class TestSystemDomains:

    def test_configured_system_domain(self):
        assert is_system_domain("app.ecombuildr.com", SYSTEM, "ecombuildr.com")

    def test_platform_subdomain_is_system(self):
        assert is_system_domain("acme.ecombuildr.com", SYSTEM, "ecombuildr.com")

    def test_localhost_is_system(self):
        assert is_system_domain("localhost:5173", SYSTEM, "ecombuildr.com")

    def test_custom_domain(self):
        assert not is_system_domain("shop.example", SYSTEM, "ecombuildr.com")

    def test_lookalike_is_not_system(self):
        assert not is_system_domain("notecombuildr.com", SYSTEM, "ecombuildr.com")

    def test_platform_subdomain_slug(self):
        assert platform_subdomain("acme.ecombuildr.com", "ecombuildr.com") == "acme"

    def test_reserved_subdomains(self):
        assert platform_subdomain("app.ecombuildr.com", "ecombuildr.com") is None
        assert platform_subdomain("www.ecombuildr.com", "ecombuildr.com") is None
        assert platform_subdomain("ecombuildr.com", "ecombuildr.com") is None

    def test_nested_subdomain_is_not_a_slug(self):
        assert platform_subdomain("a.b.ecombuildr.com", "ecombuildr.com") is None


# =============================================================================
# TENANT RESOLUTION TESTS
# =============================================================================

class TestResolveTenant:

    @pytest.mark.asyncio
    async def test_resolves_verified_domain(self, store):
        store.add_domain("shop.example", store_id="store-9", domain_id="dom-9")

        tenant = await resolve_tenant(store, domain_variants("www.shop.example"), 0.2)

        assert tenant.domain_id == "dom-9"
        assert tenant.store_id == "store-9"
        assert tenant.domain == "shop.example"

    @pytest.mark.asyncio
    async def test_unverified_domain_not_found(self, store):
        store.add_domain("shop.example", verified=False)

        with pytest.raises(TenantNotFound):
            await resolve_tenant(store, domain_variants("shop.example"), 0.2)

    @pytest.mark.asyncio
    async def test_dns_not_configured_not_found(self, store):
        store.add_domain("shop.example", dns=False)

        with pytest.raises(TenantNotFound):
            await resolve_tenant(store, domain_variants("shop.example"), 0.2)

    @pytest.mark.asyncio
    async def test_unknown_domain(self, store):
        with pytest.raises(TenantNotFound) as exc:
            await resolve_tenant(store, domain_variants("nobody.example"), 0.2)
        assert exc.value.hostname == "nobody.example"

    @pytest.mark.asyncio
    async def test_no_variants(self, store):
        with pytest.raises(TenantNotFound):
            await resolve_tenant(store, [], 0.2)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_backend_error_is_unavailable(self, store):
        store.fail["find_custom_domain"] = ConnectionError("refused")

        with pytest.raises(BackendUnavailable) as exc:
            await resolve_tenant(store, ["shop.example"], 0.2)
        assert exc.value.operation == "find_custom_domain"

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, store):
        store.add_domain("shop.example")
        store.delay["find_custom_domain"] = 1.0

        with pytest.raises(BackendUnavailable) as exc:
            await resolve_tenant(store, ["shop.example"], 0.05)
        assert isinstance(exc.value.cause, asyncio.TimeoutError)
