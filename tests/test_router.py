"""
Tests for the routing table and content router.

These tests verify:
- Rule order (root, explicit path, course prefix, system routes, funnel step)
- Homepage selection independent of insertion order
- Funnel step probing (sequential, batched, failures)
"""

import pytest

from sitegate.errors import NoContent
from sitegate.models import ContentType, FunnelEntity, FunnelStep
from sitegate.routing.router import ContentRouter
from sitegate.routing.routes import (
    ROUTING_TABLE,
    RoutingConfig,
    parse_path,
    rule_applies,
    rule_names,
)
from sitegate.utils.config import Settings

from conftest import FakeStore


async def select(store, domain_id, path, timeout=0.2):
    router = ContentRouter(store, RoutingConfig(), timeout=timeout)
    connections = await store.list_connections(domain_id)
    return await router.select(domain_id, parse_path(path), connections)


def two_funnel_store(supports_batch=False) -> FakeStore:
    """F1 and F2 on one domain; only F2 has a published 'offer-a' step."""
    store = FakeStore(supports_batch=supports_batch)
    store.add_domain("shop.example", domain_id="dom-1")
    store.add_funnel(FunnelEntity(id="F1", name="First"), steps=[
        FunnelStep(id="s1", slug="landing", step_order=1, is_published=True),
        FunnelStep(id="s2", slug="offer-a", step_order=2, is_published=False),
    ])
    store.add_funnel(FunnelEntity(id="F2", name="Second"), steps=[
        FunnelStep(id="s3", slug="offer-a", step_order=1, is_published=True),
    ])
    store.connect("dom-1", ContentType.FUNNEL, "F1")
    store.connect("dom-1", ContentType.FUNNEL, "F2")
    return store


# =============================================================================
# PATH / TABLE TESTS
# =============================================================================

class TestParsePath:

    def test_root_forms(self):
        for raw in ("", "/", "//", "/?utm=1"):
            assert parse_path(raw).is_root

    def test_segments(self):
        path = parse_path("/courses/python/lesson-1/")
        assert path.clean == "courses/python/lesson-1"
        assert path.first_segment == "courses"
        assert path.last_segment == "lesson-1"
        assert path.canonical_path == "/courses/python/lesson-1"

    def test_query_and_fragment_stripped(self):
        assert parse_path("/about?x=1#team").clean == "about"


class TestRoutingTable:

    def test_rule_order(self):
        assert rule_names() == [
            "root",
            "explicit_path",
            "course_prefix",
            "website_system_route",
            "general_system_route",
            "funnel_step",
        ]

    def test_only_root_rule_applies_at_root(self):
        config = RoutingConfig()
        root = parse_path("/")
        assert [r.name for r in ROUTING_TABLE if rule_applies(r, root, config)] == ["root"]

    def test_checkout_is_a_website_route(self):
        config = RoutingConfig()
        rule = next(r for r in ROUTING_TABLE if r.name == "website_system_route")
        assert rule_applies(rule, parse_path("/checkout"), config)
        assert rule_applies(rule, parse_path("/product/blue-shirt"), config)

    def test_config_from_settings_replaces_lists(self):
        settings = Settings(_env_file=None, COURSE_PREFIXES="academy, Learn")
        config = RoutingConfig.from_settings(settings)
        assert config.course_prefixes == frozenset({"academy", "learn"})
        assert "checkout" in config.website_system_routes


# =============================================================================
# SELECTION TESTS
# =============================================================================

class TestRootSelection:

    @pytest.mark.asyncio
    async def test_homepage_flag_beats_insertion_order(self, shop_store):
        selection = await select(shop_store, "dom-shop", "/")
        assert selection.content_type == ContentType.WEBSITE
        assert selection.content_id == "web-1"
        assert selection.rule == "root"

    @pytest.mark.asyncio
    async def test_homepage_flag_on_funnel(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        store.connect("d", ContentType.FUNNEL, "f", is_homepage=True)
        selection = await select(store, "d", "/")
        assert selection.content_id == "f"

    @pytest.mark.asyncio
    async def test_root_priority_without_homepage(self, store):
        store.connect("d", ContentType.FUNNEL, "f")
        store.connect("d", ContentType.COURSE_AREA, "c")
        selection = await select(store, "d", "/")
        assert selection.content_type == ContentType.COURSE_AREA

    @pytest.mark.asyncio
    async def test_no_connections(self, store):
        with pytest.raises(NoContent):
            await select(store, "d", "/")


class TestPathRules:

    @pytest.mark.asyncio
    async def test_explicit_path_binding_wins(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        store.connect("d", ContentType.FUNNEL, "f", path="/promo/summer/")
        selection = await select(store, "d", "/promo/summer")
        assert selection.content_id == "f"
        assert selection.rule == "explicit_path"

    @pytest.mark.asyncio
    async def test_course_prefix(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        store.connect("d", ContentType.COURSE_AREA, "c")
        selection = await select(store, "d", "/courses/intro")
        assert selection.content_type == ContentType.COURSE_AREA
        assert selection.rule == "course_prefix"

    @pytest.mark.asyncio
    async def test_course_prefix_without_course_area_is_no_content(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        with pytest.raises(NoContent):
            await select(store, "d", "/courses/intro")
        assert store.call_names() == ["list_connections"]

    @pytest.mark.asyncio
    async def test_website_route_without_website_does_not_probe_funnels(self, store):
        store.add_funnel(FunnelEntity(id="f", name="Checkout Funnel"), steps=[
            FunnelStep(id="s", slug="checkout", step_order=1, is_published=True),
        ])
        store.connect("d", ContentType.FUNNEL, "f")
        with pytest.raises(NoContent):
            await select(store, "d", "/checkout")
        assert "has_published_step" not in store.call_names()

    @pytest.mark.asyncio
    async def test_unbound_path_continues_past_explicit_rule(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        store.connect("d", ContentType.FUNNEL, "f", path="/promo")
        selection = await select(store, "d", "/our-story")
        assert selection.content_id == "w"
        assert selection.rule == "funnel_step"

    @pytest.mark.asyncio
    async def test_checkout_goes_to_website(self, shop_store):
        selection = await select(shop_store, "dom-shop", "/checkout")
        assert selection.content_type == ContentType.WEBSITE
        assert selection.rule == "website_system_route"
        assert "has_published_step" not in shop_store.call_names()

    @pytest.mark.asyncio
    async def test_general_route_prefers_funnel(self, shop_store):
        selection = await select(shop_store, "dom-shop", "/payment-success")
        assert selection.content_type == ContentType.FUNNEL
        assert selection.rule == "general_system_route"

    @pytest.mark.asyncio
    async def test_general_route_falls_back_to_website(self, store):
        store.connect("d", ContentType.WEBSITE, "w")
        selection = await select(store, "d", "/order-confirmation")
        assert selection.content_type == ContentType.WEBSITE

    @pytest.mark.asyncio
    async def test_unknown_slug_falls_back_to_website(self, shop_store):
        selection = await select(shop_store, "dom-shop", "/our-story")
        assert selection.content_type == ContentType.WEBSITE
        assert selection.rule == "funnel_step"

    @pytest.mark.asyncio
    async def test_unknown_slug_without_website(self, store):
        store.connect("d", ContentType.FUNNEL, "f")
        with pytest.raises(NoContent) as exc:
            await select(store, "d", "/nowhere")
        assert exc.value.path == "/nowhere"


class TestFunnelStepProbe:

    @pytest.mark.asyncio
    async def test_second_funnel_owns_published_step(self):
        store = two_funnel_store()
        selection = await select(store, "dom-1", "/offer-a")
        assert selection.content_id == "F2"

    @pytest.mark.asyncio
    async def test_short_circuits_on_first_match(self):
        store = two_funnel_store()
        store.add_funnel(FunnelEntity(id="F3"), steps=[
            FunnelStep(id="s9", slug="offer-a", is_published=True),
        ])
        store.connect("dom-1", ContentType.FUNNEL, "F3")

        selection = await select(store, "dom-1", "/offer-a")

        probed = [args[0] for name, args in store.calls if name == "has_published_step"]
        assert selection.content_id == "F2"
        assert probed == ["F1", "F2"]

    @pytest.mark.asyncio
    async def test_failed_probe_is_a_miss(self):
        store = two_funnel_store()
        store.fail_funnels.add("F1")
        selection = await select(store, "dom-1", "/offer-a")
        assert selection.content_id == "F2"

    @pytest.mark.asyncio
    async def test_timed_out_probe_is_a_miss(self):
        store = two_funnel_store()
        store.delay["has_published_step"] = 1.0
        with pytest.raises(NoContent):
            await select(store, "dom-1", "/offer-a", timeout=0.02)

    @pytest.mark.asyncio
    async def test_batched_lookup_picks_same_funnel(self):
        store = two_funnel_store(supports_batch=True)
        selection = await select(store, "dom-1", "/offer-a")
        assert selection.content_id == "F2"
        assert "has_published_step" not in store.call_names()

    @pytest.mark.asyncio
    async def test_batched_winner_follows_connection_order(self):
        store = two_funnel_store(supports_batch=True)
        store.add_funnel(FunnelEntity(id="F0"), steps=[
            FunnelStep(id="s0", slug="offer-a", is_published=True),
        ])
        store.connect("dom-1", ContentType.FUNNEL, "F0")
        selection = await select(store, "dom-1", "/offer-a")
        assert selection.content_id == "F2"

    @pytest.mark.asyncio
    async def test_batch_failure_falls_back_to_sequential(self):
        store = two_funnel_store(supports_batch=True)
        store.fail["funnels_with_published_step"] = RuntimeError("boom")
        selection = await select(store, "dom-1", "/offer-a")
        assert selection.content_id == "F2"
        assert "has_published_step" in store.call_names()
