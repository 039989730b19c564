"""
Tests for SEO metadata resolution.

These tests verify:
- Description extraction from HTML and structured documents
- Image URL normalization
- Per-field cascades and their source tags
"""

import json

import pytest

from sitegate.models import (
    CourseAreaContent,
    CourseAreaEntity,
    FunnelContent,
    FunnelEntity,
    FunnelStep,
    PlatformContent,
    PlatformPage,
    Store,
    WebsiteContent,
    WebsiteEntity,
    WebsitePage,
)
from sitegate.routing.routes import parse_path
from sitegate.seo.extract import extract_description, split_sentences, truncate_words
from sitegate.seo.images import normalize_image_url
from sitegate.seo.resolver import (
    DEFAULT_ROBOTS,
    SeoDefaults,
    canonical_url,
    fallback_record,
    resolve_seo,
)


# =============================================================================
# DESCRIPTION EXTRACTION TESTS
# =============================================================================

class TestExtractDescription:

    def test_first_sentence_within_budget(self):
        html = "<p>Hello world.</p><p>Second sentence here.</p>"
        assert extract_description(html, 20) == "Hello world."

    def test_accumulates_whole_sentences(self):
        text = "One. Two. Three is longer."
        assert extract_description(text, 9) == "One. Two."

    def test_truncates_long_first_sentence_on_word_boundary(self):
        result = extract_description("This is a very long sentence indeed.", 20)
        assert result == "This is a very..."
        assert len(result) <= 20

    def test_adds_terminal_punctuation(self):
        assert extract_description("No full stop here", 155) == "No full stop here."

    def test_decodes_entities_and_collapses_whitespace(self):
        assert extract_description("<h2>Fish &amp;   chips</h2>", 155) == "Fish & chips."

    def test_structured_document(self):
        doc = {
            "sections": [{
                "rows": [{
                    "columns": [{
                        "elements": [
                            {"type": "image", "content": {"src": "/a.png"}},
                            {"type": "heading", "content": {"text": "Fresh bread daily"}},
                            {"type": "text", "content": {"text": "<p>Baked every morning.</p>"}},
                        ]
                    }]
                }]
            }]
        }
        assert extract_description(doc) == "Fresh bread daily. Baked every morning."

    def test_json_string_document(self):
        doc = json.dumps({"blocks": [{"type": "paragraph", "text": "From JSON."}]})
        assert extract_description(doc) == "From JSON."

    def test_malformed_input_yields_empty(self):
        assert extract_description({"sections": "nope"}) == ""
        assert extract_description(12345) == ""
        assert extract_description(None) == ""

    def test_deeply_nested_document_does_not_raise(self):
        node = {"type": "text", "text": "Deep."}
        for _ in range(200):
            node = {"children": [node]}
        assert extract_description(node) == ""

    def test_split_sentences_keeps_terminators(self):
        assert split_sentences("Hi! How are you? Fine") == ["Hi!", "How are you?", "Fine."]

    def test_truncate_words_single_long_word(self):
        assert truncate_words("Supercalifragilistic", 10) == "Superca..."


# =============================================================================
# IMAGE NORMALIZATION TESTS
# =============================================================================

class TestNormalizeImageUrl:

    def test_absolute_unchanged(self):
        assert normalize_image_url("https://x/y.png", "d") == "https://x/y.png"

    def test_root_relative_joined(self):
        assert normalize_image_url("/y.png", "d") == "https://d/y.png"

    def test_not_a_url_dropped(self):
        assert normalize_image_url("not a url", "d") is None

    def test_protocol_relative(self):
        assert normalize_image_url("//cdn.example/a.jpg", "d") == "https://cdn.example/a.jpg"

    def test_bare_relative_path(self):
        assert normalize_image_url("images/a.png", "d") == "https://d/images/a.png"

    def test_other_schemes_dropped(self):
        assert normalize_image_url("data:image/png;base64,AAAA", "d") is None
        assert normalize_image_url("javascript:alert(1)", "d") is None

    def test_blank_dropped(self):
        assert normalize_image_url("   ", "d") is None
        assert normalize_image_url(None, "d") is None

    def test_http_without_host_dropped(self):
        assert normalize_image_url("https:///y.png", "d") is None


# =============================================================================
# RESOLVER TESTS
# =============================================================================

@pytest.fixture
def store_entity():
    return Store(id="s1", name="Acme Store", description="Store description.", favicon_url="/fav.ico")


class TestWebsiteCascade:

    def test_root_without_homepage_uses_website_name(self, store_entity):
        content = WebsiteContent(website=WebsiteEntity(id="W", name="Acme"))
        record = resolve_seo(content, store_entity, "shop.example", parse_path("/"))

        assert record.title == "Acme"
        assert record.canonical == "https://shop.example/"
        assert record.source == "website_root"
        assert record.field_sources["title"] == "website.name"

    def test_page_fields_win(self, store_entity):
        page = WebsitePage(
            id="p", slug="about", title="About", seo_title="About Acme",
            seo_description="Who we are.", og_image="/about.png",
            seo_keywords=["acme", "about"], meta_robots="noindex",
        )
        content = WebsiteContent(website=WebsiteEntity(id="W", name="Acme", og_image="/site.png"), page=page)
        record = resolve_seo(content, store_entity, "shop.example", parse_path("/about"))

        assert record.title == "About Acme"
        assert record.description == "Who we are."
        assert record.og_image == "https://shop.example/about.png"
        assert record.keywords == ["acme", "about"]
        assert record.robots == "noindex"
        assert record.source == "website_page|slug:about"

    def test_title_idempotent_under_garbage_parents(self):
        page = WebsitePage(id="p", slug="x", seo_title="Page Title")
        for website, store in [
            (WebsiteEntity(id="W"), None),
            (WebsiteEntity(id="W", name="  ", seo_title="\n"), Store(id="s", name="")),
            (WebsiteEntity(id="W", name="Other", seo_title="Other SEO"), Store(id="s", name="Store")),
        ]:
            record = resolve_seo(WebsiteContent(website, page), store, "d.example", parse_path("/x"))
            assert record.title == "Page Title"

    def test_description_extracted_from_content(self, store_entity):
        page = WebsitePage(id="p", slug="x", content="<p>Extracted text.</p>")
        content = WebsiteContent(website=WebsiteEntity(id="W", seo_description="Site."), page=page)
        record = resolve_seo(content, store_entity, "d.example", parse_path("/x"))
        assert record.description == "Extracted text."
        assert record.field_sources["description"] == "page.content"

    def test_store_fallbacks(self, store_entity):
        content = WebsiteContent(website=WebsiteEntity(id="W"))
        record = resolve_seo(content, store_entity, "d.example", parse_path("/missing"))
        assert record.title == "Acme Store"
        assert record.description == "Store description."
        assert record.site_name == "Acme Store"
        assert record.favicon == "https://d.example/fav.ico"
        assert record.source == "website_fallback"

    def test_literal_defaults(self):
        content = WebsiteContent(website=WebsiteEntity(id="W"))
        record = resolve_seo(content, None, "d.example", parse_path("/"))
        assert record.title == SeoDefaults().title
        assert record.description == SeoDefaults().description
        assert record.robots == DEFAULT_ROBOTS
        assert record.site_name == "d.example"
        assert record.og_image is None

    def test_explicit_canonical(self):
        page = WebsitePage(id="p", slug="x", canonical_url="/canonical-x")
        record = resolve_seo(WebsiteContent(WebsiteEntity(id="W"), page), None, "d.example", parse_path("/x"))
        assert record.canonical == "https://d.example/canonical-x"


class TestOtherContent:

    def test_funnel_step_title_cascade(self):
        funnel = FunnelEntity(id="F2", name="Spring Sale")
        path = parse_path("/offer-a")

        with_seo = FunnelStep(id="s", slug="offer-a", title="Offer A", seo_title="Buy Offer A")
        without_seo = FunnelStep(id="s", slug="offer-a", title="Offer A")
        bare = FunnelStep(id="s", slug="offer-a")

        assert resolve_seo(FunnelContent(funnel, with_seo), None, "d", path).title == "Buy Offer A"
        assert resolve_seo(FunnelContent(funnel, without_seo), None, "d", path).title == "Offer A"
        assert resolve_seo(FunnelContent(funnel, bare), None, "d", path).title == "Spring Sale"

    def test_funnel_source_tags(self):
        funnel = FunnelEntity(id="F", name="Sale")
        step = FunnelStep(id="s", slug="offer-a")
        assert resolve_seo(FunnelContent(funnel, step), None, "d", parse_path("/offer-a")).source == \
            "funnel_step|slug:offer-a"
        assert resolve_seo(FunnelContent(funnel, step), None, "d", parse_path("/")).source == "funnel_landing"

    def test_course_area_uses_store(self, store_entity):
        content = CourseAreaContent(area=CourseAreaEntity(id="c1", store_id="s1"))
        record = resolve_seo(content, store_entity, "d.example", parse_path("/courses/x"))
        assert record.title == "Acme Store"
        assert record.source == "course_area"
        assert "c1" not in record.source

    def test_platform_page(self):
        page = PlatformPage(slug="pricing", title="Pricing", description="Plans.", keywords=["price"])
        record = resolve_seo(
            PlatformContent(page), None, "app.ecombuildr.com", parse_path("/pricing"),
            SeoDefaults(platform_name="EcomBuildr"),
        )
        assert record.title == "Pricing"
        assert record.site_name == "EcomBuildr"
        assert record.keywords == ["price"]
        assert record.source == "platform_page|slug:pricing"

    def test_unknown_variant_rejected(self):
        with pytest.raises(TypeError):
            resolve_seo(object(), None, "d", parse_path("/"))


class TestFallbackRecord:

    def test_domain_name_as_title(self):
        record = fallback_record("shop.example", parse_path("/x"), "fallback_no_data")
        assert record.title == "shop.example"
        assert record.description == "Preview of shop.example"
        assert record.canonical == "https://shop.example/x"
        assert record.source == "fallback_no_data"

    def test_canonical_url_ignores_unusable_explicit(self):
        assert canonical_url("ftp://x", "d.example", parse_path("/a")) == "https://d.example/a"
