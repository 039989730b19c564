"""
SEO Metadata Resolver

Cascades every SEO field independently from the most specific source to
the least specific one:

    child (page / step)  ->  parent (website / funnel)  ->  store  ->  literal

A present-but-blank value counts as absent. Each field records which tier
produced it in ``SEORecord.field_sources``; the record as a whole gets a
``source`` tag naming the content tier (never an internal id).
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sitegate.models import (
    CourseAreaContent,
    FunnelContent,
    PlatformContent,
    ResolvedContent,
    SEORecord,
    Store,
    WebsiteContent,
    WebsitePage,
    clean_text,
)
from sitegate.routing.routes import RequestPath
from .extract import DEFAULT_MAX_LENGTH, extract_description
from .images import normalize_image_url

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Welcome"
DEFAULT_ROBOTS = "index, follow"
DEFAULT_DESCRIPTION = "Discover our latest products and offers."


@dataclass(frozen=True)
class SeoDefaults:
    """Literal bottom of every cascade."""
    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION
    robots: str = DEFAULT_ROBOTS
    locale: str = "en_US"
    platform_name: str = "EcomBuildr"
    max_description_length: int = DEFAULT_MAX_LENGTH


@dataclass
class _Tiers:
    child: Any
    child_label: str
    parent: Any
    parent_label: str
    source: str


def _attr(obj: Any, name: str) -> Optional[str]:
    if obj is None:
        return None
    return clean_text(getattr(obj, name, None))


def _first(*candidates: Tuple[str, Optional[str]]) -> Tuple[Optional[str], Optional[str]]:
    """First non-empty (label, value) pair -> (value, label)."""
    for label, value in candidates:
        value = clean_text(value)
        if value:
            return value, label
    return None, None


def _tiers(content: ResolvedContent, path: RequestPath) -> _Tiers:
    """Map a content variant to child/parent tiers and its source tag."""
    if isinstance(content, WebsiteContent):
        page = content.page
        if page is None:
            source = "website_root" if path.is_root else "website_fallback"
        elif path.is_root:
            source = "homepage_page"
        else:
            source = f"website_page|slug:{page.slug or path.clean}"
        return _Tiers(page, "page", content.website, "website", source)

    if isinstance(content, FunnelContent):
        step = content.step
        if step is not None and not path.is_root and step.slug == path.last_segment:
            source = f"funnel_step|slug:{step.slug}"
        else:
            source = "funnel_landing"
        return _Tiers(step, "step", content.funnel, "funnel", source)

    if isinstance(content, CourseAreaContent):
        return _Tiers(None, "course_area", None, "course_area", "course_area")

    if isinstance(content, PlatformContent):
        page = content.page
        as_page = WebsitePage(
            id=page.slug,
            slug=page.slug,
            title=page.title,
            seo_description=page.description,
            og_image=page.og_image,
            seo_keywords=list(page.keywords),
        )
        return _Tiers(as_page, "platform_page", None, "platform", f"platform_page|slug:{page.slug}")

    raise TypeError(f"Unhandled content variant: {type(content).__name__}")


def canonical_url(explicit: Optional[str], domain: str, path: RequestPath) -> str:
    """Explicit canonical if it is usable, else https://{domain}{path}."""
    explicit = clean_text(explicit)
    if explicit:
        if explicit.startswith(("http://", "https://")):
            return explicit
        if explicit.startswith("/"):
            return f"https://{domain}{explicit}"
    return f"https://{domain}{path.canonical_path}"


def resolve_seo(
    content: ResolvedContent,
    store: Optional[Store],
    domain: str,
    path: RequestPath,
    defaults: Optional[SeoDefaults] = None,
) -> SEORecord:
    """
    Build the SEO record for resolved content.

    Args:
        content: Selected content (already fetched with its parent)
        store: Owning store, or None if it could not be loaded
        domain: Hostname the request came in on
        path: Parsed request path
        defaults: Literal fallbacks

    Returns:
        SEORecord with every text field non-empty
    """
    defaults = defaults or SeoDefaults()
    tiers = _tiers(content, path)
    child, parent = tiers.child, tiers.parent
    c, p = tiers.child_label, tiers.parent_label
    sources = {}

    title, sources["title"] = _first(
        (f"{c}.seo_title", _attr(child, "seo_title")),
        (f"{c}.title", _attr(child, "title")),
        (f"{p}.seo_title", _attr(parent, "seo_title")),
        (f"{p}.name", _attr(parent, "name")),
        ("store.name", _attr(store, "name")),
        ("default", defaults.title),
    )

    extracted = ""
    if child is not None and not _attr(child, "seo_description"):
        extracted = extract_description(
            getattr(child, "content", None), defaults.max_description_length
        )

    description, sources["description"] = _first(
        (f"{c}.seo_description", _attr(child, "seo_description")),
        (f"{c}.content", extracted),
        (f"{p}.seo_description", _attr(parent, "seo_description")),
        (f"{p}.description", _attr(parent, "description")),
        ("store.description", _attr(store, "description")),
        ("default", defaults.description),
    )

    og_image, sources["og_image"] = _first(
        (f"{c}.og_image", normalize_image_url(_attr(child, "og_image"), domain)),
        (f"{p}.og_image", normalize_image_url(_attr(parent, "og_image"), domain)),
    )
    sources["og_image"] = sources["og_image"] or "none"

    keywords: List[str] = []
    sources["keywords"] = "none"
    for label, obj in ((c, child), (p, parent)):
        values = list(getattr(obj, "seo_keywords", None) or [])
        if values:
            keywords, sources["keywords"] = values, f"{label}.seo_keywords"
            break

    robots, sources["robots"] = _first(
        (f"{c}.meta_robots", _attr(child, "meta_robots")),
        (f"{p}.meta_robots", _attr(parent, "meta_robots")),
        ("default", defaults.robots),
    )

    platform_name = defaults.platform_name if isinstance(content, PlatformContent) else None
    site_name, sources["site_name"] = _first(
        (f"{p}.name", _attr(parent, "name")),
        ("store.name", _attr(store, "name")),
        ("platform", platform_name),
        ("domain", domain),
    )

    favicon, sources["favicon"] = _first(
        (f"{p}.favicon", normalize_image_url(_attr(parent, "favicon"), domain)),
        ("store.favicon_url", normalize_image_url(_attr(store, "favicon_url"), domain)),
    )
    sources["favicon"] = sources["favicon"] or "none"

    record = SEORecord(
        title=title,
        description=description,
        og_image=og_image,
        keywords=keywords,
        canonical=canonical_url(_attr(child, "canonical_url"), domain, path),
        robots=robots,
        site_name=site_name or defaults.title,
        favicon=favicon,
        locale=defaults.locale,
        source=tiers.source,
        field_sources=sources,
    )
    logger.debug(f"SEO resolved via {record.source}: title from {sources['title']}")
    return record


def fallback_record(
    domain: str,
    path: RequestPath,
    source: str,
    defaults: Optional[SeoDefaults] = None,
    site_name: Optional[str] = None,
) -> SEORecord:
    """Generic record used when nothing tenant-specific could be resolved."""
    defaults = defaults or SeoDefaults()
    name = clean_text(site_name) or domain or defaults.title
    return SEORecord(
        title=name,
        description=f"Preview of {name}" if name != defaults.title else defaults.description,
        canonical=f"https://{domain}{path.canonical_path}" if domain else path.canonical_path,
        robots=defaults.robots,
        site_name=name,
        locale=defaults.locale,
        source=source,
        field_sources={"title": "domain", "description": "default"},
    )
