"""
Sitegate Data Models

Defines the types flowing through the resolution pipeline:
- Tenant records (custom domains, domain connections, stores)
- Content entities (websites/pages, funnels/steps, course areas)
- Resolver output (SEORecord)

Backend rows arrive as plain dicts (PostgREST JSON or SQLAlchemy rows
converted to dicts); every entity has a ``from_record`` constructor so both
stores share one mapping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# =============================================================================
# ENUMS
# =============================================================================


class ContentType(str, Enum):
    """Kind of content a domain connection points at."""
    WEBSITE = "website"
    FUNNEL = "funnel"
    COURSE_AREA = "course_area"


# =============================================================================
# HELPERS
# =============================================================================


def clean_text(value: Any) -> Optional[str]:
    """Return a stripped string, or None for missing/blank values."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def parse_keywords(value: Any) -> List[str]:
    """Keywords are stored as arrays or comma strings; always hand back a list."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [k for k in (clean_text(item) for item in items) if k]


def _settings_seo(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(settings, dict):
        return {}
    seo = settings.get("seo")
    return seo if isinstance(seo, dict) else {}


def _settings_favicon(settings: Optional[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(settings, dict):
        return None
    branding = settings.get("branding") if isinstance(settings.get("branding"), dict) else {}
    return clean_text(
        branding.get("favicon")
        or branding.get("favicon_url")
        or settings.get("favicon")
        or settings.get("favicon_url")
    )


# =============================================================================
# TENANT RECORDS
# =============================================================================


@dataclass(frozen=True)
class CustomDomain:
    """A tenant-owned hostname. Only verified + DNS-configured rows resolve."""
    id: str
    domain: str
    store_id: str
    is_verified: bool = False
    dns_configured: bool = False

    @property
    def is_eligible(self) -> bool:
        return self.is_verified and self.dns_configured

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "CustomDomain":
        return cls(
            id=str(row["id"]),
            domain=row["domain"],
            store_id=str(row["store_id"]),
            is_verified=bool(row.get("is_verified")),
            dns_configured=bool(row.get("dns_configured")),
        )


@dataclass(frozen=True)
class DomainConnection:
    """Binding of a domain to one content entity, optionally scoped to a path."""
    id: str
    domain_id: str
    content_type: ContentType
    content_id: str
    path: Optional[str] = None
    is_homepage: bool = False

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "DomainConnection":
        return cls(
            id=str(row["id"]),
            domain_id=str(row["domain_id"]),
            content_type=ContentType(row["content_type"]),
            content_id=str(row["content_id"]),
            path=clean_text(row.get("path")),
            is_homepage=bool(row.get("is_homepage")),
        )


@dataclass(frozen=True)
class Tenant:
    """Result of tenant resolution; passed explicitly down the pipeline."""
    domain_id: str
    store_id: str
    domain: str


@dataclass
class Store:
    """Store/account - the ultimate fallback for name, description, favicon."""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    favicon_url: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Store":
        return cls(
            id=str(row["id"]),
            name=clean_text(row.get("name")),
            description=clean_text(row.get("description")),
            favicon_url=clean_text(row.get("favicon_url")),
        )


# =============================================================================
# CONTENT ENTITIES
# =============================================================================


@dataclass
class WebsitePage:
    id: str
    slug: Optional[str] = None
    is_homepage: bool = False
    is_published: bool = False
    title: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    og_image: Optional[str] = None
    seo_keywords: List[str] = field(default_factory=list)
    canonical_url: Optional[str] = None
    meta_robots: Optional[str] = None
    content: Any = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "WebsitePage":
        return cls(
            id=str(row["id"]),
            slug=clean_text(row.get("slug")),
            is_homepage=bool(row.get("is_homepage")),
            is_published=bool(row.get("is_published")),
            title=clean_text(row.get("title")),
            seo_title=clean_text(row.get("seo_title")),
            seo_description=clean_text(row.get("seo_description")),
            # social_image_url is the editor's newer field and wins over og_image
            og_image=clean_text(row.get("social_image_url")) or clean_text(row.get("og_image")),
            seo_keywords=parse_keywords(row.get("seo_keywords")),
            canonical_url=clean_text(row.get("canonical_url")),
            meta_robots=clean_text(row.get("meta_robots")),
            content=row.get("content"),
        )


@dataclass
class WebsiteEntity:
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    og_image: Optional[str] = None
    seo_keywords: List[str] = field(default_factory=list)
    meta_robots: Optional[str] = None
    favicon: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "WebsiteEntity":
        settings = row.get("settings") if isinstance(row.get("settings"), dict) else {}
        seo = _settings_seo(settings)
        return cls(
            id=str(row["id"]),
            name=clean_text(row.get("name")),
            description=clean_text(row.get("description")),
            seo_title=clean_text(row.get("seo_title")) or clean_text(seo.get("title")),
            seo_description=clean_text(row.get("seo_description")) or clean_text(seo.get("description")),
            og_image=(
                clean_text(row.get("og_image"))
                or clean_text(seo.get("og_image"))
                or clean_text(seo.get("social_image_url"))
            ),
            seo_keywords=parse_keywords(row.get("seo_keywords")) or parse_keywords(seo.get("keywords")),
            meta_robots=clean_text(row.get("meta_robots")) or clean_text(seo.get("robots")),
            favicon=_settings_favicon(settings),
            settings=settings,
        )


@dataclass
class FunnelStep:
    id: str
    slug: Optional[str] = None
    step_order: int = 0
    is_published: bool = False
    title: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    og_image: Optional[str] = None
    seo_keywords: List[str] = field(default_factory=list)
    canonical_url: Optional[str] = None
    meta_robots: Optional[str] = None
    content: Any = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "FunnelStep":
        return cls(
            id=str(row["id"]),
            slug=clean_text(row.get("slug")),
            step_order=int(row.get("step_order") or 0),
            is_published=bool(row.get("is_published")),
            title=clean_text(row.get("title")) or clean_text(row.get("name")),
            seo_title=clean_text(row.get("seo_title")),
            seo_description=clean_text(row.get("seo_description")),
            og_image=clean_text(row.get("social_image_url")) or clean_text(row.get("og_image")),
            seo_keywords=parse_keywords(row.get("seo_keywords")),
            canonical_url=clean_text(row.get("canonical_url")),
            meta_robots=clean_text(row.get("meta_robots")),
            content=row.get("content"),
        )


@dataclass
class FunnelEntity:
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    og_image: Optional[str] = None
    seo_keywords: List[str] = field(default_factory=list)
    meta_robots: Optional[str] = None
    favicon: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "FunnelEntity":
        settings = row.get("settings") if isinstance(row.get("settings"), dict) else {}
        seo = _settings_seo(settings)
        return cls(
            id=str(row["id"]),
            name=clean_text(row.get("name")),
            description=clean_text(row.get("description")),
            seo_title=clean_text(row.get("seo_title")) or clean_text(seo.get("title")),
            seo_description=clean_text(row.get("seo_description")) or clean_text(seo.get("description")),
            og_image=(
                clean_text(row.get("social_image_url"))
                or clean_text(row.get("og_image"))
                or clean_text(seo.get("og_image"))
            ),
            seo_keywords=parse_keywords(row.get("seo_keywords")) or parse_keywords(seo.get("keywords")),
            meta_robots=clean_text(row.get("meta_robots")) or clean_text(seo.get("robots")),
            favicon=_settings_favicon(settings),
            settings=settings,
        )


@dataclass(frozen=True)
class CourseAreaEntity:
    """Course areas carry no SEO fields; everything derives from the Store."""
    id: str
    store_id: str


@dataclass
class PlatformPage:
    """The platform's own marketing pages, served on system domains."""
    slug: str
    title: Optional[str] = None
    description: Optional[str] = None
    og_image: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "PlatformPage":
        return cls(
            slug=row.get("page_slug") or row.get("slug") or "/",
            title=clean_text(row.get("title")),
            description=clean_text(row.get("description")),
            og_image=clean_text(row.get("og_image")),
            keywords=parse_keywords(row.get("keywords")),
        )


# =============================================================================
# RESOLVED CONTENT (closed sum type)
# =============================================================================


@dataclass
class WebsiteContent:
    website: WebsiteEntity
    page: Optional[WebsitePage] = None


@dataclass
class FunnelContent:
    funnel: FunnelEntity
    step: Optional[FunnelStep] = None


@dataclass
class CourseAreaContent:
    area: CourseAreaEntity


@dataclass
class PlatformContent:
    page: PlatformPage


ResolvedContent = Union[WebsiteContent, FunnelContent, CourseAreaContent, PlatformContent]


# =============================================================================
# RESOLVER OUTPUT
# =============================================================================


@dataclass
class SEORecord:
    """Everything the HTML synthesizer needs. Never persisted."""
    title: str
    description: str
    canonical: str
    robots: str
    site_name: str
    source: str
    og_image: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    favicon: Optional[str] = None
    locale: str = "en_US"
    field_sources: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.source:
            raise ValueError("SEORecord.source must identify the producing tier")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "og_image": self.og_image,
            "keywords": list(self.keywords),
            "canonical": self.canonical,
            "robots": self.robots,
            "site_name": self.site_name,
            "favicon": self.favicon,
            "locale": self.locale,
            "source": self.source,
            "field_sources": dict(self.field_sources),
        }
