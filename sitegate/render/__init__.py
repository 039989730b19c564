"""
Rendering

- crawler: who gets the synthesized document
- synthesizer: SEORecord -> crawler document
- document: page-builder document -> HTML body
- headers: cache headers / ETag helpers
"""

from .crawler import (
    CRAWLER_TOKENS,
    GateDecision,
    classify_request,
    decide,
    has_prerender_override,
    is_automated_agent,
)
from .document import (
    PageDocument,
    document_from_dict,
    render_document,
    sanitize_custom_css,
    sanitize_rich_text,
    styles_to_css,
)
from .headers import (
    CACHE_PRESET_DOCUMENT,
    CACHE_PRESET_FALLBACK,
    CACHE_PRESET_NOT_FOUND,
    CACHE_PRESET_REALTIME,
    CacheHeadersBuilder,
    check_not_modified,
    generate_etag,
)
from .synthesizer import escape_html, synthesize_document

__all__ = [
    "CRAWLER_TOKENS",
    "GateDecision",
    "classify_request",
    "decide",
    "has_prerender_override",
    "is_automated_agent",
    "PageDocument",
    "document_from_dict",
    "render_document",
    "sanitize_custom_css",
    "sanitize_rich_text",
    "styles_to_css",
    "CACHE_PRESET_DOCUMENT",
    "CACHE_PRESET_FALLBACK",
    "CACHE_PRESET_NOT_FOUND",
    "CACHE_PRESET_REALTIME",
    "CacheHeadersBuilder",
    "check_not_modified",
    "generate_etag",
    "escape_html",
    "synthesize_document",
]
