"""
SEO Package

- extract: meta description from page content
- images: absolute image URL normalization
- resolver: field-by-field cascade into an SEORecord
"""

from .extract import extract_description, clean_markup, split_sentences
from .images import normalize_image_url
from .resolver import (
    DEFAULT_ROBOTS,
    DEFAULT_TITLE,
    SeoDefaults,
    canonical_url,
    fallback_record,
    resolve_seo,
)

__all__ = [
    "extract_description",
    "clean_markup",
    "split_sentences",
    "normalize_image_url",
    "DEFAULT_ROBOTS",
    "DEFAULT_TITLE",
    "SeoDefaults",
    "canonical_url",
    "fallback_record",
    "resolve_seo",
]
