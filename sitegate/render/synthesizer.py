"""
HTML Synthesizer

Turns an SEORecord into the static document served to crawlers: a full
meta-tag head (Open Graph, Twitter Card, canonical, JSON-LD) and a minimal
human-readable body.

Every interpolated value is HTML-escaped. Titles and descriptions are
tenant-authored, so escaping is part of the contract, not formatting.
"""

import json
from typing import List, Optional

from sitegate.models import SEORecord


_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}


def escape_html(value: Optional[str]) -> str:
    """
    Escape ``& < > " '`` for use in text and double-quoted attributes.

    Examples:
        >>> escape_html('<script>alert("x")</script>')
        '&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;'
    """
    if value is None:
        return ""
    return "".join(_ESCAPES.get(ch, ch) for ch in str(value))


def json_ld(record: SEORecord) -> str:
    """
    WebPage structured data for the record.

    ``<``, ``>`` and ``&`` are emitted as unicode escapes so the payload can
    never close its <script> element.
    """
    data = {
        "@context": "https://schema.org",
        "@type": "WebPage",
        "name": record.title,
        "description": record.description,
        "url": record.canonical,
        "isPartOf": {"@type": "WebSite", "name": record.site_name},
    }
    if record.og_image:
        data["image"] = record.og_image
    if record.keywords:
        data["keywords"] = ", ".join(record.keywords)

    payload = json.dumps(data, ensure_ascii=False, sort_keys=True)
    return (
        payload.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def _meta(attr: str, key: str, value: Optional[str]) -> str:
    return f'<meta {attr}="{escape_html(key)}" content="{escape_html(value)}">'


def head_tags(record: SEORecord) -> List[str]:
    """The <head> children for a record, in emission order."""
    title = record.title
    description = record.description

    tags = [
        '<meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f"<title>{escape_html(title)}</title>",
        _meta("name", "description", description),
    ]
    if record.keywords:
        tags.append(_meta("name", "keywords", ", ".join(record.keywords)))
    tags.extend([
        _meta("name", "robots", record.robots),
        _meta("name", "author", record.site_name),
        f'<link rel="canonical" href="{escape_html(record.canonical)}">',
    ])

    # Open Graph
    tags.extend([
        _meta("property", "og:type", "website"),
        _meta("property", "og:url", record.canonical),
        _meta("property", "og:title", title),
        _meta("property", "og:description", description),
    ])
    if record.og_image:
        tags.append(_meta("property", "og:image", record.og_image))
        if record.og_image.startswith("https://"):
            tags.append(_meta("property", "og:image:secure_url", record.og_image))
        tags.append(_meta("property", "og:image:alt", title))
    tags.extend([
        _meta("property", "og:site_name", record.site_name),
        _meta("property", "og:locale", record.locale),
    ])

    # Twitter Card
    tags.extend([
        _meta("name", "twitter:card", "summary_large_image"),
        _meta("name", "twitter:title", title),
        _meta("name", "twitter:description", description),
    ])
    if record.og_image:
        tags.append(_meta("name", "twitter:image", record.og_image))

    if record.favicon:
        tags.append(f'<link rel="icon" href="{escape_html(record.favicon)}">')

    tags.append(f'<script type="application/ld+json">{json_ld(record)}</script>')
    return tags


def synthesize_document(record: SEORecord, body_html: Optional[str] = None) -> str:
    """
    Render a complete HTML document for ``record``.

    Args:
        record: Resolved SEO record
        body_html: Pre-rendered page body (Document Renderer output). It is
            trusted markup and inserted as-is after the fallback block.

    Returns:
        Self-contained HTML string
    """
    lang = (record.locale or "en").split("_", 1)[0] or "en"
    head = "\n    ".join(head_tags(record))
    body = [
        "<main>",
        f"  <h1>{escape_html(record.title)}</h1>",
        f"  <p>{escape_html(record.description)}</p>",
        "</main>",
    ]
    if body_html:
        body.append(body_html)
    body_markup = "\n  ".join(body)

    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{escape_html(lang)}">\n'
        "  <head>\n"
        f"    {head}\n"
        "  </head>\n"
        "  <body>\n"
        f"  {body_markup}\n"
        "  </body>\n"
        "</html>\n"
    )
