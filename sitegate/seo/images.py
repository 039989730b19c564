"""
Image URL Normalization

Open Graph scrapers only accept absolute URLs. Anything we cannot turn into
one is dropped: a missing og:image is better than a broken one.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

# Relative paths we are willing to anchor to the domain ("images/a.png")
_RELATIVE_PATH_RE = re.compile(r"^[A-Za-z0-9._~%\-+@]+(?:/[A-Za-z0-9._~%\-+@=&?]*)*$")


def _valid_absolute(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    return bool(parts.hostname)


def normalize_image_url(value: Optional[str], domain: Optional[str]) -> Optional[str]:
    """
    Make an image reference absolute, or drop it.

    - ``http(s)://host/...`` passes unchanged
    - ``//host/...`` gets ``https:``
    - ``/path`` is joined with ``https://{domain}``
    - ``path/file.png`` is joined with ``https://{domain}/``
    - anything else (None, blank, whitespace, data:, javascript:, ...) -> None

    Examples:
        >>> normalize_image_url("/y.png", "d.example")
        'https://d.example/y.png'
        >>> normalize_image_url("not a url", "d.example") is None
        True
    """
    if not value or not isinstance(value, str):
        return None

    url = value.strip()
    if not url or any(ch.isspace() for ch in url):
        return None

    lowered = url.lower()
    if lowered.startswith(("http://", "https://")):
        return url if _valid_absolute(url) else None

    if url.startswith("//"):
        candidate = "https:" + url
        return candidate if _valid_absolute(candidate) else None

    if not domain:
        return None

    if url.startswith("/"):
        return f"https://{domain}{url}"

    if ":" in url.split("/", 1)[0]:
        # Some other scheme (data:, javascript:, ftp:)
        return None

    if _RELATIVE_PATH_RE.match(url) and "." in url:
        return f"https://{domain}/{url}"

    return None
