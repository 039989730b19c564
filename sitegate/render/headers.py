"""
HTTP Cache Headers

Resolution touches up to a handful of backend lookups per request while
tenant content changes rarely, so synthesized documents are cacheable by
shared caches (CDN) with revalidation.

HTTP caching layers:
1. CDN: Cache-Control public + s-maxage + stale-while-revalidate
2. Conditional requests: ETag for 304 Not Modified
3. Vary: User-Agent, since crawlers and humans get different responses
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from fastapi import Request, Response


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachePreset:
    """Cache-Control numbers for one kind of response."""
    max_age: int
    s_maxage: int = 0
    stale_while_revalidate: int = 0
    public: bool = True
    no_store: bool = False


# Resolved tenant document
CACHE_PRESET_DOCUMENT = CachePreset(max_age=300, s_maxage=300, stale_while_revalidate=600)

# Degraded document (fallback data); re-resolve sooner
CACHE_PRESET_FALLBACK = CachePreset(max_age=120, s_maxage=120, stale_while_revalidate=120)

# Unknown domain 404s
CACHE_PRESET_NOT_FOUND = CachePreset(max_age=60, s_maxage=60)

# Diagnostics / health
CACHE_PRESET_REALTIME = CachePreset(max_age=0, public=False, no_store=True)


def generate_etag(*components: Any, weak: bool = False) -> str:
    """
    Generate ETag from components.

    Args:
        components: Values to hash for ETag
        weak: If True, generates a weak ETag (W/"...")

    Returns:
        ETag string with quotes
    """
    hash_input = ":".join(str(c) for c in components)
    hash_value = hashlib.sha256(hash_input.encode()).hexdigest()[:16]

    if weak:
        return f'W/"{hash_value}"'
    return f'"{hash_value}"'


def parse_etag(etag: str) -> str:
    """Parse ETag value, removing quotes and weak prefix."""
    if not etag:
        return ""

    if etag.startswith("W/"):
        etag = etag[2:]

    return etag.strip('"')


def etags_match(request_etag: Optional[str], current_etag: str) -> bool:
    """
    Check if request ETag matches current ETag.

    Handles weak comparison, wildcards and comma-separated If-None-Match.
    """
    if not request_etag:
        return False

    current = parse_etag(current_etag)

    for etag in request_etag.split(","):
        etag = etag.strip()
        if etag == "*":
            return True
        if parse_etag(etag) == current:
            return True

    return False


class CacheHeadersBuilder:
    """
    Fluent builder for HTTP cache headers.

    Usage:
        headers = (CacheHeadersBuilder()
            .preset(CACHE_PRESET_DOCUMENT)
            .etag(html)
            .vary(["User-Agent"])
            .build())
    """

    def __init__(self):
        self._max_age: int = 0
        self._s_maxage: int = 0
        self._swr: int = 0
        self._public: bool = True
        self._no_store: bool = False
        self._etag: Optional[str] = None
        self._vary: List[str] = []

    def preset(self, preset: CachePreset) -> "CacheHeadersBuilder":
        self._max_age = preset.max_age
        self._s_maxage = preset.s_maxage
        self._swr = preset.stale_while_revalidate
        self._public = preset.public
        self._no_store = preset.no_store
        return self

    def etag(self, *components: Any, weak: bool = False) -> "CacheHeadersBuilder":
        """Generate and set ETag from components."""
        self._etag = generate_etag(*components, weak=weak)
        return self

    def vary(self, headers: List[str]) -> "CacheHeadersBuilder":
        for header in headers:
            if header not in self._vary:
                self._vary.append(header)
        return self

    def build(self) -> dict:
        """Build headers dictionary."""
        headers = {}
        directives = []

        if self._no_store:
            directives.append("no-store")
        else:
            directives.append("public" if self._public else "private")
            directives.append(f"max-age={self._max_age}")

            if self._s_maxage > 0:
                directives.append(f"s-maxage={self._s_maxage}")

            if self._swr > 0:
                directives.append(f"stale-while-revalidate={self._swr}")

        headers["Cache-Control"] = ", ".join(directives)

        if self._etag and not self._no_store:
            headers["ETag"] = self._etag

        if self._vary:
            headers["Vary"] = ", ".join(self._vary)

        return headers

    def apply(self, response: Response) -> Response:
        """Apply headers to a FastAPI Response."""
        for key, value in self.build().items():
            response.headers[key] = value
        return response


def check_not_modified(request: Request, etag: str) -> Optional[Response]:
    """
    Return a 304 Response if the client already holds ``etag``, else None.

    Usage:
        not_modified = check_not_modified(request, etag)
        if not_modified:
            return not_modified
    """
    if_none_match = request.headers.get("If-None-Match")
    if if_none_match and etags_match(if_none_match, etag):
        response = Response(status_code=304)
        response.headers["ETag"] = etag
        return response
    return None
