"""
Sitegate HTTP Service

FastAPI app in front of the resolution pipeline:
1. Crawler gate runs first (no backend lookups for humans it passes through)
2. Crawlers get the synthesized SEO document
3. Humans go to the live application (redirect or proxy)

Also serves diagnostics: resolved SEO data as JSON, the full rendered page,
and a health check.
"""

import logging
import sys
from typing import Dict, List, Optional
from urllib.parse import urlsplit

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from sitegate import __version__
from sitegate.pipeline import PageRequest, RenderPipeline, Resolution, new_trace_id
from sitegate.render.crawler import GateDecision, classify_request, decide
from sitegate.render.headers import (
    CACHE_PRESET_DOCUMENT,
    CACHE_PRESET_FALLBACK,
    CACHE_PRESET_NOT_FOUND,
    CACHE_PRESET_REALTIME,
    CacheHeadersBuilder,
    check_not_modified,
)
from sitegate.routing.domain import clean_hostname
from sitegate.store import create_store
from sitegate.utils.config import Settings, get_settings

# Configure logging to stdout
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="Sitegate",
    description="Tenant content resolution and bot-aware rendering",
    version=__version__,
)

# Hop-by-hop headers never copied from a proxied response
HOP_BY_HOP_HEADERS = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade", "content-encoding",
    "content-length",
}


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Create the content store, pipeline and pass-through client."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    logger.info(f"Initializing {settings.STORE_BACKEND} content store...")
    store = create_store(settings)
    app.state.pipeline = RenderPipeline(store, settings)
    app.state.http = httpx.AsyncClient(
        timeout=httpx.Timeout(10.0),
        follow_redirects=False,
    )
    try:
        if await store.ping():
            logger.info("Content store reachable")
        else:
            logger.warning("Content store ping failed - continuing with fallbacks")
    except Exception as e:
        logger.error(f"Content store unreachable: {e}")
        # Don't fail startup - every lookup degrades to fallbacks


@app.on_event("shutdown")
async def shutdown_event():
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.store.close()
    client = getattr(app.state, "http", None)
    if client is not None:
        await client.aclose()


def get_pipeline(request: Request) -> RenderPipeline:
    return request.app.state.pipeline


def get_http_client(request: Request) -> httpx.AsyncClient:
    client = getattr(request.app.state, "http", None)
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(10.0), follow_redirects=False)
        request.app.state.http = client
    return client


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class SeoDataResponse(BaseModel):
    """Resolved SEO record plus how it was produced."""
    title: str
    description: str
    og_image: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    canonical: str
    robots: str
    site_name: str
    favicon: Optional[str] = None
    locale: str
    source: str
    outcome: str
    rule: Optional[str] = None
    is_custom_domain: bool
    field_sources: Dict[str, str] = Field(default_factory=dict)
    trace_id: str


class HealthResponse(BaseModel):
    status: str
    version: str
    store: str
    store_backend: str


# ============================================================================
# HELPERS
# ============================================================================

def request_hostname(request: Request) -> str:
    """Host the visitor asked for; forwarded host wins behind a proxy/CDN."""
    return (
        request.headers.get("x-forwarded-host", "").split(",")[0].strip()
        or request.headers.get("host", "")
    )


def header_value(value: str) -> str:
    """Tenant text made safe for a header: ASCII, no control characters."""
    ascii_only = value.encode("ascii", "ignore").decode()
    printable = "".join(ch if ch.isprintable() else " " for ch in ascii_only)
    return " ".join(printable.split())


def diagnostic_headers(resolution: Resolution, settings: Settings) -> Dict[str, str]:
    """X-SEO-* headers; source tags carry no internal ids."""
    if not settings.DIAGNOSTIC_HEADERS:
        return {}
    sources = resolution.record.field_sources
    headers = {
        "X-SEO-Source": resolution.record.source,
        "X-SEO-Site": resolution.record.site_name,
        "X-SEO-Path": resolution.path.canonical_path,
        "X-SEO-Rule": resolution.rule or "none",
        "X-SEO-Title-Source": sources.get("title", "none"),
        "X-SEO-Desc-Source": sources.get("description", "none"),
        "X-SEO-Image-Source": sources.get("og_image", "none"),
        "X-Trace-Id": resolution.trace_id,
    }
    return {key: header_value(value) for key, value in headers.items()}


def document_response(
    request: Request,
    html: str,
    resolution: Resolution,
    settings: Settings,
) -> Response:
    """200 document (or 304) with cache, ETag and diagnostic headers."""
    preset = CACHE_PRESET_FALLBACK if resolution.is_fallback else CACHE_PRESET_DOCUMENT
    builder = (
        CacheHeadersBuilder()
        .preset(preset)
        .etag(html)
        .vary(["User-Agent"])
    )
    headers = builder.build()

    not_modified = check_not_modified(request, headers["ETag"])
    if not_modified:
        builder.apply(not_modified)
        return not_modified

    response = HTMLResponse(content=html, status_code=200)
    builder.apply(response)
    for key, value in diagnostic_headers(resolution, settings).items():
        response.headers[key] = value
    return response


def not_found_response(resolution: Resolution, settings: Settings) -> Response:
    response = HTMLResponse(
        content="<!DOCTYPE html><html><head><title>Not Found</title></head>"
                "<body><h1>Not Found</h1></body></html>",
        status_code=404,
    )
    CacheHeadersBuilder().preset(CACHE_PRESET_NOT_FOUND).vary(["User-Agent"]).apply(response)
    for key, value in diagnostic_headers(resolution, settings).items():
        response.headers[key] = value
    return response


async def pass_through(
    request: Request,
    settings: Settings,
    client: httpx.AsyncClient,
    is_custom_domain: bool,
) -> Optional[Response]:
    """
    Send a human visitor to the live application.

    Platform hosts are redirected (or proxied in proxy mode). Custom domains
    are always proxied so the application still sees the tenant's host in
    X-Forwarded-Host.

    Returns:
        The response, or None when the visitor should get the synthesized
        shell: the application origin is this very host, or the proxy
        failed on a custom domain.
    """
    hostname = request_hostname(request)
    if clean_hostname(urlsplit(settings.APP_ORIGIN).netloc) == clean_hostname(hostname):
        logger.warning(f"APP_ORIGIN points at {hostname} itself; serving the shell")
        return None

    target = settings.APP_ORIGIN.rstrip("/") + request.url.path
    if request.url.query:
        target += "?" + request.url.query

    if not is_custom_domain and settings.PASS_THROUGH_MODE.lower() != "proxy":
        response = RedirectResponse(url=target, status_code=307)
        response.headers["Vary"] = "User-Agent"
        return response

    forwarded = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS and key.lower() != "host"
    }
    forwarded["X-Forwarded-Host"] = hostname
    try:
        upstream = await client.get(target, headers=forwarded)
    except httpx.HTTPError as e:
        logger.error(f"Pass-through to {settings.APP_ORIGIN} failed: {e}")
        if is_custom_domain:
            return None
        return RedirectResponse(url=target, status_code=307)

    headers = {
        key: value
        for key, value in upstream.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS
    }
    return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)


# ============================================================================
# DIAGNOSTIC ENDPOINTS
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health(
    pipeline: RenderPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Liveness plus store reachability."""
    try:
        reachable = await pipeline.store.ping()
    except Exception as e:
        logger.warning(f"Store ping failed: {e}")
        reachable = False

    payload = HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        store="connected" if reachable else "unreachable",
        store_backend=settings.STORE_BACKEND,
    )
    response = JSONResponse(content=payload.model_dump())
    CacheHeadersBuilder().preset(CACHE_PRESET_REALTIME).apply(response)
    return response


@app.get("/api/seo-data", response_model=SeoDataResponse)
async def seo_data(
    hostname: str = Query(..., min_length=1),
    path: str = Query("/"),
    pipeline: RenderPipeline = Depends(get_pipeline),
):
    """Resolved SEO record for a hostname + path, as JSON."""
    resolution = await pipeline.resolve(PageRequest(hostname=hostname, path=path))
    record = resolution.record
    return SeoDataResponse(
        **record.to_dict(),
        outcome=resolution.outcome.value,
        rule=resolution.rule,
        is_custom_domain=resolution.is_custom_domain,
        trace_id=resolution.trace_id,
    )


@app.get("/api/page-html")
async def page_html(
    request: Request,
    hostname: str = Query(..., min_length=1),
    path: str = Query("/"),
    pipeline: RenderPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Full page: synthesized head plus the rendered page body."""
    resolution = await pipeline.resolve(PageRequest(hostname=hostname, path=path))
    if resolution.not_found:
        return not_found_response(resolution, settings)
    html = pipeline.render(resolution, with_body=True)
    return document_response(request, html, resolution, settings)


# ============================================================================
# CATCH-ALL
# ============================================================================

@app.get("/{full_path:path}")
async def serve(
    request: Request,
    full_path: str,
    pipeline: RenderPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Gate the request, then synthesize a document or pass through.

    Crawlers never get a 5xx: every resolution failure degrades to a
    fallback document.
    """
    hostname = request_hostname(request)
    is_bot = classify_request(
        request.headers.get("user-agent"),
        request.headers,
        request.query_params,
        settings,
    )
    is_custom_domain = pipeline.is_custom_domain(hostname)
    decision = decide(
        is_bot,
        is_custom_domain,
        settings.SERVE_SHELL_TO_HUMANS_ON_CUSTOM_DOMAINS,
    )

    if decision == GateDecision.PASS_THROUGH:
        response = await pass_through(request, settings, client, is_custom_domain)
        if response is not None:
            return response

    trace_id = request.headers.get("x-trace-id") or new_trace_id()
    resolution = await pipeline.resolve(
        PageRequest(hostname=hostname, path="/" + full_path),
        trace_id=trace_id[:64],
    )
    if resolution.not_found:
        return not_found_response(resolution, settings)

    html = pipeline.render(resolution)
    return document_response(request, html, resolution, settings)


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
