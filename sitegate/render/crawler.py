"""
Crawler Gate

Decides whether a request gets the pre-rendered SEO shell or goes to the
live application. Crawlers and link-preview fetchers cannot run the client
app, so they always get the shell; humans get the app unless the
deployment opts custom-domain visitors into the shell as well.

Diagnostic override:
    Operators can force crawler treatment with the override header
    (default ``X-Sitegate-Prerender``) or the ``_prerender`` query flag.
    Either is honoured only when its value equals PRERENDER_OVERRIDE_TOKEN;
    with no token configured the override does not exist.
"""

import hmac
import logging
from enum import Enum
from typing import Mapping, Optional

from sitegate.utils.config import Settings

logger = logging.getLogger(__name__)


# Matched as case-insensitive substrings of the User-Agent
CRAWLER_TOKENS = (
    # Search engines
    "googlebot", "google-inspectiontool", "bingbot", "slurp", "duckduckbot",
    "baiduspider", "yandex", "applebot", "petalbot", "sogou",
    # Social / messaging link previews
    "facebookexternalhit", "facebookcatalog", "facebookplatform", "facebot",
    "twitterbot", "linkedinbot", "whatsapp", "slackbot", "slack-imgproxy",
    "discordbot", "telegrambot", "skypeuripreview", "pinterestbot",
    "redditbot", "embedly", "vkshare", "w3c_validator", "iframely",
    # SEO tools / archives
    "semrushbot", "ahrefsbot", "dotbot", "mj12bot", "ia_archiver",
    # Generic
    "bot", "crawler", "spider",
)


class GateDecision(str, Enum):
    SYNTHESIZE = "synthesize"
    PASS_THROUGH = "pass_through"


def is_automated_agent(user_agent: Optional[str]) -> bool:
    """Case-insensitive substring match against CRAWLER_TOKENS."""
    if not user_agent:
        return False
    ua = user_agent.lower()
    return any(token in ua for token in CRAWLER_TOKENS)


def has_prerender_override(
    headers: Mapping[str, str],
    query: Mapping[str, str],
    settings: Settings,
) -> bool:
    """True only when a configured override token is presented exactly."""
    token = settings.PRERENDER_OVERRIDE_TOKEN
    if not token:
        return False

    presented = headers.get(settings.PRERENDER_OVERRIDE_HEADER) or headers.get(
        settings.PRERENDER_OVERRIDE_HEADER.lower()
    )
    if not presented:
        presented = query.get(settings.PRERENDER_OVERRIDE_QUERY)
    if not presented:
        return False

    return hmac.compare_digest(presented.encode(), token.encode())


def classify_request(
    user_agent: Optional[str],
    headers: Mapping[str, str],
    query: Mapping[str, str],
    settings: Settings,
) -> bool:
    """Whether the requester should be treated as an automated agent."""
    if has_prerender_override(headers, query, settings):
        logger.info("Prerender override presented - treating request as crawler")
        return True
    return is_automated_agent(user_agent)


def decide(
    is_bot: bool,
    is_custom_domain: bool,
    serve_shell_to_humans_on_custom_domains: bool = False,
) -> GateDecision:
    """
    Shell or live app.

    Bots always get the shell. Humans get the live application, except on
    resolved custom domains when the deployment serves the shell to every
    visitor (the app shell is not guaranteed reachable there).
    """
    if is_bot:
        return GateDecision.SYNTHESIZE
    if is_custom_domain and serve_shell_to_humans_on_custom_domains:
        return GateDecision.SYNTHESIZE
    return GateDecision.PASS_THROUGH
