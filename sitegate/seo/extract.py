"""
Content Description Extraction

Builds a meta description from page content when the author did not write
one. Accepts plain text/HTML or a structured page document (dict, list, or
its JSON string form) and returns whole sentences that fit the budget.

Malformed content never raises out of ``extract_description``; it yields ""
and the SEO cascade moves on to the next tier.
"""

import html
import json
import logging
import re
from typing import Any, List

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 155
ELLIPSIS = "..."

# Node types whose text is prose worth describing the page with
TEXT_NODE_TYPES = frozenset({"text", "paragraph", "heading", "rich-text", "richtext", "quote"})

# Keys under which documents nest child nodes
CONTAINER_KEYS = ("sections", "rows", "columns", "elements", "blocks", "children")

MAX_DEPTH = 32

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")
_TERMINATORS = (".", "!", "?")


def _node_text(node: dict) -> str:
    for key in ("text", "content"):
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            return value
        if isinstance(value, dict):
            inner = value.get("text")
            if isinstance(inner, str) and inner.strip():
                return inner
    return ""


def collect_text(node: Any, out: List[str], depth: int = 0) -> None:
    """Append text of text-bearing nodes, depth first, in document order."""
    if depth > MAX_DEPTH or node is None:
        return

    if isinstance(node, list):
        for child in node:
            collect_text(child, out, depth + 1)
        return

    if not isinstance(node, dict):
        return

    if node.get("type") in TEXT_NODE_TYPES:
        text = _node_text(node)
        if text:
            out.append(text)

    for key in CONTAINER_KEYS:
        children = node.get(key)
        if isinstance(children, (list, dict)):
            collect_text(children, out, depth + 1)


def clean_markup(text: str) -> str:
    """Strip tags, decode entities, collapse whitespace."""
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text).replace("\xa0", " ")
    return _WS_RE.sub(" ", text).strip()


def split_sentences(text: str) -> List[str]:
    """Split on . ! ? keeping terminators; unterminated tails get a period."""
    sentences = []
    for match in _SENTENCE_RE.findall(text):
        sentence = match.strip()
        if not sentence or all(ch in ".!?" for ch in sentence):
            continue
        if not sentence.endswith(_TERMINATORS):
            sentence += "."
        sentences.append(sentence)
    return sentences


def truncate_words(text: str, limit: int) -> str:
    """Cut to ``limit`` chars on a word boundary and append an ellipsis."""
    room = max(limit - len(ELLIPSIS), 1)
    if len(text) <= room:
        cut = text
    else:
        cut = text[:room]
        if " " in cut and not text[room:room + 1].isspace():
            cut = cut.rsplit(" ", 1)[0]
    cut = cut.rstrip(" ,;:-.!?")
    if not cut:
        cut = text[:room]
    return cut + ELLIPSIS


def _content_to_text(content: Any) -> str:
    if isinstance(content, str):
        stripped = content.strip()
        if stripped[:1] in ("{", "["):
            try:
                content = json.loads(stripped)
            except ValueError:
                return stripped
        else:
            return stripped

    parts: List[str] = []
    collect_text(content, parts)

    # Each node is its own block; a heading without a period still ends there
    blocks = []
    for part in parts:
        block = clean_markup(part)
        if block:
            blocks.append(block if block.endswith(_TERMINATORS) else block + ".")
    return " ".join(blocks)


def extract_description(content: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Derive a meta description from page content.

    Greedily accumulates whole sentences while they fit ``max_length``; if
    even the first sentence is too long it is truncated on a word boundary
    with an ellipsis. The result always ends in terminal punctuation.

    Args:
        content: Plain string, HTML, or structured document
        max_length: Character budget

    Returns:
        Description, or "" when nothing usable was found
    """
    if not content:
        return ""

    try:
        text = clean_markup(_content_to_text(content))
        if not text:
            return ""

        sentences = split_sentences(text)
        if not sentences:
            return ""

        result = ""
        for sentence in sentences:
            candidate = f"{result} {sentence}" if result else sentence
            if len(candidate) > max_length:
                break
            result = candidate

        if not result:
            result = truncate_words(sentences[0], max_length)

        return result
    except Exception as e:
        logger.debug(f"Description extraction failed: {e}")
        return ""
