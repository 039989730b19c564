"""
Document Renderer

Compiles a stored page-builder document into HTML:

    PageDocument -> sections -> rows -> columns -> elements

Each level carries a style map serialized to inline CSS by one shared
function (``styles_to_css``). Rendering is a pure tree walk with no I/O;
the same document always produces byte-identical output.

Escaping:
- Attribute values and plain text are HTML-escaped
- ``heading``/``text`` bodies are tenant-authored rich text; they pass
  through ``sanitize_rich_text`` (bleach allowlist of tags, attributes and
  CSS properties)
- Element custom CSS keeps allowlisted declarations only
- Element custom JS is never emitted
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer

from .synthesizer import escape_html

logger = logging.getLogger(__name__)


# =============================================================================
# DOCUMENT TREE
# =============================================================================


@dataclass
class Element:
    id: str
    type: str
    content: Dict[str, Any] = field(default_factory=dict)
    styles: Dict[str, Any] = field(default_factory=dict)
    anchor: Optional[str] = None


@dataclass
class Column:
    id: str
    width: float = 12
    custom_width: Optional[str] = None
    elements: List[Element] = field(default_factory=list)
    styles: Dict[str, Any] = field(default_factory=dict)
    anchor: Optional[str] = None


@dataclass
class Row:
    id: str
    columns: List[Column] = field(default_factory=list)
    styles: Dict[str, Any] = field(default_factory=dict)
    anchor: Optional[str] = None


@dataclass
class Section:
    id: str
    width: str = "full"
    custom_width: Optional[str] = None
    rows: List[Row] = field(default_factory=list)
    styles: Dict[str, Any] = field(default_factory=dict)
    anchor: Optional[str] = None


@dataclass
class PageDocument:
    sections: List[Section] = field(default_factory=list)
    global_styles: Dict[str, Any] = field(default_factory=dict)
    page_styles: Dict[str, Any] = field(default_factory=dict)


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _opt_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value).strip() or None


def _width(value: Any) -> float:
    try:
        width = float(value)
    except (TypeError, ValueError):
        return 12
    return width if 0 < width <= 12 else 12


def document_from_dict(data: Any) -> PageDocument:
    """
    Coerce stored JSON (camelCase keys) into a PageDocument.

    Accepts a dict or a JSON string. Anything unusable becomes an empty
    document rather than an error.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning("Stored page document is not valid JSON; rendering placeholder")
            return PageDocument()
    data = _dict(data)

    sections = []
    for s_index, raw_section in enumerate(_list(data.get("sections"))):
        rows = []
        for r_index, raw_row in enumerate(_list(raw_section.get("rows"))):
            columns = []
            for c_index, raw_column in enumerate(_list(raw_row.get("columns"))):
                elements = [
                    Element(
                        id=str(raw.get("id") or f"element-{s_index}-{r_index}-{c_index}-{e_index}"),
                        type=str(raw.get("type") or ""),
                        content=_dict(raw.get("content")),
                        styles=_dict(raw.get("styles")),
                        anchor=_opt_str(raw.get("anchor")),
                    )
                    for e_index, raw in enumerate(_list(raw_column.get("elements")))
                ]
                columns.append(Column(
                    id=str(raw_column.get("id") or f"column-{s_index}-{r_index}-{c_index}"),
                    width=_width(raw_column.get("width")),
                    custom_width=_opt_str(raw_column.get("customWidth")),
                    elements=elements,
                    styles=_dict(raw_column.get("styles")),
                    anchor=_opt_str(raw_column.get("anchor")),
                ))
            rows.append(Row(
                id=str(raw_row.get("id") or f"row-{s_index}-{r_index}"),
                columns=columns,
                styles=_dict(raw_row.get("styles")),
                anchor=_opt_str(raw_row.get("anchor")),
            ))
        sections.append(Section(
            id=str(raw_section.get("id") or f"section-{s_index}"),
            width=str(raw_section.get("width") or "full"),
            custom_width=_opt_str(raw_section.get("customWidth")),
            rows=rows,
            styles=_dict(raw_section.get("styles")),
            anchor=_opt_str(raw_section.get("anchor")),
        ))

    return PageDocument(
        sections=sections,
        global_styles=_dict(data.get("globalStyles")),
        page_styles=_dict(data.get("pageStyles")),
    )


# =============================================================================
# STYLES
# =============================================================================

_CAMEL_RE = re.compile(r"([A-Z])")

# Style keys that configure rendering rather than CSS
_NON_CSS_KEYS = frozenset({"topDivider", "bottomDivider", "backgroundImageMode", "backgroundOpacity"})

SECTION_WIDTH_CSS = {
    "full": "width: 100%;",
    "wide": "max-width: 1200px; margin-left: auto; margin-right: auto; padding-left: 1rem; padding-right: 1rem;",
    "medium": "max-width: 896px; margin-left: auto; margin-right: auto; padding-left: 1rem; padding-right: 1rem;",
    "small": "max-width: 672px; margin-left: auto; margin-right: auto; padding-left: 1rem; padding-right: 1rem;",
}

EMPTY_DOCUMENT_HTML = (
    '<div class="page-builder-empty"><p>This page is still being set up.</p></div>'
)


def _css_value(value: Any) -> str:
    # A value may not terminate its declaration or the surrounding tag
    return re.sub(r"[;{}<>]", "", str(value)).strip()


def styles_to_css(styles: Optional[Dict[str, Any]]) -> str:
    """
    Serialize a style map to inline CSS.

    camelCase keys become kebab-case; None and empty values are skipped.

    Examples:
        >>> styles_to_css({"backgroundColor": "#fff", "marginTop": "", "color": None})
        'background-color: #fff;'
    """
    if not styles:
        return ""

    declarations = []
    for key, value in styles.items():
        if key in _NON_CSS_KEYS or value is None or isinstance(value, (dict, list)):
            continue
        value = _css_value(value)
        if value == "":
            continue
        prop = _CAMEL_RE.sub(r"-\1", key).lower()
        declarations.append(f"{prop}: {value};")
    return " ".join(declarations)


def _style_attr(css: str) -> str:
    return f' style="{escape_html(css)}"' if css else ""


def _id_attr(anchor: Optional[str]) -> str:
    return f' id="{escape_html(anchor)}"' if anchor else ""


# =============================================================================
# SANITIZING
# =============================================================================

# Tenant rich text keeps formatting markup only; anything else is stripped
RICH_TEXT_TAGS = frozenset({
    "a", "b", "strong", "i", "em", "u", "s", "mark", "small", "sub", "sup",
    "br", "p", "span", "div", "blockquote", "code", "pre",
    "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "img",
})

RICH_TEXT_ATTRS = {
    "*": ["class", "style", "title"],
    "a": ["href", "target", "rel"],
    "img": ["src", "alt", "width", "height"],
}

ALLOWED_CSS_PROPERTIES = frozenset({
    "color", "background", "background-color",
    "font-size", "font-weight", "font-family", "font-style",
    "text-align", "text-decoration", "text-transform", "line-height",
    "letter-spacing", "white-space",
    "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
    "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
    "border", "border-radius", "border-color", "border-width", "border-style",
    "width", "max-width", "min-width", "height", "max-height", "min-height",
    "display", "flex-direction", "justify-content", "align-items", "gap",
    "opacity", "box-shadow", "transform", "object-fit",
})

CSS_SANITIZER = CSSSanitizer(allowed_css_properties=ALLOWED_CSS_PROPERTIES)

# bleach keeps the text of stripped tags; script bodies must go entirely
_SCRIPT_BLOCK_RE = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_SELECTOR_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def sanitize_rich_text(markup: Any) -> str:
    """Allowlist-clean tenant rich text (tags, attributes, inline CSS, URL schemes)."""
    if markup is None:
        return ""
    text = _SCRIPT_BLOCK_RE.sub("", str(markup))
    return bleach.clean(
        text,
        tags=RICH_TEXT_TAGS,
        attributes=RICH_TEXT_ATTRS,
        css_sanitizer=CSS_SANITIZER,
        strip=True,
    )


def sanitize_custom_css(css: Any) -> str:
    """
    Element custom CSS reduced to allowlisted declarations.

    The result is emitted inside ``#id { ... }``; braces and angle brackets
    never survive, so it cannot leave that rule or the style element.
    """
    if not css:
        return ""
    declarations = CSS_SANITIZER.sanitize_css(str(css))
    return re.sub(r"[{}<>]", "", declarations).strip()


def safe_url(value: Any, default: str = "#") -> str:
    """Escaped URL attribute value; script URLs are replaced by ``default``."""
    url = str(value).strip() if value else ""
    if not url:
        return escape_html(default)
    if re.sub(r"\s", "", url).lower().startswith(("javascript:", "vbscript:", "data:text")):
        return escape_html(default)
    return escape_html(url)


# =============================================================================
# ELEMENTS
# =============================================================================

HEADING_LEVELS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})


def _render_heading(el: Element, attrs: str) -> str:
    level = str(el.content.get("level") or "h2").lower()
    if level not in HEADING_LEVELS:
        level = "h2"
    return f"<{level}{attrs}>{sanitize_rich_text(el.content.get('text'))}</{level}>"


def _render_text(el: Element, attrs: str) -> str:
    return f"<p{attrs}>{sanitize_rich_text(el.content.get('text'))}</p>"


def _caption(el: Element) -> str:
    caption = el.content.get("caption")
    return f"<figcaption>{escape_html(caption)}</figcaption>" if caption else ""


def _render_image(el: Element, attrs: str) -> str:
    # Styles go on <img>; the wrapper only carries the id
    c = el.content
    src = safe_url(c.get("src") or c.get("url"), default="")
    alt = escape_html(c.get("alt") or "")
    image = f'<img src="{src}" alt="{alt}"{_style_attr(styles_to_css(el.styles))} />'
    if c.get("linkUrl"):
        target = "_blank" if c.get("linkTarget") == "_blank" else "_self"
        image = f'<a href="{safe_url(c.get("linkUrl"))}" target="{target}">{image}</a>'

    alignment = c.get("alignment")
    if alignment in ("center", "right"):
        return f'<div{attrs} style="text-align: {alignment};">{image}{_caption(el)}</div>'
    return f"<div{attrs}>{image}{_caption(el)}</div>"


def _render_button(el: Element, attrs: str) -> str:
    c = el.content
    target = "_blank" if c.get("target") == "_blank" else "_self"
    rel = ' rel="noopener noreferrer"' if target == "_blank" else ""
    return (
        f'<a href="{safe_url(c.get("url"))}" target="{target}"{rel}{attrs}>'
        f"{escape_html(c.get('text') or 'Button')}</a>"
    )


def _render_spacer(el: Element, attrs: str) -> str:
    return f"<div{attrs}></div>"


def _render_divider(el: Element, attrs: str) -> str:
    return f"<hr{attrs} />"


def _render_video(el: Element, attrs: str) -> str:
    src = safe_url(el.content.get("src") or el.content.get("url"), default="")
    return (
        f'<div{attrs}><video controls><source src="{src}" type="video/mp4">'
        f"Your browser does not support the video tag.</video>{_caption(el)}</div>"
    )


def _render_form(el: Element, attrs: str) -> str:
    c = el.content
    method = "GET" if str(c.get("method") or "POST").upper() == "GET" else "POST"
    parts = [f'<form action="{safe_url(c.get("action"))}" method="{method}"{attrs}>']
    for f in _list(c.get("fields")):
        kind = f.get("type")
        name = escape_html(f.get("name") or "")
        placeholder = escape_html(f.get("placeholder") or "")
        required = " required" if f.get("required") else ""
        if kind in ("text", "email", "tel", "number"):
            parts.append(f'<input type="{kind}" name="{name}" placeholder="{placeholder}"{required} />')
        elif kind == "textarea":
            parts.append(f'<textarea name="{name}" placeholder="{placeholder}"{required}></textarea>')
        elif kind == "submit":
            parts.append(f'<button type="submit">{escape_html(f.get("text") or "Submit")}</button>')
    parts.append("</form>")
    return "".join(parts)


def _render_social_links(el: Element, attrs: str) -> str:
    links = "".join(
        f'<a href="{safe_url(link.get("url"))}" target="_blank" rel="noopener noreferrer">'
        f"{escape_html(link.get('platform') or '')}</a>"
        for link in _list(el.content.get("links"))
    )
    return f"<div{attrs}>{links}</div>"


def _render_default(el: Element, attrs: str) -> str:
    return f"<div{attrs}>{escape_html(el.content.get('text') or '')}</div>"


ELEMENT_RENDERERS: Dict[str, Callable[[Element, str], str]] = {
    "heading": _render_heading,
    "text": _render_text,
    "image": _render_image,
    "button": _render_button,
    "spacer": _render_spacer,
    "divider": _render_divider,
    "video": _render_video,
    "form": _render_form,
    "social-links": _render_social_links,
}


def _element_id(el: Element) -> Optional[str]:
    """The id attribute: explicit anchor, or the element id when custom CSS needs a hook."""
    if el.anchor:
        return el.anchor
    if el.content.get("customCSS"):
        return el.id
    return None


def render_element(el: Element) -> str:
    element_id = _element_id(el)
    renderer = ELEMENT_RENDERERS.get(el.type, _render_default)

    attrs = _id_attr(element_id)
    if renderer is not _render_image:
        attrs += _style_attr(styles_to_css(el.styles))
    markup = renderer(el, attrs)

    css = sanitize_custom_css(el.content.get("customCSS"))
    if css and element_id and _SELECTOR_RE.match(element_id):
        markup = f"<style>#{element_id} {{ {css} }}</style>" + markup
    return markup


# =============================================================================
# LAYOUT
# =============================================================================


def _format_number(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def column_width(column: Column) -> str:
    """
    Examples:
        >>> column_width(Column(id="c", width=6))
        '50%'
    """
    if column.custom_width:
        return _css_value(column.custom_width)
    return f"{_format_number(column.width / 12 * 100)}%"


def render_column(column: Column) -> str:
    css = f"width: {column_width(column)};"
    extra = styles_to_css(column.styles)
    if extra:
        css = f"{css} {extra}"
    elements = "".join(render_element(el) for el in column.elements)
    return f"<div{_id_attr(column.anchor)}{_style_attr(css)}>{elements}</div>"


def render_row(row: Row) -> str:
    columns = "".join(render_column(col) for col in row.columns)
    return f'<div{_id_attr(row.anchor)} class="row"{_style_attr(styles_to_css(row.styles))}>{columns}</div>'


# SVG paths on a 1200x120 viewBox
DIVIDER_PATHS = {
    "smooth-wave": '<path d="M0,60 C300,120 600,0 900,60 C1050,90 1200,30 1200,60 L1200,120 L0,120 Z" />',
    "double-wave": (
        '<path d="M0,60 C200,20 400,100 600,60 C800,20 1000,100 1200,60 L1200,120 L0,120 Z" />'
        '<path d="M0,80 C200,40 400,120 600,80 C800,40 1000,120 1200,80 L1200,120 L0,120 Z" opacity="0.7" />'
    ),
    "mountain-wave": '<path d="M0,60 L200,20 L400,80 L600,10 L800,90 L1000,30 L1200,60 L1200,120 L0,120 Z" />',
    "angle-left": '<path d="M0,0 L1200,120 L1200,0 Z" />',
    "angle-right": '<path d="M0,120 L1200,0 L1200,120 Z" />',
    "tilted-cut": '<path d="M0,40 L1200,80 L1200,120 L0,120 Z" />',
    "top-curve": '<path d="M0,60 C300,0 600,0 900,60 C1050,90 1200,30 1200,60 L1200,120 L0,120 Z" />',
    "bottom-curve": '<path d="M0,0 L1200,0 L1200,60 C1050,30 900,90 600,60 C300,0 0,0 0,60 Z" />',
    "half-circle": '<path d="M0,60 C0,26.9 26.9,0 60,0 L1140,0 C1173.1,0 1200,26.9 1200,60 L1200,120 L0,120 Z" />',
    "triangle": '<path d="M0,0 L600,120 L1200,0 Z" />',
    "chevron": '<path d="M0,60 L200,0 L400,60 L600,0 L800,60 L1000,0 L1200,60 L1200,120 L0,120 Z" />',
    "zigzag": (
        '<path d="M0,60 L100,20 L200,80 L300,40 L400,100 L500,60 L600,20 L700,80 '
        'L800,40 L900,100 L1000,60 L1100,20 L1200,80 L1200,120 L0,120 Z" />'
    ),
}
DEFAULT_DIVIDER = "smooth-wave"


def render_section_divider(divider: Any, position: str) -> str:
    """Decorative SVG edge for a section; '' unless enabled."""
    divider = _dict(divider)
    if not divider.get("enabled"):
        return ""

    path = DIVIDER_PATHS.get(divider.get("type"), DIVIDER_PATHS[DEFAULT_DIVIDER])
    try:
        height = max(0, int(divider.get("height", 100)))
    except (TypeError, ValueError):
        height = 100
    color = _css_value(divider.get("color") or "#ffffff")

    transforms = []
    if divider.get("flip"):
        transforms.append("scaleX(-1)")
    if divider.get("invert"):
        transforms.append("scaleY(-1)")
    transform = f" transform: {' '.join(transforms)};" if transforms else ""

    container = (
        f"position: absolute; {position}: 0; left: 0; right: 0; width: 100%; "
        f"height: {height}px; z-index: 1; pointer-events: none;"
    )
    svg = f"width: 100%; height: {height}px;{transform} fill: {color};"
    return (
        f"<div{_style_attr(container)}>"
        f'<svg viewBox="0 0 1200 120" preserveAspectRatio="none"{_style_attr(svg)}>{path}</svg>'
        "</div>"
    )


def section_width_css(section: Section) -> str:
    if section.custom_width:
        return f"width: {_css_value(section.custom_width)}; margin-left: auto; margin-right: auto;"
    return SECTION_WIDTH_CSS.get(section.width, SECTION_WIDTH_CSS["full"])


def render_section(section: Section) -> str:
    top = render_section_divider(section.styles.get("topDivider"), "top")
    bottom = render_section_divider(section.styles.get("bottomDivider"), "bottom")

    css = section_width_css(section)
    if top or bottom:
        css += " position: relative;"
    extra = styles_to_css(section.styles)
    if extra:
        css = f"{css} {extra}"

    width_class = "section-custom" if section.custom_width else f"section-{section.width}"
    if not section.custom_width and section.width not in SECTION_WIDTH_CSS:
        width_class = "section-full"

    rows = "".join(render_row(row) for row in section.rows)
    return (
        f'<section{_id_attr(section.anchor)} class="{escape_html(width_class)}"{_style_attr(css)}>'
        f"{top}{rows}{bottom}</section>"
    )


# =============================================================================
# DOCUMENT
# =============================================================================


def _style_block(global_css: str) -> str:
    rules = [
        ".row { display: flex; flex-wrap: wrap; gap: 1rem; }",
        "@media (max-width: 768px) { .row { flex-direction: column; } .row > div { width: 100% !important; } }",
    ]
    if global_css:
        rules.append(f".page-builder-content {{ {global_css} }}")
    return "<style>" + " ".join(rules) + "</style>"


def render_document(doc: Any) -> str:
    """
    Render a page document (PageDocument, dict or JSON string) to HTML.

    Empty documents render a placeholder. Never raises for malformed input.
    """
    if not isinstance(doc, PageDocument):
        doc = document_from_dict(doc)

    if not doc.sections:
        return EMPTY_DOCUMENT_HTML

    sections = "".join(render_section(section) for section in doc.sections)
    page_css = styles_to_css(doc.page_styles)
    return (
        _style_block(styles_to_css(doc.global_styles))
        + f'<div class="page-builder-content"{_style_attr(page_css)}>{sections}</div>'
    )
