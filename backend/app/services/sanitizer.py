"""
Display-time rendering of message bodies.

Message bodies are attacker-controlled. HTML bodies go through an
allow-list sanitizer before they reach the browser; everything else is
escaped and wrapped in paragraphs. The stored EmailMessage.raw_body is
never modified.
"""
import html
import re
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import PreformattedString

from app.models.email import EmailDisplay
from app.services.normalizer import normalize_whitespace, strip_zero_width
from app.utils.logger import get_logger

logger = get_logger(__name__)

NO_PREVIEW_HTML = "<p>No preview available.</p>"

# Removed together with everything inside them
REMOVED_TAGS = [
    "script", "style", "link", "meta", "title", "iframe", "object", "embed",
    "form", "head", "noscript", "svg", "math", "template", "frame",
    "frameset", "base",
]

ALLOWED_TAGS = {
    "a", "abbr", "b", "blockquote", "br", "code", "div", "dl", "dt", "dd",
    "em", "figure", "figcaption", "hr", "h1", "h2", "h3", "h4", "h5", "h6",
    "img", "i", "li", "ol", "p", "pre", "span", "strong", "table", "tbody",
    "td", "th", "thead", "tr", "ul",
}

ALLOWED_ATTRIBUTES = {
    "a": ("href", "title"),
    "img": ("src", "alt", "width", "height", "loading"),
    "td": ("colspan", "rowspan"),
    "th": ("colspan", "rowspan"),
}

_HTML_TAG = re.compile(r"<[^>]+>")
_URL_NOISE = re.compile(r"[\x00-\x20\x7f]")
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
_DATA_IMAGE = re.compile(r"^data:image/", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*\+?(\d+)")
_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_WHITESPACE = re.compile(r"\s+")


def looks_like_html(value: str) -> bool:
    return bool(_HTML_TAG.search(value or ""))


def _clean_url(value) -> str:
    # Browsers ignore whitespace and control characters inside the scheme
    if not isinstance(value, str):
        return ""
    return _URL_NOISE.sub("", value)


def _positive_int(value) -> Optional[str]:
    match = _LEADING_INT.match(value) if isinstance(value, str) else None
    if not match:
        return None
    number = int(match.group(1))
    return str(number) if number > 0 else None


def _sanitize_link(tag) -> None:
    href = _clean_url(tag.get("href"))
    if not _HTTP_URL.match(href):
        tag.attrs.pop("href", None)
        return
    tag["href"] = href
    tag["target"] = "_blank"
    tag["rel"] = "noopener noreferrer"


def _sanitize_image(tag) -> None:
    src = _clean_url(tag.get("src"))
    if not (_HTTP_URL.match(src) or _DATA_IMAGE.match(src)):
        tag.decompose()
        return
    tag["src"] = src

    for name in ("width", "height"):
        if name in tag.attrs:
            size = _positive_int(tag[name])
            if size is None:
                del tag[name]
            else:
                tag[name] = size

    loading = str(tag.get("loading", "")).lower()
    tag["loading"] = loading if loading in ("lazy", "auto") else "lazy"


def _sanitize_cell(tag) -> None:
    for name in ("colspan", "rowspan"):
        if name in tag.attrs:
            span = _positive_int(tag[name])
            if span is None:
                del tag[name]
            else:
                tag[name] = span


def sanitize_html(raw_html: str) -> str:
    """
    Reduce untrusted HTML to the allow-listed subset.

    Returns "" when nothing displayable survives.
    """
    soup = BeautifulSoup(raw_html, "html.parser")

    for tag in soup.find_all(REMOVED_TAGS):
        # nested removed tags go with their ancestor
        if not tag.decomposed:
            tag.decompose()
    # comments, CDATA, doctypes, declarations and processing instructions
    for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        node.extract()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        name = tag.name.lower()
        if name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        allowed = ALLOWED_ATTRIBUTES.get(name, ())
        for attr in list(tag.attrs):
            if attr.lower() not in allowed:
                del tag[attr]

        if name == "a":
            _sanitize_link(tag)
        elif name == "img":
            _sanitize_image(tag)
        elif name in ("td", "th"):
            _sanitize_cell(tag)

    if not soup.get_text().strip() and soup.find("img") is None:
        return ""
    return strip_zero_width(str(soup)).strip()


def extract_text_content(sanitized_html: str) -> str:
    if not sanitized_html:
        return ""
    text = BeautifulSoup(sanitized_html, "html.parser").get_text(" ")
    return _WHITESPACE.sub(" ", text).strip()


def render_plain_text_as_html(text: str) -> str:
    """Escape plain text and wrap each blank-line separated block in <p>."""
    if not text:
        return ""
    paragraphs = _PARAGRAPH_BREAK.split(strip_zero_width(text))
    return "".join(
        "<p>" + html.escape(paragraph).replace("\n", "<br />") + "</p>"
        for paragraph in paragraphs
        if paragraph
    )


def format_body_for_display(raw_body: Optional[str], snippet: Optional[str]) -> EmailDisplay:
    """
    Render a message body for the browser.

    HTML bodies are sanitized; plain text, and HTML with nothing safe
    left, is escaped. Falls back to the snippet, then to a fixed
    placeholder.
    """
    body = (raw_body or "").strip()
    normalized_snippet = normalize_whitespace(snippet or "")

    if body and looks_like_html(body):
        try:
            sanitized = sanitize_html(body)
        except Exception as e:
            logger.warning(f"Failed to sanitize HTML email body: {type(e).__name__}")
            sanitized = ""
        if sanitized:
            return EmailDisplay(
                html=sanitized,
                text=extract_text_content(sanitized) or normalized_snippet,
            )

    if body:
        normalized = normalize_whitespace(body)
        if normalized:
            return EmailDisplay(html=render_plain_text_as_html(normalized), text=normalized)

    if normalized_snippet:
        return EmailDisplay(html=render_plain_text_as_html(normalized_snippet), text=normalized_snippet)

    return EmailDisplay(html=NO_PREVIEW_HTML, text="")
