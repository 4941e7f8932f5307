"""
Turn raw Gmail message resources into EmailMessage objects.

Gmail message structure is awkward: headers are a list of name/value
pairs, the body may sit on the payload or in one of its parts, and
content is url-safe base64. Nothing in here raises on bad input; a body
that can't be decoded becomes an empty string.
"""
import base64
import binascii
import re
import time
from typing import List, Optional

from app.models.email import EmailMessage
from app.utils.logger import get_logger

logger = get_logger(__name__)

PREVIEW_LENGTH = 420

_ZERO_WIDTH_ENTITIES = re.compile(r"&(zwj|zwnj);|&#820[45];", re.IGNORECASE)
_ZERO_WIDTH_CHARS = re.compile("[\u200b-\u200f\ufeff]+")
_CONTROL_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_WHITESPACE = re.compile(r"\s+")


def get_header(headers: List[dict], name: str) -> str:
    """Case-insensitive exact-name header lookup. Missing header gives ""."""
    wanted = name.lower()
    for header in headers or []:
        if str(header.get("name", "")).lower() == wanted:
            return header.get("value") or ""
    return ""


def strip_zero_width(value: str) -> str:
    value = _ZERO_WIDTH_ENTITIES.sub("", value)
    return _ZERO_WIDTH_CHARS.sub("", value)


def normalize_whitespace(value: str) -> str:
    """Clean up line endings and invisible characters in plain text."""
    if not value:
        return ""
    value = strip_zero_width(value)
    value = value.replace("\r\n", "\n")
    value = value.replace("\u00a0", " ")
    value = _CONTROL_CHARS.sub(" ", value)
    value = _TRAILING_SPACE.sub("\n", value)
    value = _EXTRA_NEWLINES.sub("\n\n", value)
    return value.strip()


def build_preview(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()[:PREVIEW_LENGTH]


def _body_data(part: Optional[dict]) -> Optional[str]:
    if not isinstance(part, dict):
        return None
    return (part.get("body") or {}).get("data")


def _pick_body_data(payload: dict) -> Optional[str]:
    """
    Choose which encoded body to show.

    Order: the payload's own body, then the first text/html part, then the
    first text/plain part, then whatever the first part holds. A nested
    multipart first part is searched the same way.
    """
    direct = _body_data(payload)
    if direct:
        return direct

    parts = [part for part in payload.get("parts") or [] if isinstance(part, dict)]
    for mime_type in ("text/html", "text/plain"):
        match = next((part for part in parts if part.get("mimeType") == mime_type), None)
        data = _body_data(match)
        if data:
            return data

    if not parts:
        return None
    if parts[0].get("parts"):
        return _pick_body_data(parts[0])
    return _body_data(parts[0])


def decode_body(data: Optional[str]) -> str:
    """
    Decode base64url-encoded body data.

    Gmail uses URL-safe base64 without padding.
    """
    if not data:
        return ""
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.warning(f"Failed to decode body: {type(e).__name__}")
        return ""


def _internal_date(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(time.time() * 1000)


def normalize(message: dict) -> EmailMessage:
    """
    Parse Gmail API message into an EmailMessage.

    Args:
        message: Raw Gmail API message resource (format=full)

    Returns:
        Normalized, immutable EmailMessage
    """
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []

    raw_body = decode_body(_pick_body_data(payload))
    normalized_body = normalize_whitespace(raw_body)
    snippet = message.get("snippet") or ""
    normalized_snippet = normalize_whitespace(snippet)

    return EmailMessage(
        id=message["id"],
        thread_id=message.get("threadId") or "",
        subject=get_header(headers, "Subject") or "(No subject)",
        from_=get_header(headers, "From") or "Unknown sender",
        to=get_header(headers, "To"),
        snippet=snippet,
        raw_body=raw_body,
        plain_text_body=normalized_body or normalized_snippet,
        preview=build_preview(normalized_body or normalized_snippet or snippet),
        date=get_header(headers, "Date"),
        internal_date=_internal_date(message.get("internalDate")),
        label_ids=list(message.get("labelIds") or []),
    )
