"""URL normalization and validation helpers."""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit

from magic_cards_server.core.errors import ValidationFailure

_HAS_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_STARTS_WWW = re.compile(r"^www\.", re.IGNORECASE)

TRACKING_URL = "https://t.17track.net/en#nums={number}"


def normalize_url(url: str) -> str:
    """Ensure a URL carries an http(s) scheme when it looks like a domain."""
    if not url:
        return ""
    trimmed = url.strip()
    if _HAS_SCHEME.match(trimmed):
        return trimmed
    if _STARTS_WWW.match(trimmed):
        return f"https://{trimmed}"
    if "." in trimmed and " " not in trimmed:
        return f"https://{trimmed}"
    return trimmed


def is_valid_url(url: str) -> bool:
    if not url:
        return False
    normalized = normalize_url(url)
    if " " in normalized:
        return False
    parts = urlsplit(normalized)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def clean_link(value: str) -> str:
    """Normalize an optional link field; blank stays blank."""
    if not value.strip():
        return ""
    normalized = normalize_url(value)
    if not is_valid_url(normalized):
        raise ValidationFailure(
            "Please enter a valid URL (e.g., https://example.com/file)"
        )
    return normalized


def clean_linkedin_url(value: str) -> str:
    if not value.strip():
        return ""
    normalized = normalize_url(value)
    if not is_valid_url(normalized):
        raise ValidationFailure(
            "Please enter a valid URL (e.g., https://linkedin.com/in/username)"
        )
    if "linkedin.com" not in normalized.lower():
        raise ValidationFailure("Please enter a LinkedIn URL")
    return normalized


def tracking_url(tracking_number: str) -> str | None:
    if not tracking_number.strip():
        return None
    return TRACKING_URL.format(number=quote(tracking_number.strip(), safe=""))
