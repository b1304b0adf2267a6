"""Canonicalization applied before indexing and encryption.

Writers and readers must share one implementation, otherwise an index written
by one path silently never matches a lookup from another. The email and phone
variants are therefore aliases of ``normalize`` rather than separate rules.
"""

from __future__ import annotations

import unicodedata
from urllib.parse import urlsplit

LINKEDIN_ORIGIN = "https://www.linkedin.com"


def normalize(raw: str) -> str:
    """NFC-compose, trim, and lowercase a raw value.

    Total and idempotent: ``normalize(normalize(s)) == normalize(s)``.
    """
    composed = unicodedata.normalize("NFC", raw).strip().lower()
    # lower() can emit decomposed sequences (e.g. for "İ"), recompose them
    return unicodedata.normalize("NFC", composed)


normalize_email = normalize
normalize_phone = normalize


def is_blank(value: str | None) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or not value.strip()


def clean_optional(value: str | None) -> str | None:
    """Trim a raw optional input, mapping blank input to None."""
    if is_blank(value):
        return None
    assert value is not None
    return value.strip()


def canonicalize_linkedin_url(raw: str | None) -> str | None:
    """Canonicalize a LinkedIn profile URL.

    Returns ``https://www.linkedin.com/<path>`` lowercased, without query,
    fragment or trailing slashes, or None when the input is not a LinkedIn URL.
    """
    value = (raw or "").strip()
    if not value:
        return None
    if "://" not in value:
        value = f"https://{value}"

    try:
        parts = urlsplit(value)
        host = (parts.hostname or "").lower()
    except ValueError:
        return None

    if parts.scheme.lower() not in ("http", "https"):
        return None
    if host != "linkedin.com" and not host.endswith(".linkedin.com"):
        return None

    path = parts.path.rstrip("/")
    if not path:
        return None
    return normalize(f"{LINKEDIN_ORIGIN}{path}")
