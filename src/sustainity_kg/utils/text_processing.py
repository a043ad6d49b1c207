"""Text processing utilities."""

import html
import re
import unicodedata
from urllib.parse import urlparse

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    Normalize a label, alias or description.

    Unescapes HTML entities, applies NFC normalization and collapses
    whitespace.

    Args:
        text: Raw text to normalize

    Returns:
        Normalized text
    """
    if not text:
        return ""

    text = html.unescape(text)
    text = unicodedata.normalize("NFC", text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_domain(url: str) -> str | None:
    """
    Extract the host name of a website without the ``www.`` prefix.

    Args:
        url: Website URL, with or without a scheme

    Returns:
        Lowercased domain, or None if the URL has no host
    """
    if not url or not url.strip():
        return None

    url = url.strip()
    if "://" not in url:
        url = f"http://{url}"

    try:
        host = urlparse(url).hostname
    except ValueError:
        return None

    if not host:
        return None

    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[len("www.") :]
    return host or None
