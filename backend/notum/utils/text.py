"""Text processing helpers."""

from __future__ import annotations

import re
from urllib.parse import urlparse

UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9]")


def word_count(text: str | None) -> int:
    if not text:
        return 0
    return len(text.split())


def extract_domain(url: str) -> str:
    """Return the hostname of ``url``, or the url itself when it has none."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return url
    return hostname or url


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def safe_filename(name: str) -> str:
    """Replace anything outside ``[a-zA-Z0-9]`` with underscores."""
    return UNSAFE_FILENAME_RE.sub("_", name)
