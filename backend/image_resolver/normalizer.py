"""
Query Normalization

Turns the raw request path into the cache key (NormalizedQuery) and the
blob key (content digest). Both functions are pure.
"""

import hashlib
import re
from urllib.parse import unquote_to_bytes

# A '%' not followed by two hex digits
_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f]")
# Trailing slashes, plus any whitespace they leave exposed
_TRAILING_SEPARATORS_RE = re.compile(r"[/\s]+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _percent_decode(raw: str) -> str:
    """
    Decode %XX escapes as UTF-8, treating '+' as a space.

    Raises:
        ValueError: malformed escape or invalid UTF-8
    """
    if _MALFORMED_ESCAPE_RE.search(raw):
        raise ValueError("malformed percent escape")
    return unquote_to_bytes(raw.replace("+", " ")).decode("utf-8")


def normalize_query(raw_path: str) -> str:
    """
    Canonicalize a raw request path into a cache key.

    Steps: percent-decode (raw string on failure), lower-case, trim,
    drop ASCII control characters, drop trailing slashes, collapse
    whitespace runs.

    Returns:
        The normalized query, or "" when nothing is left.
    """
    try:
        text = _percent_decode(raw_path)
    except ValueError:
        text = raw_path

    text = text.lower().strip()
    text = _CONTROL_CHARS_RE.sub("", text)
    text = _TRAILING_SEPARATORS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def content_digest(query: str) -> str:
    """SHA-256 hex digest of the normalized query (blob store key)."""
    return hashlib.sha256(query.encode("utf-8")).hexdigest()
