"""URL slug normalization used for tenant keys."""

import re
import unicodedata

_INVALID_CHARS = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")
_SEPARATOR_RUNS = re.compile(r"([-_]){2,}")


def remove_accents(text: str) -> str:
    """Strip combining marks after NFD decomposition ("Café" -> "Cafe")."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def to_url_slug(text: str | None) -> str:
    """
    Normalize free text into a URL-safe slug.

    Examples:
        to_url_slug("Acme Academy") -> "acme-academy"
        to_url_slug("  Ça--va__bien ") -> "ca-va_bien"
    """
    if not text:
        return ""

    value = remove_accents(text.lower())
    value = _INVALID_CHARS.sub("", value)
    value = _WHITESPACE.sub("-", value.strip())
    value = value.strip("-_")
    # A run of separators collapses to its last character
    return _SEPARATOR_RUNS.sub(r"\1", value)
