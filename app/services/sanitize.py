# app/services/sanitize.py - Character-set sanitizers for free-text student fields
"""
Sanitizers are total: they never raise, they drop characters outside the
field's allowed set and truncate to the field's maximum length. Each one is
idempotent, so running it on already sanitized input is a no-op.
"""
import html
import re
from html.parser import HTMLParser

from app.core.constants import (
    NAME_MAX_LENGTH,
    ADDRESS_MAX_LENGTH,
    ADMISSION_NO_MAX_LENGTH,
    CONTACT_SANITIZED_MAX_LENGTH,
    GENERIC_INPUT_MAX_LENGTH,
)

_HTML_SIGNIFICANT = re.compile(r"[<>&\"']")
_WHITESPACE_RUN = re.compile(r"\s+", re.ASCII)

_NAME_DISALLOWED = re.compile(r"[^a-zA-Z\s.'-]", re.ASCII)
_ADDRESS_DISALLOWED = re.compile(r"[^\w\s.,#-]", re.ASCII)
_CONTACT_DISALLOWED = re.compile(r"[^0-9+\-() ]")
_ADMISSION_DISALLOWED = re.compile(r"[^A-Za-z0-9\-/]")

_DANGEROUS_SEQUENCES = (
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+=", re.IGNORECASE),
    re.compile(r"expression\(", re.IGNORECASE),
)


def _cap(value: str, limit: int) -> str:
    # Truncation can expose a trailing space, strip again so a second pass is a no-op
    return value[:limit].strip()


def sanitize_name(name: str) -> str:
    """Only letters, spaces, dots, apostrophes and hyphens survive."""
    cleaned = _NAME_DISALLOWED.sub("", name or "")
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
    return _cap(cleaned, NAME_MAX_LENGTH)


def sanitize_address(address: str) -> str:
    """Word characters, whitespace and common address punctuation (. , # -)."""
    cleaned = _HTML_SIGNIFICANT.sub("", address or "")
    cleaned = _ADDRESS_DISALLOWED.sub("", cleaned)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
    return _cap(cleaned, ADDRESS_MAX_LENGTH)


def sanitize_contact_number(contact: str) -> str:
    cleaned = _CONTACT_DISALLOWED.sub("", contact or "").strip()
    return _cap(cleaned, CONTACT_SANITIZED_MAX_LENGTH)


def sanitize_admission_number(admission_no: str) -> str:
    cleaned = _ADMISSION_DISALLOWED.sub("", admission_no or "")
    return cleaned[:ADMISSION_NO_MAX_LENGTH]


def sanitize_input(value: str) -> str:
    """
    Generic text sanitizer for fields without a dedicated rule.

    Removes HTML-significant characters, ``javascript:`` URLs, inline event
    handler attributes and CSS expressions. Removal is repeated until stable so
    that fragments cannot be spliced back into a dangerous sequence.
    """
    cleaned = _HTML_SIGNIFICANT.sub("", value or "")
    previous = None
    while previous != cleaned:
        previous = cleaned
        for pattern in _DANGEROUS_SEQUENCES:
            cleaned = pattern.sub("", cleaned)
    return _cap(cleaned.strip(), GENERIC_INPUT_MAX_LENGTH)


class _TextExtractor(HTMLParser):
    """Collects text nodes, dropping tags, attributes and script/style bodies."""

    _SKIPPED_CONTENT = {"script", "style", "template", "noscript", "iframe"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._parts = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIPPED_CONTENT:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in self._SKIPPED_CONTENT and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self._parts.append(data)

    @property
    def text(self) -> str:
        return "".join(self._parts)


def sanitize_html(dirty: str, strip_markup: bool = True) -> str:
    """
    Make untrusted HTML safe to embed.

    With ``strip_markup`` the input is parsed and only its text content is
    kept; the text is re-escaped so entities decoded by the parser cannot turn
    back into markup. Without it every ``& < > " '`` is entity-escaped.
    """
    dirty = dirty or ""
    if not strip_markup:
        return html.escape(dirty, quote=True)

    parser = _TextExtractor()
    parser.feed(dirty)
    parser.close()
    return html.escape(parser.text, quote=False)


__all__ = [
    "sanitize_name",
    "sanitize_address",
    "sanitize_contact_number",
    "sanitize_admission_number",
    "sanitize_input",
    "sanitize_html",
]
