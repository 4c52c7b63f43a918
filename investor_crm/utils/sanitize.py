"""
Input Sanitization
HTML stripping and format checks for user-supplied text
"""
import re
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

ALLOWED_TAGS = frozenset({
    "b", "i", "em", "strong", "a", "p", "br", "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "code", "pre",
})
ALLOWED_ATTRS = frozenset({"href", "target", "rel"})

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_text(text: str) -> str:
    """Strip all HTML, keeping only the text content."""
    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text()


def sanitize_html(html: str) -> str:
    """
    Keep a small set of formatting tags.

    Disallowed tags are unwrapped (their text survives), script/style are
    removed entirely, and only href/target/rel attributes are kept.
    javascript: links are dropped.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "iframe", "object", "embed"]):
        tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        for attr in list(tag.attrs):
            if attr not in ALLOWED_ATTRS:
                del tag.attrs[attr]
        href = tag.attrs.get("href")
        if href and href.strip().lower().startswith(("javascript:", "data:", "vbscript:")):
            del tag.attrs["href"]

    return str(soup)


def sanitize_object(obj: Any, allow_html: Optional[Iterable[str]] = None) -> Any:
    """Recursively sanitize string values; keys in allow_html keep safe HTML."""
    allowed = set(allow_html or ())

    if isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            if isinstance(value, str):
                result[key] = sanitize_html(value) if key in allowed else sanitize_text(value)
            else:
                result[key] = sanitize_object(value, allowed)
        return result

    if isinstance(obj, list):
        return [sanitize_text(item) if isinstance(item, str) else sanitize_object(item, allowed) for item in obj]

    return obj


def is_valid_email(email: str) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def is_valid_url(url: str) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def sanitize_sql_input(value: str) -> str:
    """Last-resort filter; all queries go through parameterized PostgREST calls."""
    value = re.sub(r"['\";\\]", "", value)
    return value.replace("--", "").replace("/*", "").replace("*/", "")


def escape_like(value: str) -> str:
    """Escape PostgREST ilike wildcards and filter separators in a search term."""
    return re.sub(r"([%_,()*\\])", r"\\\1", value)
