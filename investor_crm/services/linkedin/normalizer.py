"""
Company Name Normalization
Canonical form of company names for fuzzy matching
"""
import re
from typing import Set

_LEGAL_SUFFIX_RE = re.compile(
    r"\b(inc|incorporated|corp|corporation|llc|llp|ltd|limited|co|company|pllc|lp|plc"
    r"|group|partners|holdings|capital|management|advisors|advisory)\b\.?\s*$",
    re.IGNORECASE,
)
_PUNCTUATION = r"[.,/#!$%\^&*;:{}=\-_`~()]"
_TRAILING_PUNCT_RE = re.compile(_PUNCTUATION + r"+$")
_PUNCT_RE = re.compile(_PUNCTUATION)
_WHITESPACE_RE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def normalize_company_name(name: str) -> str:
    """
    Normalize a company name for comparison.

    Examples:
        "Microsoft Corporation"      → "microsoft"
        "Goldman Sachs Group, Inc."  → "goldman sachs group"
        "Andreessen Horowitz"        → "andreessen horowitz"

    Only one trailing legal suffix is removed, so "Sequoia Capital LLC"
    keeps "capital".
    """
    if not name:
        return ""

    text = name.lower().strip()
    text = _LEGAL_SUFFIX_RE.sub("", text)
    text = _TRAILING_PUNCT_RE.sub("", text)
    text = _PUNCT_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_company_tokens(normalized: str) -> Set[str]:
    """Meaningful words (>= 3 chars) of an already-normalized name."""
    return {word for word in normalized.split(" ") if len(word) >= MIN_TOKEN_LENGTH}
