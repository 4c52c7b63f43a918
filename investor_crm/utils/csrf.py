"""
CSRF Protection
Double-submit cookie tokens for cookie-authenticated requests
"""
import hashlib
import hmac
import secrets
from typing import Optional

CSRF_TOKEN_LENGTH = 32
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def generate_csrf_token() -> str:
    """32 random bytes, hex encoded (64 characters)."""
    return secrets.token_hex(CSRF_TOKEN_LENGTH)


def _hash_token(token: str) -> bytes:
    return hashlib.sha256(token.encode("utf-8")).digest()


def validate_csrf_token(cookie_token: Optional[str], header_token: Optional[str]) -> bool:
    """
    Both tokens must be present and identical.
    Compares SHA-256 digests in constant time.
    """
    if not cookie_token or not header_token:
        return False
    return hmac.compare_digest(_hash_token(cookie_token), _hash_token(header_token))


def is_safe_method(method: str) -> bool:
    return method.upper() in SAFE_METHODS
