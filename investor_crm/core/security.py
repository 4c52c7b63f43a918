"""
Security and Authentication
Handles JWT validation, roles and scheduler secrets

SECURITY FEATURES:
- JWT validation via Supabase
- Role read from the `user_roles` table (cached), falling back to the
  `user_role` claim written by the custom access token hook
- Timing-safe comparison for the cron secret
"""
import logging
import hmac
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from investor_crm.core.dependencies import get_supabase, get_supabase_admin
from investor_crm.core.config import settings
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

# Security schemes
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

ROLES = ("admin", "member")
DEFAULT_ROLE = "member"
ROLE_CACHE_TTL = 60


# ============================================================================
# ROLE EXTRACTION
# ============================================================================

def extract_role(token: str, user=None) -> str:
    """
    Read the application role for a validated token.

    The access token hook writes `user_role` into the JWT. Older sessions may
    only carry it in app_metadata/user_metadata. Anything unrecognised is a
    member.
    """
    role = None
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
        role = claims.get("user_role")
    except jwt.PyJWTError as e:
        logger.warning(f"Failed to decode JWT claims: {e}")

    if not role and user is not None:
        app_metadata = getattr(user, "app_metadata", None) or {}
        user_metadata = getattr(user, "user_metadata", None) or {}
        role = app_metadata.get("role") or user_metadata.get("role")

    return role if role in ROLES else DEFAULT_ROLE


def lookup_role(supabase_admin: Client, user_id: str) -> Optional[str]:
    """
    Role stored in `user_roles`, cached for ROLE_CACHE_TTL seconds.

    Returns None when the user has no row or the lookup fails, so the caller
    falls back to the token claims. Admin role changes delete the cache entry.
    """
    key = CacheKeys.user_role(user_id)
    stored = cache.get(key)
    if stored is not None:
        return stored or None

    try:
        result = supabase_admin.table("user_roles")\
            .select("role")\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
    except Exception as e:
        logger.warning(f"⚠️  Role lookup failed for {user_id[:8]}...: {e}")
        return None

    role = result.data.get("role") if result and result.data else None
    role = role if role in ROLES else None
    cache.set(key, role or "", ttl=ROLE_CACHE_TTL)
    return role


# ============================================================================
# JWT AUTHENTICATION (Supabase)
# ============================================================================

async def get_current_user_context(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin),
) -> dict:
    """
    Validate the bearer token and return the caller.

    Returns:
        dict with user_id, email and role ("admin" or "member")
    """
    if not credentials:
        raise HTTPException(status_code=401, detail="Authorization header required")

    token = credentials.credentials

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise HTTPException(status_code=401, detail="Invalid authentication token")

        user = response.user
        role = lookup_role(supabase_admin, user.id) or extract_role(token, user)
        logger.debug(f"✅ Authenticated user: {user.id[:8]}... (role: {role})")

        return {
            "user_id": user.id,
            "email": user.email,
            "role": role,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Authentication failed: {e}")
        raise HTTPException(status_code=401, detail="Authentication failed")


async def get_current_user_id(
    user: dict = Depends(get_current_user_context)
) -> str:
    """Validate JWT and return only the user ID."""
    return user["user_id"]


async def require_admin(
    user: dict = Depends(get_current_user_context)
) -> dict:
    """Allow only callers with the admin role."""
    if user.get("role") != "admin":
        logger.warning(f"Admin access denied for user {user['user_id'][:8]}...")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# ============================================================================
# CRON SECRET (scheduler-triggered endpoints)
# ============================================================================

async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme)
) -> bool:
    """
    Verify the bearer secret sent by the scheduler.

    Production deployment MUST have CRON_SECRET configured.
    """
    if not settings.cron_secret:
        if settings.is_production:
            logger.error("CRITICAL: CRON_SECRET not configured in production!")
            raise HTTPException(status_code=500, detail="Server misconfiguration - contact administrator")
        logger.warning("DEV MODE: CRON_SECRET not configured - authentication bypassed")
        return True

    if not credentials or not hmac.compare_digest(credentials.credentials, settings.cron_secret):
        logger.warning("Invalid cron secret attempt")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return True
