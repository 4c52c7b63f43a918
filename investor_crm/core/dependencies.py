"""
Dependency Injection
Provides global clients and services to routes via FastAPI dependencies

- supabase_client: anon key, row level security applies
- supabase_admin_client: service role, used for storage, audit and webhooks
"""
from typing import Optional
import logging
import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from supabase import Client, create_client

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)

# ============================================================================
# GLOBAL CLIENTS (initialized at startup)
# ============================================================================

http_client: Optional[httpx.AsyncClient] = None
supabase_client: Optional[Client] = None
supabase_admin_client: Optional[Client] = None
anthropic_client: Optional[AsyncAnthropic] = None
openai_client: Optional[AsyncOpenAI] = None


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================

async def get_http_client() -> httpx.AsyncClient:
    """Get global HTTP client."""
    if not http_client:
        raise RuntimeError("HTTP client not initialized")
    return http_client


async def get_supabase() -> Client:
    """Get Supabase client (anon key)."""
    if not supabase_client:
        raise RuntimeError("Supabase client not initialized")
    return supabase_client


async def get_supabase_admin() -> Client:
    """
    Get Supabase service-role client.
    Falls back to the anon client when no service key is configured.
    """
    if supabase_admin_client:
        return supabase_admin_client
    return await get_supabase()


def get_anthropic() -> Optional[AsyncAnthropic]:
    """Anthropic client, or None when ANTHROPIC_API_KEY is not set."""
    return anthropic_client


def get_openai() -> Optional[AsyncOpenAI]:
    """OpenAI client, or None when OPENAI_API_KEY is not set."""
    return openai_client


# ============================================================================
# STARTUP/SHUTDOWN
# ============================================================================

async def initialize_clients():
    """Initialize all global clients at startup."""
    global http_client, supabase_client, supabase_admin_client, anthropic_client, openai_client

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(30.0),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=20)
    )

    if not settings.supabase_url or not settings.supabase_anon_key:
        logger.error("❌ SUPABASE_URL / SUPABASE_ANON_KEY not configured")
        raise RuntimeError("Supabase credentials are required")

    supabase_client = create_client(settings.supabase_url, settings.supabase_anon_key)
    logger.info("✅ Supabase connected")

    if settings.supabase_service_key:
        supabase_admin_client = create_client(settings.supabase_url, settings.supabase_service_key)
        logger.info("✅ Supabase admin client connected")
    else:
        logger.warning("⚠️  SUPABASE_SERVICE_KEY not set - admin operations use the anon client")

    if settings.anthropic_api_key:
        anthropic_client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        logger.info("✅ Anthropic client ready")
    else:
        logger.warning("⚠️  ANTHROPIC_API_KEY not set - chat and meeting analysis disabled")

    if settings.openai_api_key:
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        logger.info("✅ OpenAI client ready")


async def shutdown_clients():
    """Cleanup clients at shutdown."""
    global http_client

    if http_client:
        await http_client.aclose()
        http_client = None
        logger.info("✅ HTTP client closed")
