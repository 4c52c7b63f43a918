"""
Unified Configuration
All environment variables and settings in one place
"""
from typing import List, Optional
import logging
from pydantic_settings import BaseSettings
from pydantic import Field

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Unified application settings.
    Validates all environment variables at startup.
    """

    # ============================================================================
    # SERVER
    # ============================================================================

    environment: str = Field(default="production", description="Environment: dev/staging/production")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    app_url: str = Field(default="http://localhost:3000", description="Public URL of the CRM frontend (used in notification links)")
    app_version: str = Field(default="1.0.0", description="Version reported by health checks")

    # ============================================================================
    # DATABASE (Supabase PostgreSQL)
    # ============================================================================

    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_anon_key: Optional[str] = Field(default=None, description="Supabase anonymous key (RLS enforced)")
    supabase_service_key: Optional[str] = Field(default=None, description="Supabase service role key (bypasses RLS)")
    recordings_bucket: str = Field(default="meeting-recordings", description="Storage bucket for meeting recordings")

    # ============================================================================
    # LLM (Anthropic + OpenAI)
    # ============================================================================

    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(default="claude-sonnet-4-5", description="Model used by chat and meeting analysis")
    anthropic_max_tokens: int = Field(default=4096, description="Max output tokens per Anthropic call")
    chat_max_tool_rounds: int = Field(default=5, description="Maximum tool-use rounds per chat request")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key (Whisper transcription)")
    transcription_model: str = Field(default="whisper-1", description="OpenAI transcription model")

    # ============================================================================
    # GOOGLE WORKSPACE (OAuth)
    # ============================================================================

    google_client_id: Optional[str] = Field(default=None, description="Google OAuth client ID")
    google_client_secret: Optional[str] = Field(default=None, description="Google OAuth client secret")
    google_redirect_uri: Optional[str] = Field(default=None, description="Google OAuth redirect URI")
    google_default_timezone: str = Field(default="America/New_York", description="Timezone for scheduled meetings")

    # ============================================================================
    # MESSAGING (Google Chat + WhatsApp Cloud API)
    # ============================================================================

    google_chat_verification_token: Optional[str] = Field(default=None, description="Token Google Chat sends with webhook events")
    whatsapp_access_token: Optional[str] = Field(default=None, description="WhatsApp Cloud API access token")
    whatsapp_phone_number_id: Optional[str] = Field(default=None, description="WhatsApp Cloud API sender phone number ID")
    whatsapp_verify_token: Optional[str] = Field(default=None, description="Webhook verification token for WhatsApp")
    whatsapp_api_version: str = Field(default="v21.0", description="Graph API version for WhatsApp")

    # ============================================================================
    # EMAIL (SMTP notification delivery)
    # ============================================================================

    smtp_host: Optional[str] = Field(default=None, description="SMTP server for notification emails")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Issue STARTTLS before login")
    smtp_from_email: Optional[str] = Field(default=None, description="From address (defaults to smtp_user)")
    smtp_from_name: str = Field(default="Investor CRM", description="From display name")
    email_test_mode: bool = Field(default=False, description="Redirect every notification email to email_test_recipient")
    email_test_recipient: Optional[str] = Field(default=None, description="Recipient used when email_test_mode is on")

    # ============================================================================
    # BACKGROUND JOBS
    # ============================================================================

    redis_url: Optional[str] = Field(default=None, description="Redis connection URL (Dramatiq broker)")
    cron_secret: Optional[str] = Field(default=None, description="Bearer secret for scheduler-triggered endpoints")
    defer_relationship_detection: bool = Field(default=False, description="Run LinkedIn relationship detection in the worker")
    defer_meeting_processing: bool = Field(default=False, description="Transcribe and analyze recordings in the worker")

    # ============================================================================
    # PRODUCTION INFRASTRUCTURE
    # ============================================================================

    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")
    cors_origins: Optional[str] = Field(default=None, description="Comma-separated extra CORS origins")

    # ============================================================================
    # LIMITS
    # ============================================================================

    rate_limit_api: str = Field(default="100/minute", description="Default API rate limit")
    rate_limit_auth: str = Field(default="10/minute", description="Rate limit for auth-adjacent endpoints")
    rate_limit_sensitive: str = Field(default="10/minute", description="Rate limit for expensive endpoints (chat, uploads)")
    cache_ttl_seconds: int = Field(default=300, description="Default in-memory cache TTL")
    cache_max_size: int = Field(default=1000, description="Max entries in the in-memory cache")
    stalled_threshold_days: int = Field(default=30, description="Days without action before an investor is stalled")
    max_recording_bytes: int = Field(default=50 * 1024 * 1024, description="Max meeting recording upload size")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="Max CSV / transcript upload size")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def extra_cors_origins(self) -> List[str]:
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
