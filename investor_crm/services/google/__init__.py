"""
Google Workspace
OAuth token management plus Gmail, Calendar and Drive integrations
"""
from investor_crm.services.google.oauth import (
    GOOGLE_SCOPES,
    get_google_auth_url,
    encode_state,
    parse_state,
    exchange_code,
    get_access_token,
    has_google_tokens,
    is_google_configured,
)
from investor_crm.services.google.gmail import search_emails, send_email, log_email_to_investor, get_email_logs
from investor_crm.services.google.calendar import schedule_investor_meeting, get_calendar_events
from investor_crm.services.google.drive import link_drive_file, unlink_drive_file, get_drive_links

__all__ = [
    "GOOGLE_SCOPES",
    "get_google_auth_url",
    "encode_state",
    "parse_state",
    "exchange_code",
    "get_access_token",
    "has_google_tokens",
    "is_google_configured",
    "search_emails",
    "send_email",
    "log_email_to_investor",
    "get_email_logs",
    "schedule_investor_meeting",
    "get_calendar_events",
    "link_drive_file",
    "unlink_drive_file",
    "get_drive_links",
]
