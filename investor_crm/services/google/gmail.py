"""
Gmail
Search and send from the user's mailbox, and log messages to investor timelines
"""
import asyncio
import base64
import logging
from email.message import EmailMessage
from typing import List, Optional

import httpx
from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.models.schemas.google import LogEmailRequest, SendEmailRequest
from investor_crm.services.activities.service import record_activity, utc_now_iso
from investor_crm.services.google.oauth import google_request
from investor_crm.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

GMAIL_API = "https://gmail.googleapis.com/gmail/v1/users/me"
METADATA_HEADERS = ("From", "To", "Subject", "Date")
SNIPPET_LENGTH = 200


def _header(headers: List[dict], name: str) -> str:
    for header in headers:
        if header.get("name") == name:
            return header.get("value") or ""
    return ""


def to_gmail_message(detail: dict) -> dict:
    headers = (detail.get("payload") or {}).get("headers") or []
    return {
        "message_id": detail.get("id") or "",
        "thread_id": detail.get("threadId"),
        "from": _header(headers, "From"),
        "to": _header(headers, "To"),
        "subject": _header(headers, "Subject"),
        "date": _header(headers, "Date"),
        "snippet": detail.get("snippet") or "",
    }


async def search_emails(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    query: str,
    max_results: int = 10,
) -> List[dict]:
    """List matching messages, then fetch metadata (not full bodies) for each."""
    listing = await call_with_retry(
        google_request, http_client, supabase_admin, user_id,
        "GET", f"{GMAIL_API}/messages",
        params={"q": query, "maxResults": max_results},
    )

    messages = listing.get("messages") or []
    if not messages:
        return []

    details = await asyncio.gather(*[
        call_with_retry(
            google_request, http_client, supabase_admin, user_id,
            "GET", f"{GMAIL_API}/messages/{message['id']}",
            params=[("format", "metadata"), *[("metadataHeaders", h) for h in METADATA_HEADERS]],
        )
        for message in messages
    ])

    return [to_gmail_message(detail) for detail in details]


def build_raw_message(to: str, subject: str, body: str) -> str:
    """RFC 2822 message, base64url encoded without padding, for messages.send."""
    message = EmailMessage()
    try:
        message["To"] = to
        message["Subject"] = subject
    except ValueError:
        raise ValidationError("Email headers may not contain line breaks")
    message.set_content(body)
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


async def send_email(
    http_client: httpx.AsyncClient,
    supabase: Client,
    supabase_admin: Client,
    user_id: str,
    data: SendEmailRequest,
) -> dict:
    """
    Send from the user's mailbox. Not retried, since a resend would duplicate
    the message. With an investor_id the sent message is logged to its timeline.
    """
    sent = await google_request(
        http_client, supabase_admin, user_id,
        "POST", f"{GMAIL_API}/messages/send",
        json={"raw": build_raw_message(data.to, data.subject, data.body)},
    )
    logger.info(f"📤 Sent Gmail message {sent.get('id')} for user {user_id}")

    if data.investor_id:
        await log_email_to_investor(
            supabase,
            LogEmailRequest(
                investor_id=data.investor_id,
                message_id=sent.get("id") or "",
                thread_id=sent.get("threadId"),
                to_address=data.to,
                subject=data.subject,
                sent_date=utc_now_iso(),
                snippet=data.body[:SNIPPET_LENGTH],
            ),
            user_id,
        )

    return {"success": True, "message_id": sent.get("id"), "thread_id": sent.get("threadId")}


async def log_email_to_investor(supabase: Client, data: LogEmailRequest, user_id: str) -> dict:
    """Store an email_logs row and add an `email` activity."""
    result = supabase.table("email_logs").insert({
        "investor_id": data.investor_id,
        "message_id": data.message_id,
        "thread_id": data.thread_id,
        "from_address": data.from_address,
        "to_address": data.to_address,
        "subject": data.subject,
        "sent_date": data.sent_date,
        "snippet": data.snippet,
        "logged_by": user_id,
    }).execute()

    if not result.data:
        raise ValidationError("Failed to log email")

    await record_activity(
        supabase,
        data.investor_id,
        "email",
        f"Email: {data.subject or '(no subject)'}",
        user_id,
        metadata={
            "message_id": data.message_id,
            "thread_id": data.thread_id,
            "from": data.from_address,
            "to": data.to_address,
            "date": data.sent_date,
        },
    )

    logger.info(f"📧 Logged email {data.message_id} to investor {data.investor_id}")
    return result.data[0]


async def get_email_logs(supabase: Client, investor_id: str, limit: Optional[int] = None) -> List[dict]:
    query = supabase.table("email_logs")\
        .select("*")\
        .eq("investor_id", investor_id)\
        .order("sent_date", desc=True)
    if limit:
        query = query.limit(limit)
    return query.execute().data or []
