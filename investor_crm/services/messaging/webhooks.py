"""
Messaging Webhooks
Inbound Google Chat events and WhatsApp Cloud API messages
"""
import logging
from typing import Any, Dict, Optional

import httpx
from anthropic import AsyncAnthropic
from supabase import Client

from investor_crm.core.errors import CRMError
from investor_crm.models.schemas.chat import ChatMessage
from investor_crm.services.chat.assistant import run_chat
from investor_crm.services.chat.tools import READ_ONLY_TOOLS
from investor_crm.services.messaging.commands import (
    HELP_TEXT,
    WELCOME_DM,
    WELCOME_ROOM,
    match_command,
    run_command,
)
from investor_crm.services.messaging.whatsapp import (
    chat_id_for,
    extract_inbound_messages,
    send_whatsapp_message,
)

logger = logging.getLogger(__name__)

UNKNOWN_USER_REPLY = "Sorry, I couldn't find your account. Please contact support."
FAILURE_REPLY = "Sorry, something went wrong processing your message."


async def answer_message(
    supabase: Client,
    anthropic_client: Optional[AsyncAnthropic],
    text: str,
    user_id: str,
) -> str:
    """
    Keyword commands first; anything else goes to the assistant when configured.

    Webhook callers are only matched by space or phone number, so the
    assistant gets read-only tools here.
    """
    command = match_command(text)
    if command:
        return run_command(supabase, command)

    if anthropic_client is None:
        return HELP_TEXT

    response = await run_chat(
        anthropic_client,
        supabase,
        [ChatMessage(role="user", content=text)],
        {"user_id": user_id, "role": "member"},
        allowed_tools=READ_ONLY_TOOLS,
    )
    return response.message


def _user_for_space(supabase_admin: Client, space_id: str) -> Optional[str]:
    result = supabase_admin.table("user_messaging_preferences")\
        .select("user_id")\
        .eq("google_chat_space_id", space_id)\
        .limit(1)\
        .execute()
    return result.data[0]["user_id"] if result.data else None


def _user_for_phone(supabase_admin: Client, phone_number: str) -> Optional[str]:
    result = supabase_admin.table("user_messaging_preferences")\
        .select("user_id")\
        .eq("whatsapp_phone_number", phone_number)\
        .limit(1)\
        .execute()
    return result.data[0]["user_id"] if result.data else None


async def handle_google_chat_event(
    supabase_admin: Client,
    anthropic_client: Optional[AsyncAnthropic],
    event: Dict[str, Any],
) -> Dict[str, Any]:
    """Returns the synchronous reply body Google Chat expects."""
    event_type = event.get("type")
    space = event.get("space") or {}

    if event_type == "ADDED_TO_SPACE":
        logger.info(f"💬 Added to Google Chat space {space.get('name')}")
        is_dm = space.get("type") == "DM" or space.get("spaceType") == "DIRECT_MESSAGE"
        return {"text": WELCOME_DM if is_dm else WELCOME_ROOM}

    if event_type == "REMOVED_FROM_SPACE":
        logger.info(f"💬 Removed from Google Chat space {space.get('name')}")
        return {}

    if event_type != "MESSAGE":
        logger.info(f"Ignoring Google Chat event type: {event_type}")
        return {}

    message = event.get("message") or {}
    space_id = (space.get("name") or "").replace("spaces/", "")
    text = message.get("argumentText") or message.get("text") or ""

    user_id = _user_for_space(supabase_admin, space_id)
    if not user_id:
        logger.warning(f"⚠️  No user linked to Google Chat space {space_id}")
        return {"text": UNKNOWN_USER_REPLY}

    supabase_admin.table("google_chat_messages").insert({
        "user_id": user_id,
        "space_id": space_id,
        "message_id": message.get("name"),
        "thread_id": (message.get("thread") or {}).get("name"),
        "direction": "inbound",
        "sender_type": "user",
        "content": text,
        "message_type": "text",
    }).execute()

    try:
        reply = await answer_message(supabase_admin, anthropic_client, text.strip(), user_id)
    except CRMError as e:
        logger.warning(f"⚠️  Could not answer Google Chat message: {e.message}")
        reply = FAILURE_REPLY

    return {"text": reply}


async def handle_whatsapp_payload(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    anthropic_client: Optional[AsyncAnthropic],
    payload: Dict[str, Any],
) -> Dict[str, int]:
    """Store inbound messages from registered numbers and reply to each."""
    stored = 0
    replied = 0

    for inbound in extract_inbound_messages(payload):
        phone_number = "+" + (inbound["from"] or "").lstrip("+")
        user_id = _user_for_phone(supabase_admin, phone_number)
        if not user_id:
            logger.info(f"No user registered for WhatsApp number ending {phone_number[-4:]}")
            continue

        supabase_admin.table("whatsapp_messages").insert({
            "user_id": user_id,
            "phone_number": phone_number,
            "whatsapp_message_id": inbound["id"],
            "chat_id": chat_id_for(phone_number),
            "direction": "inbound",
            "sender_type": "user",
            "content": inbound["text"],
            "message_type": "text",
        }).execute()
        stored += 1

        try:
            reply = await answer_message(supabase_admin, anthropic_client, inbound["text"].strip(), user_id)
        except CRMError as e:
            logger.warning(f"⚠️  Could not answer WhatsApp message: {e.message}")
            reply = FAILURE_REPLY

        sent = await send_whatsapp_message(http_client, phone_number, reply)
        if sent["success"]:
            replied += 1

    return {"stored": stored, "replied": replied}
