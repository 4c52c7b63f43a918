"""
Messaging Service
Deliver messages and notifications over a user's enabled channels

Every delivered message is logged to google_chat_messages or
whatsapp_messages. Sending never raises for delivery problems; the result
carries the channels that succeeded and the last error seen.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from supabase import Client

from investor_crm.services.activities.service import utc_now_iso
from investor_crm.services.messaging.formatters import (
    format_card_notification,
    format_whatsapp_notification,
)
from investor_crm.services.messaging.google_chat import send_chat_card, send_chat_message
from investor_crm.services.messaging.whatsapp import chat_id_for, send_whatsapp_message

logger = logging.getLogger(__name__)

NO_PREFERENCES = "User has no messaging preferences configured"
NO_CHANNELS = "No channels available or enabled"
NOTIFICATION_DISABLED = "User has disabled this notification type"

NOTIFICATION_FLAGS = {
    "task_reminder": "notify_task_reminders",
    "investor_update": "notify_investor_updates",
    "pipeline_alert": "notify_pipeline_alerts",
    "ai_insight": "notify_ai_insights",
}


def _load_preferences(supabase_admin: Client, user_id: str) -> Optional[dict]:
    result = supabase_admin.table("user_messaging_preferences")\
        .select("*")\
        .eq("user_id", user_id)\
        .maybe_single()\
        .execute()
    return result.data if result else None


def _wants(channel: str, requested: str) -> bool:
    return requested in (channel, "all")


def _google_chat_ready(prefs: dict) -> bool:
    return bool(prefs.get("google_chat_enabled") and prefs.get("google_chat_space_id"))


def _whatsapp_ready(prefs: dict) -> bool:
    return bool(prefs.get("whatsapp_enabled") and prefs.get("whatsapp_phone_number"))


def _log_google_chat(supabase_admin: Client, user_id: str, prefs: dict, message_id: Optional[str], content: str,
                     message_type: str, related: Dict[str, Any]) -> None:
    supabase_admin.table("google_chat_messages").insert({
        "user_id": user_id,
        "space_id": prefs["google_chat_space_id"],
        "message_id": message_id,
        "direction": "outbound",
        "sender_type": "system",
        "content": content,
        "message_type": message_type,
        "delivered": True,
        "delivered_at": utc_now_iso(),
        **related,
    }).execute()


def _log_whatsapp(supabase_admin: Client, user_id: str, prefs: dict, message_id: Optional[str], content: str,
                  related: Dict[str, Any]) -> None:
    phone = prefs["whatsapp_phone_number"]
    supabase_admin.table("whatsapp_messages").insert({
        "user_id": user_id,
        "phone_number": phone,
        "whatsapp_message_id": message_id,
        "chat_id": chat_id_for(phone),
        "direction": "outbound",
        "sender_type": "system",
        "content": content,
        "message_type": "text",
        "delivered": True,
        "delivered_at": utc_now_iso(),
        **related,
    }).execute()


def _result(channels: List[str], last_error: Optional[str]) -> Dict[str, Any]:
    if not channels:
        return {"success": False, "channels": [], "error": last_error or NO_CHANNELS}
    return {"success": True, "channels": channels, "error": None}


async def send_message_to_user(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    content: str,
    channel: str = "all",
    related_investor_id: Optional[str] = None,
    related_task_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Send plain text on every enabled channel matching `channel`."""
    prefs = _load_preferences(supabase_admin, user_id)
    if not prefs:
        return {"success": False, "channels": [], "error": NO_PREFERENCES}

    related = {"related_investor_id": related_investor_id, "related_task_id": related_task_id}
    channels: List[str] = []
    last_error = None

    if _wants("google_chat", channel) and _google_chat_ready(prefs):
        sent = await send_chat_message(http_client, supabase_admin, user_id, prefs["google_chat_space_id"], content)
        if sent["success"]:
            channels.append("google_chat")
            _log_google_chat(supabase_admin, user_id, prefs, sent.get("message_id"), content, "text", related)
        else:
            last_error = sent.get("error")

    if _wants("whatsapp", channel) and _whatsapp_ready(prefs):
        sent = await send_whatsapp_message(http_client, prefs["whatsapp_phone_number"], content)
        if sent["success"]:
            channels.append("whatsapp")
            _log_whatsapp(supabase_admin, user_id, prefs, sent.get("message_id"), content, related)
        else:
            last_error = sent.get("error")

    result = _result(channels, last_error)
    if result["success"]:
        logger.info(f"📨 Message sent to user {user_id} via {', '.join(channels)}")
    else:
        logger.warning(f"⚠️  Message to user {user_id} not delivered: {result['error']}")
    return result


async def send_notification(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    notification_type: str,
    data: Dict[str, Any],
    channel: str = "all",
) -> Dict[str, Any]:
    """Cards on Google Chat, formatted text on WhatsApp; honours notify_* flags."""
    prefs = _load_preferences(supabase_admin, user_id)
    if not prefs:
        return {"success": False, "channels": [], "error": NO_PREFERENCES}

    flag = NOTIFICATION_FLAGS.get(notification_type)
    if flag and not prefs.get(flag):
        return {"success": False, "channels": [], "error": NOTIFICATION_DISABLED}

    related = {
        "related_investor_id": data.get("investor_id") or data.get("related_investor_id"),
        "related_task_id": data.get("task_id"),
    }
    channels: List[str] = []
    last_error = None

    if _wants("google_chat", channel) and _google_chat_ready(prefs):
        card = format_card_notification(notification_type, data)
        sent = await send_chat_card(http_client, supabase_admin, user_id, prefs["google_chat_space_id"], card)
        if sent["success"]:
            channels.append("google_chat")
            _log_google_chat(supabase_admin, user_id, prefs, sent.get("message_id"), card["text"], "card", related)
        else:
            last_error = sent.get("error")

    if _wants("whatsapp", channel) and _whatsapp_ready(prefs):
        text = format_whatsapp_notification(notification_type, data)
        sent = await send_whatsapp_message(http_client, prefs["whatsapp_phone_number"], text)
        if sent["success"]:
            channels.append("whatsapp")
            _log_whatsapp(supabase_admin, user_id, prefs, sent.get("message_id"), text, related)
        else:
            last_error = sent.get("error")

    return _result(channels, last_error)
