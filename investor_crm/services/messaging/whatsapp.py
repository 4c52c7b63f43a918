"""
WhatsApp Client
Outbound text messages through the WhatsApp Cloud API
"""
import logging
import re
from typing import Any, Dict, Optional

import httpx

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"
MIN_PHONE_LENGTH = 11


def validate_phone_number(phone_number: str) -> Dict[str, Any]:
    """
    E.164-ish check: returns {valid, normalized} or {valid: False, error}.

    Everything except digits and '+' is stripped first.
    """
    cleaned = re.sub(r"[^\d+]", "", phone_number or "")

    if not cleaned.startswith("+"):
        return {"valid": False, "error": "Phone number must start with + and country code"}
    if len(cleaned) < MIN_PHONE_LENGTH:
        return {"valid": False, "error": "Phone number too short"}
    return {"valid": True, "normalized": cleaned}


def chat_id_for(phone_number: str) -> str:
    """+15551234567 -> 15551234567@c.us"""
    return phone_number.replace("+", "") + "@c.us"


def phone_from_chat_id(chat_id: str) -> str:
    return "+" + chat_id.replace("@c.us", "").lstrip("+")


def is_whatsapp_configured() -> bool:
    return bool(settings.whatsapp_access_token and settings.whatsapp_phone_number_id)


async def send_whatsapp_message(http_client: httpx.AsyncClient, phone_number: str, text: str) -> Dict[str, Any]:
    """Returns {success, message_id} or {success: False, error}; never raises."""
    if not is_whatsapp_configured():
        return {"success": False, "error": "WhatsApp is not configured"}

    url = f"{GRAPH_API_URL}/{settings.whatsapp_api_version}/{settings.whatsapp_phone_number_id}/messages"

    try:
        response = await http_client.post(
            url,
            headers={"Authorization": f"Bearer {settings.whatsapp_access_token}"},
            json={
                "messaging_product": "whatsapp",
                "to": phone_number.replace("+", ""),
                "type": "text",
                "text": {"body": text},
            },
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"❌ WhatsApp send failed: {e}")
        return {"success": False, "error": str(e) or "Failed to send message"}

    messages = response.json().get("messages") or [{}]
    return {"success": True, "message_id": messages[0].get("id")}


def extract_inbound_messages(payload: dict) -> list:
    """Flatten a Cloud API webhook payload into [{from, id, text, timestamp}]."""
    inbound = []
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value") or {}
            for message in value.get("messages") or []:
                if message.get("type") != "text":
                    continue
                inbound.append({
                    "from": message.get("from"),
                    "id": message.get("id"),
                    "text": (message.get("text") or {}).get("body", ""),
                    "timestamp": message.get("timestamp"),
                })
    return inbound


def verify_webhook(mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
    """Meta's subscription handshake: echo the challenge when the token matches."""
    if mode == "subscribe" and token and token == settings.whatsapp_verify_token:
        return challenge
    return None
