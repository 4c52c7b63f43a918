"""
Google Chat Client
Text and card messages posted to a user's space with their Google credentials
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from supabase import Client

from investor_crm.core.errors import GoogleAuthRequiredError
from investor_crm.services.google.oauth import google_request
from investor_crm.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

CHAT_API_URL = "https://chat.googleapis.com/v1"
CARD_ID = "crm-notification"


def space_name(space_id: str) -> str:
    return space_id if space_id.startswith("spaces/") else f"spaces/{space_id}"


def build_card(
    title: str,
    text: str,
    subtitle: Optional[str] = None,
    buttons: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    """cardsV2 payload with a header, a text paragraph and optional link buttons."""
    widgets: List[Dict[str, Any]] = [{"textParagraph": {"text": text}}]

    if buttons:
        widgets.append({
            "buttonList": {
                "buttons": [
                    {"text": button["text"], "onClick": {"openLink": {"url": button["url"]}}}
                    for button in buttons
                ]
            }
        })

    header = {"title": title}
    if subtitle:
        header["subtitle"] = subtitle

    return {"cardsV2": [{"cardId": CARD_ID, "card": {"header": header, "sections": [{"widgets": widgets}]}}]}


async def _post_message(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    space_id: str,
    body: Dict[str, Any],
) -> Dict[str, Any]:
    try:
        message = await call_with_retry(
            google_request,
            http_client, supabase_admin, user_id,
            "POST", f"{CHAT_API_URL}/{space_name(space_id)}/messages",
            json=body,
        )
    except GoogleAuthRequiredError as e:
        return {"success": False, "error": e.message}
    except httpx.HTTPError as e:
        logger.error(f"❌ Google Chat send failed for space {space_id}: {e}")
        return {"success": False, "error": str(e) or "Failed to send message"}

    return {"success": True, "message_id": message.get("name")}


async def send_chat_message(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    space_id: str,
    text: str,
    thread_name: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"text": text}
    if thread_name:
        body["thread"] = {"name": thread_name}
    return await _post_message(http_client, supabase_admin, user_id, space_id, body)


async def send_chat_card(
    http_client: httpx.AsyncClient,
    supabase_admin: Client,
    user_id: str,
    space_id: str,
    card: Dict[str, Any],
) -> Dict[str, Any]:
    """card is the output of format_card_notification."""
    body = build_card(card["title"], card["text"], card.get("subtitle"), card.get("buttons"))
    return await _post_message(http_client, supabase_admin, user_id, space_id, body)
