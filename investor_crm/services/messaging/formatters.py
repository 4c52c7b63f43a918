"""
Notification Formatters
Render notification payloads as WhatsApp text or Google Chat cards
"""
import json
from typing import Any, Dict

from investor_crm.core.config import settings


def _base_url() -> str:
    return settings.app_url.rstrip("/")


def format_whatsapp_notification(notification_type: str, data: Dict[str, Any]) -> str:
    base_url = _base_url()

    if notification_type == "task_reminder":
        return (
            "⏰ *Task Reminder*\n\n"
            f"Investor: {data.get('investor_name')}\n"
            f"Task: {data.get('task_title')}\n"
            f"Due: {data.get('due_date')}\n\n"
            f"View: {base_url}/tasks?task={data.get('task_id')}"
        )

    if notification_type == "investor_update":
        return (
            "📊 *Investor Update*\n\n"
            f"{data.get('investor_name')}\n"
            f"{data.get('update_type')}: {data.get('details')}\n\n"
            f"View: {base_url}/investors/{data.get('investor_id')}"
        )

    if notification_type == "pipeline_alert":
        return (
            "🚨 *Pipeline Alert*\n\n"
            f"{data.get('count')} {data.get('alert_type')}\n"
            f"{data.get('details')}\n\n"
            f"View Dashboard: {base_url}"
        )

    if notification_type == "ai_insight":
        message = f"💡 *AI Insight*\n\n{data.get('insight')}"
        if data.get("related_investor_id"):
            message += f"\n\nView: {base_url}/investors/{data['related_investor_id']}"
        return message

    return f"*Notification*\n\n{json.dumps(data, default=str)}"


def format_card_notification(notification_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Returns {title, subtitle, text, buttons[{text, url}]} for build_card."""
    base_url = _base_url()

    if notification_type == "task_reminder":
        return {
            "title": "⏰ Task Reminder",
            "subtitle": data.get("investor_name"),
            "text": f"<b>{data.get('task_title')}</b>\nDue: {data.get('due_date')}",
            "buttons": [
                {"text": "View Task", "url": f"{base_url}/tasks?task={data.get('task_id')}"},
                {"text": "View Investor", "url": f"{base_url}/investors/{data.get('investor_id')}"},
            ],
        }

    if notification_type == "investor_update":
        return {
            "title": "📊 Investor Update",
            "subtitle": data.get("investor_name"),
            "text": f"<b>{data.get('update_type')}</b>\n{data.get('details')}",
            "buttons": [{"text": "View Investor", "url": f"{base_url}/investors/{data.get('investor_id')}"}],
        }

    if notification_type == "pipeline_alert":
        return {
            "title": "🚨 Pipeline Alert",
            "subtitle": f"{data.get('count')} {data.get('alert_type')}",
            "text": data.get("details") or "",
            "buttons": [{"text": "View Dashboard", "url": base_url}],
        }

    if notification_type == "ai_insight":
        buttons = []
        if data.get("related_investor_id"):
            buttons.append({"text": "View Investor", "url": f"{base_url}/investors/{data['related_investor_id']}"})
        return {"title": "💡 AI Insight", "subtitle": None, "text": data.get("insight") or "", "buttons": buttons}

    return {"title": "Notification", "subtitle": None, "text": json.dumps(data, default=str), "buttons": []}
