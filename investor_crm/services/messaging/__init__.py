"""
Messaging Service
Google Chat and WhatsApp delivery, inbound webhooks and task reminders
"""
from investor_crm.services.messaging.service import (
    send_message_to_user,
    send_notification,
)
from investor_crm.services.messaging.whatsapp import (
    validate_phone_number,
    verify_webhook,
)
from investor_crm.services.messaging.webhooks import (
    handle_google_chat_event,
    handle_whatsapp_payload,
)
from investor_crm.services.messaging.reminders import process_task_notifications

__all__ = [
    "send_message_to_user",
    "send_notification",
    "validate_phone_number",
    "verify_webhook",
    "handle_google_chat_event",
    "handle_whatsapp_payload",
    "process_task_notifications",
]
