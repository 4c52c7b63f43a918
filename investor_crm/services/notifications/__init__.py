"""
Notification Emails
SMTP delivery of task reminders, overdue alerts and digests
"""
from investor_crm.services.notifications.digests import process_email_notifications
from investor_crm.services.notifications.mailer import is_email_configured, send_email_message

__all__ = [
    "process_email_notifications",
    "is_email_configured",
    "send_email_message",
]
