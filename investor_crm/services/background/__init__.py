"""
Background Task Services
Dramatiq-based job queue for long-running operations
"""
from investor_crm.services.background.broker import broker
from investor_crm.services.background.tasks import (
    detect_relationships_task,
    process_meeting_task,
    send_notification_task,
)

__all__ = ["broker", "detect_relationships_task", "process_meeting_task", "send_notification_task"]
