"""
Messaging Schemas
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

Channel = Literal["google_chat", "whatsapp", "all"]
NotificationType = Literal["task_reminder", "investor_update", "pipeline_alert", "ai_insight"]


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)
    channel: Channel = "all"
    related_investor_id: Optional[str] = None
    related_task_id: Optional[str] = None


class SendNotificationRequest(BaseModel):
    type: NotificationType
    data: Dict[str, Any] = {}
    channel: Channel = "all"


class SendResult(BaseModel):
    success: bool
    channels: list = []
    error: Optional[str] = None
