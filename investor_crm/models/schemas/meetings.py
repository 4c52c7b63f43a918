"""
Meeting Intelligence Schemas
"""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

MeetingStatus = Literal["pending", "processing", "completed", "failed"]


class MeetingCreate(BaseModel):
    investor_id: str
    meeting_title: str = Field(..., min_length=1, max_length=300)
    meeting_date: str
    duration_minutes: Optional[int] = Field(None, ge=0)
    calendar_event_id: Optional[str] = None


class MeetingStatusUpdate(BaseModel):
    status: MeetingStatus
    processing_error: Optional[str] = None


TaskPriority = Literal["low", "medium", "high"]


class ActionItem(BaseModel):
    """
    One action item from the analysis model.

    The model writes free text, so due dates other than YYYY-MM-DD are
    dropped and priorities outside low/medium/high fall back to medium.
    """
    description: str
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    priority: TaskPriority = "medium"

    @field_validator("due_date", mode="before")
    @classmethod
    def _iso_date(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip()
        try:
            return date.fromisoformat(value).isoformat() if len(value) == 10 else None
        except ValueError:
            return None

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value):
        value = value.strip().lower() if isinstance(value, str) else ""
        return value if value in ("low", "medium", "high") else "medium"


class Objection(BaseModel):
    objection: str
    response: Optional[str] = None
    resolved: bool = False


class MeetingAnalysis(BaseModel):
    """Structured output of the transcript analysis model"""
    summary: str = ""
    key_topics: List[str] = []
    action_items: List[ActionItem] = []
    objections: List[Objection] = []
    next_steps: List[str] = []
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
