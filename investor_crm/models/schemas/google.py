"""
Google Workspace Schemas
"""
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class EmailSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    max_results: int = Field(10, ge=1, le=100)


class LogEmailRequest(BaseModel):
    investor_id: str
    message_id: str
    thread_id: Optional[str] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    subject: Optional[str] = None
    sent_date: Optional[str] = None
    snippet: Optional[str] = None


class SendEmailRequest(BaseModel):
    """Plain-text message sent from the user's own Gmail account"""
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=998)
    body: str = Field(..., min_length=1)
    investor_id: Optional[str] = None


class ScheduleMeetingRequest(BaseModel):
    investor_id: str
    summary: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    start_time: str
    end_time: str
    attendees: List[str] = []
    time_zone: Optional[str] = None


class DriveLinkCreate(BaseModel):
    investor_id: str
    file_id: str
    file_name: str = Field(..., min_length=1, max_length=500)
    file_url: str
    mime_type: str
    thumbnail_url: Optional[str] = None
