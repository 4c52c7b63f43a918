"""
Activity Schemas
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

USER_ACTIVITY_TYPES = ("note", "call", "email", "meeting")
SYSTEM_ACTIVITY_TYPES = ("stage_change", "field_update")

UserActivityType = Literal["note", "call", "email", "meeting"]


class ActivityCreate(BaseModel):
    investor_id: str
    activity_type: UserActivityType
    description: str = Field(..., min_length=1, max_length=2000)
    metadata: Optional[Dict[str, Any]] = None
    set_next_action: bool = False
    next_action: Optional[str] = Field(None, max_length=500)
    next_action_date: Optional[str] = None
