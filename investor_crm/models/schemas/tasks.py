"""
Task Schemas
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

TaskStatus = Literal["pending", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high"]

TASK_STATUSES = ("pending", "completed", "cancelled")
TASK_PRIORITIES = ("low", "medium", "high")

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class TaskCreate(BaseModel):
    investor_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    priority: TaskPriority = "medium"

    @field_validator("title", "description", mode="before")
    @classmethod
    def _trim(cls, value):
        return _strip(value)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _trim(cls, value):
        return _strip(value)


class TaskFilters(BaseModel):
    status: Optional[str] = None  # status value or "all"
    priority: Optional[str] = None  # priority value or "all"
    investor_id: Optional[str] = None
    overdue: bool = False
    due_soon: bool = False
    limit: int = Field(100, ge=1, le=500)
    offset: int = Field(0, ge=0)
