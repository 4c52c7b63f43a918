"""
Preference Schemas
User display/notification preferences, messaging preferences and saved filters
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Theme = Literal["light", "dark", "system"]
Density = Literal["comfortable", "compact"]
DefaultView = Literal["list", "grid", "kanban"]
ItemsPerPage = Literal[10, 25, 50, 100]
EmailFrequency = Literal["immediate", "daily", "weekly", "off"]
TaskReminderSetting = Literal["24h", "1h", "off"]


class UserPreferences(BaseModel):
    theme: Theme = "system"
    density: Density = "comfortable"
    default_view: DefaultView = "list"
    items_per_page: ItemsPerPage = 25
    email_notifications: bool = True
    email_frequency: EmailFrequency = "daily"
    task_reminders: TaskReminderSetting = "24h"
    overdue_alerts: bool = True


class UserPreferencesUpdate(BaseModel):
    theme: Optional[Theme] = None
    density: Optional[Density] = None
    default_view: Optional[DefaultView] = None
    items_per_page: Optional[ItemsPerPage] = None
    email_notifications: Optional[bool] = None
    email_frequency: Optional[EmailFrequency] = None
    task_reminders: Optional[TaskReminderSetting] = None
    overdue_alerts: Optional[bool] = None


class MessagingPreferencesUpdate(BaseModel):
    google_chat_enabled: Optional[bool] = None
    google_chat_space_id: Optional[str] = None
    whatsapp_enabled: Optional[bool] = None
    whatsapp_phone_number: Optional[str] = None
    notify_task_reminders: Optional[bool] = None
    notify_investor_updates: Optional[bool] = None
    notify_pipeline_alerts: Optional[bool] = None
    notify_ai_insights: Optional[bool] = None


FilterEntityType = Literal["investor", "interaction", "task", "meeting"]


class SavedFilterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    entity_type: FilterEntityType
    filter_config: Any
    is_public: bool = False


class SavedFilterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    filter_config: Optional[Any] = None
    is_public: Optional[bool] = None
