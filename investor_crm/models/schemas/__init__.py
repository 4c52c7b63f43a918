"""
API Schemas
Pydantic models for all API endpoints
"""
from investor_crm.models.schemas.investors import (
    InvestorCreate,
    InvestorUpdate,
    FieldUpdateRequest,
    InvestorPatchRequest,
    StageChangeRequest,
    StageValidationRequest,
    InvestorIdsRequest,
)
from investor_crm.models.schemas.contacts import ContactCreate, ContactUpdate
from investor_crm.models.schemas.activities import ActivityCreate
from investor_crm.models.schemas.tasks import TaskCreate, TaskUpdate, TaskFilters
from investor_crm.models.schemas.meetings import MeetingCreate, MeetingStatusUpdate, MeetingAnalysis
from investor_crm.models.schemas.preferences import (
    UserPreferences,
    UserPreferencesUpdate,
    MessagingPreferencesUpdate,
    SavedFilterCreate,
    SavedFilterUpdate,
)
from investor_crm.models.schemas.messaging import SendMessageRequest, SendNotificationRequest
from investor_crm.models.schemas.chat import ChatMessage, ChatRequest, ChatResponse
from investor_crm.models.schemas.google import EmailSearchRequest, LogEmailRequest, ScheduleMeetingRequest
from investor_crm.models.schemas.bulk import BulkRequest, BulkResult
from investor_crm.models.schemas.linkedin import ImportResult, IntroPath, NetworkGraph
from investor_crm.models.schemas.admin import RoleUpdateRequest

__all__ = [
    # Investors
    "InvestorCreate",
    "InvestorUpdate",
    "FieldUpdateRequest",
    "InvestorPatchRequest",
    "StageChangeRequest",
    "StageValidationRequest",
    "InvestorIdsRequest",

    # Contacts / activities / tasks
    "ContactCreate",
    "ContactUpdate",
    "ActivityCreate",
    "TaskCreate",
    "TaskUpdate",
    "TaskFilters",

    # Meetings
    "MeetingCreate",
    "MeetingStatusUpdate",
    "MeetingAnalysis",

    # Preferences
    "UserPreferences",
    "UserPreferencesUpdate",
    "MessagingPreferencesUpdate",
    "SavedFilterCreate",
    "SavedFilterUpdate",

    # Messaging / chat / Google
    "SendMessageRequest",
    "SendNotificationRequest",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "EmailSearchRequest",
    "LogEmailRequest",
    "ScheduleMeetingRequest",

    # Bulk / LinkedIn
    "BulkRequest",
    "BulkResult",
    "ImportResult",
    "IntroPath",
    "NetworkGraph",

    # Admin
    "RoleUpdateRequest",
]
