"""
API Routes
All v1 API endpoints
"""
from investor_crm.api.v1.routes.health import router as health_router
from investor_crm.api.v1.routes.csrf import router as csrf_router
from investor_crm.api.v1.routes.investors import router as investors_router
from investor_crm.api.v1.routes.contacts import router as contacts_router
from investor_crm.api.v1.routes.activities import router as activities_router
from investor_crm.api.v1.routes.tasks import router as tasks_router
from investor_crm.api.v1.routes.meetings import router as meetings_router
from investor_crm.api.v1.routes.linkedin import router as linkedin_router
from investor_crm.api.v1.routes.network import router as network_router
from investor_crm.api.v1.routes.search import router as search_router
from investor_crm.api.v1.routes.bulk import router as bulk_router
from investor_crm.api.v1.routes.export import router as export_router
from investor_crm.api.v1.routes.preferences import router as preferences_router
from investor_crm.api.v1.routes.saved_filters import router as saved_filters_router
from investor_crm.api.v1.routes.audit import router as audit_router
from investor_crm.api.v1.routes.admin import router as admin_router
from investor_crm.api.v1.routes.chat import router as chat_router
from investor_crm.api.v1.routes.google import router as google_router
from investor_crm.api.v1.routes.messaging import router as messaging_router
from investor_crm.api.v1.routes.webhooks import router as webhooks_router
from investor_crm.api.v1.routes.notifications import router as notifications_router

__all__ = [
    "health_router",
    "csrf_router",
    "investors_router",
    "contacts_router",
    "activities_router",
    "tasks_router",
    "meetings_router",
    "linkedin_router",
    "network_router",
    "search_router",
    "bulk_router",
    "export_router",
    "preferences_router",
    "saved_filters_router",
    "audit_router",
    "admin_router",
    "chat_router",
    "google_router",
    "messaging_router",
    "webhooks_router",
    "notifications_router",
]
