"""
Activity Service
"""
from investor_crm.services.activities.service import (
    record_activity,
    log_activity,
    list_activities,
    get_recent_activities,
)

__all__ = ["record_activity", "log_activity", "list_activities", "get_recent_activities"]
