"""
User Preferences and Saved Filters
"""
from investor_crm.services.preferences.service import (
    MESSAGING_DEFAULTS,
    get_preferences,
    update_preferences,
    get_messaging_preferences,
    update_messaging_preferences,
)
from investor_crm.services.preferences.saved_filters import (
    create_saved_filter,
    list_saved_filters,
    get_saved_filter,
    update_saved_filter,
    delete_saved_filter,
    track_filter_usage,
)

__all__ = [
    "MESSAGING_DEFAULTS",
    "get_preferences",
    "update_preferences",
    "get_messaging_preferences",
    "update_messaging_preferences",
    "create_saved_filter",
    "list_saved_filters",
    "get_saved_filter",
    "update_saved_filter",
    "delete_saved_filter",
    "track_filter_usage",
]
