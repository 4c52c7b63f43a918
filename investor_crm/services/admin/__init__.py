"""
Admin Service
"""
from investor_crm.services.admin.service import list_users, update_user_role, get_system_metrics

__all__ = ["list_users", "update_user_role", "get_system_metrics"]
