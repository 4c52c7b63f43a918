"""
Investor Services
Investor CRUD, soft delete and pipeline stage transitions
"""
from investor_crm.services.investors.service import (
    create_investor,
    get_investor,
    list_investors,
    get_investor_stats,
    update_investor_field,
    update_investor,
    soft_delete_investor,
    restore_investor,
    bulk_delete_investors,
    bulk_restore_investors,
)
from investor_crm.services.investors.transitions import update_investor_stage, validate_stage_transition

__all__ = [
    "create_investor",
    "get_investor",
    "list_investors",
    "get_investor_stats",
    "update_investor_field",
    "update_investor",
    "soft_delete_investor",
    "restore_investor",
    "bulk_delete_investors",
    "bulk_restore_investors",
    "update_investor_stage",
    "validate_stage_transition",
]
