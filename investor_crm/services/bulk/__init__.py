"""
Bulk Operations
"""
from investor_crm.services.bulk.service import MAX_BULK_ITEMS, execute_bulk

__all__ = ["MAX_BULK_ITEMS", "execute_bulk"]
