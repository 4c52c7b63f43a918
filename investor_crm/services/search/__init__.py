"""
Global Search
"""
from investor_crm.services.search.service import global_search

__all__ = ["global_search"]
