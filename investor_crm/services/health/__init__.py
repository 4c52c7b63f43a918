"""
Health Service
"""
from investor_crm.services.health.service import liveness, check_database, configured_integrations

__all__ = ["liveness", "check_database", "configured_integrations"]
