"""
Audit Service
"""
from investor_crm.services.audit.service import log_audit_event, list_audit_logs

__all__ = ["log_audit_event", "list_audit_logs"]
