"""
Contact Service
"""
from investor_crm.services.contacts.service import (
    create_contact,
    list_contacts,
    update_contact,
    delete_contact,
    set_primary_contact,
)

__all__ = ["create_contact", "list_contacts", "update_contact", "delete_contact", "set_primary_contact"]
