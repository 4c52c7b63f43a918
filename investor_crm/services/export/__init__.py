"""
Export Service
"""
from investor_crm.services.export.service import (
    export_investors,
    export_tasks,
    export_activities,
    export_meetings,
    export_filename,
    render,
)

__all__ = ["export_investors", "export_tasks", "export_activities", "export_meetings", "export_filename", "render"]
