"""
Task Service
"""
from investor_crm.services.tasks.service import (
    create_task,
    get_tasks,
    get_task,
    update_task,
    toggle_task_status,
    delete_task,
    get_task_stats,
)

__all__ = [
    "create_task",
    "get_tasks",
    "get_task",
    "update_task",
    "toggle_task_status",
    "delete_task",
    "get_task_stats",
]
