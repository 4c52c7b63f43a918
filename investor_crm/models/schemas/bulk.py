"""
Bulk Operation Schemas
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

BulkEntityType = Literal["investors", "tasks", "interactions"]
BulkOperation = Literal[
    "update_status",
    "update_priority",
    "assign_due_date",
    "delete",
    "restore",
    "change_interaction_type",
]


class BulkRequest(BaseModel):
    entity_type: BulkEntityType
    operation: BulkOperation
    item_ids: List[str] = []
    data: Optional[Dict[str, Any]] = None


class BulkItemError(BaseModel):
    item_id: str
    error: str


class BulkResult(BaseModel):
    success: bool
    total: int
    successful: int
    failed: int
    errors: List[BulkItemError] = []
    message: str
