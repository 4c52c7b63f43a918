"""
Admin Schemas
"""
from typing import Literal

from pydantic import BaseModel

Role = Literal["admin", "member"]


class RoleUpdateRequest(BaseModel):
    user_id: str
    role: Role
