"""
Investor Schemas
Request models for investor create/update and stage changes
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

from investor_crm.services.pipeline.stages import STAGE_ORDER

ALLOCATOR_TYPES = [
    "Family Office",
    "HNWI",
    "Endowment",
    "Foundation",
    "Pension",
    "Fund of Funds",
    "Sovereign Wealth",
    "Insurance",
    "Other",
]


def _check_stage(value):
    if value is not None and value not in STAGE_ORDER:
        raise PydanticCustomError("stage", "Invalid stage value")
    return value


class InvestorCreate(BaseModel):
    firm_name: str = Field(..., min_length=1, max_length=200)
    stage: str
    relationship_owner: str = Field(..., min_length=1, max_length=100)

    @field_validator("firm_name", "relationship_owner", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("stage")
    @classmethod
    def _stage(cls, value):
        return _check_stage(value)


class InvestorUpdate(BaseModel):
    """Every editable investor field; all optional (used for inline edits)"""
    firm_name: Optional[str] = Field(None, min_length=1, max_length=200)
    stage: Optional[str] = None
    relationship_owner: Optional[str] = Field(None, min_length=1, max_length=100)
    partner_source: Optional[str] = Field(None, max_length=200)
    est_value: Optional[float] = Field(None, ge=0)
    entry_date: Optional[str] = None
    last_action_date: Optional[str] = None
    stalled: Optional[bool] = None
    allocator_type: Optional[str] = None
    internal_conviction: Optional[str] = None
    internal_priority: Optional[str] = None
    investment_committee_timing: Optional[str] = None
    next_action: Optional[str] = None
    next_action_date: Optional[str] = None
    current_strategy_notes: Optional[str] = None
    current_strategy_date: Optional[str] = None
    last_strategy_notes: Optional[str] = None
    last_strategy_date: Optional[str] = None
    key_objection_risk: Optional[str] = None

    @field_validator("stage")
    @classmethod
    def _stage(cls, value):
        return _check_stage(value)

    @field_validator("allocator_type")
    @classmethod
    def _allocator_type(cls, value):
        if value and value not in ALLOCATOR_TYPES:
            raise PydanticCustomError("allocator_type", "Invalid allocator type")
        return value


EDITABLE_FIELDS = frozenset(InvestorUpdate.model_fields)


class FieldUpdateRequest(BaseModel):
    field: str
    value: Any = None
    version: Optional[int] = None


class InvestorPatchRequest(BaseModel):
    changes: dict
    version: Optional[int] = None


class StageChangeRequest(BaseModel):
    new_stage: str
    checklist_confirmed: bool = False
    override_reason: Optional[str] = None


class StageValidationRequest(BaseModel):
    from_stage: str
    to_stage: str


class InvestorIdsRequest(BaseModel):
    investor_ids: List[str] = []
