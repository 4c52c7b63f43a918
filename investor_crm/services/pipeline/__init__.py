"""
Pipeline Service
Stage definitions, transition rules and stalled detection
"""
from investor_crm.services.pipeline.stages import (
    STAGE_DEFINITIONS,
    STAGE_ORDER,
    ACTIVE_STAGES,
    TERMINAL_STAGES,
    ExitCriterion,
    StageDefinition,
    is_valid_stage,
    get_stage,
    get_exit_criteria,
    get_allowed_transitions,
    is_terminal_stage,
    is_valid_transition,
    compute_is_stalled,
)

__all__ = [
    "STAGE_DEFINITIONS",
    "STAGE_ORDER",
    "ACTIVE_STAGES",
    "TERMINAL_STAGES",
    "ExitCriterion",
    "StageDefinition",
    "is_valid_stage",
    "get_stage",
    "get_exit_criteria",
    "get_allowed_transitions",
    "is_terminal_stage",
    "is_valid_transition",
    "compute_is_stalled",
]
