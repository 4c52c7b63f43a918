"""
Pipeline Stage Definitions
Stage order, exit criteria and allowed transitions for the fundraising pipeline

Active stages move forward one step at a time and can drop out to Lost,
Passed or (from Materials Shared on) Delayed. Terminal stages carry no exit
criteria and can re-engage into any active stage.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)


class ExitCriterion(BaseModel):
    """Checklist item to confirm before leaving a stage"""
    id: str
    label: str
    description: str


class StageDefinition(BaseModel):
    label: str
    order: int  # 1-5, terminal stages share 5
    exit_criteria: List[ExitCriterion] = []
    allowed_transitions: List[str] = []


# ============================================================================
# STAGES
# ============================================================================

NOT_YET_APPROACHED = "Not Yet Approached"
INITIAL_CONTACT = "Initial Contact"
FIRST_CONVERSATION_HELD = "First Conversation Held"
MATERIALS_SHARED = "Materials Shared"
NDA_DATA_ROOM = "NDA / Data Room"
ACTIVE_DUE_DILIGENCE = "Active Due Diligence"
LPA_LEGAL = "LPA / Legal"
WON = "Won"
COMMITTED = "Committed"
LOST = "Lost"
PASSED = "Passed"
DELAYED = "Delayed"

ACTIVE_STAGES = [
    NOT_YET_APPROACHED,
    INITIAL_CONTACT,
    FIRST_CONVERSATION_HELD,
    MATERIALS_SHARED,
    NDA_DATA_ROOM,
    ACTIVE_DUE_DILIGENCE,
    LPA_LEGAL,
]

TERMINAL_STAGES = [WON, COMMITTED, LOST, PASSED, DELAYED]

STAGE_ORDER = ACTIVE_STAGES + TERMINAL_STAGES


def _criterion(id: str, label: str, description: str) -> ExitCriterion:
    return ExitCriterion(id=id, label=label, description=description)


STAGE_DEFINITIONS: Dict[str, StageDefinition] = {
    NOT_YET_APPROACHED: StageDefinition(
        label=NOT_YET_APPROACHED,
        order=1,
        exit_criteria=[
            _criterion("outreach_planned", "Outreach strategy defined",
                       "Clear plan for initial contact approach"),
            _criterion("contact_info_verified", "Contact information verified",
                       "Email, phone, or LinkedIn contact confirmed"),
        ],
        allowed_transitions=[INITIAL_CONTACT],
    ),
    INITIAL_CONTACT: StageDefinition(
        label=INITIAL_CONTACT,
        order=2,
        exit_criteria=[
            _criterion("first_outreach_completed", "First outreach completed",
                       "Email sent, call made, or LinkedIn message delivered"),
            _criterion("contact_acknowledged", "Contact acknowledged receipt",
                       "LP confirmed they received our outreach"),
        ],
        allowed_transitions=[FIRST_CONVERSATION_HELD, LOST, PASSED],
    ),
    FIRST_CONVERSATION_HELD: StageDefinition(
        label=FIRST_CONVERSATION_HELD,
        order=2,
        exit_criteria=[
            _criterion("initial_call_completed", "Initial call or meeting completed",
                       "First substantive conversation with LP decision maker or gatekeeper"),
            _criterion("key_contact_identified", "Key contact identified",
                       "Know who the decision maker is and how to reach them"),
        ],
        allowed_transitions=[MATERIALS_SHARED, LOST, PASSED],
    ),
    MATERIALS_SHARED: StageDefinition(
        label=MATERIALS_SHARED,
        order=3,
        exit_criteria=[
            _criterion("pitch_deck_sent", "Pitch deck or fund materials sent",
                       "LP received fund deck, tearsheet, or investment memo"),
            _criterion("lp_confirmed_receipt", "LP confirmed receipt",
                       "LP acknowledged they received and will review materials"),
        ],
        allowed_transitions=[NDA_DATA_ROOM, LOST, PASSED, DELAYED],
    ),
    NDA_DATA_ROOM: StageDefinition(
        label=NDA_DATA_ROOM,
        order=3,
        exit_criteria=[
            _criterion("nda_fully_executed", "NDA fully executed",
                       "Both parties signed NDA, all copies returned"),
            _criterion("data_room_access_granted", "Data room access granted",
                       "LP has access credentials and can view due diligence materials"),
        ],
        allowed_transitions=[ACTIVE_DUE_DILIGENCE, LOST, PASSED, DELAYED],
    ),
    ACTIVE_DUE_DILIGENCE: StageDefinition(
        label=ACTIVE_DUE_DILIGENCE,
        order=4,
        exit_criteria=[
            _criterion("dd_process_initiated", "DD process formally initiated",
                       "LP officially began due diligence process with written confirmation"),
            _criterion("dd_meetings_held", "At least 2 DD meetings held",
                       "Minimum of 2 substantive due diligence calls or meetings completed"),
        ],
        allowed_transitions=[LPA_LEGAL, LOST, PASSED, DELAYED],
    ),
    LPA_LEGAL: StageDefinition(
        label=LPA_LEGAL,
        order=4,
        exit_criteria=[
            _criterion("lpa_reviewed", "LPA reviewed by LP counsel",
                       "LP's legal team reviewed Limited Partnership Agreement"),
            _criterion("key_terms_agreed", "Key terms agreed",
                       "No major open issues on investment amount, fees, or governance"),
        ],
        allowed_transitions=[WON, COMMITTED, LOST, PASSED, DELAYED],
    ),
}

# Terminal stages: no exit criteria, re-engagement into any active stage
for _stage in TERMINAL_STAGES:
    STAGE_DEFINITIONS[_stage] = StageDefinition(
        label=_stage,
        order=5,
        exit_criteria=[],
        allowed_transitions=list(ACTIVE_STAGES),
    )


# ============================================================================
# LOOKUPS
# ============================================================================

def is_valid_stage(stage: str) -> bool:
    return stage in STAGE_DEFINITIONS


def get_stage(stage: str) -> Optional[StageDefinition]:
    return STAGE_DEFINITIONS.get(stage)


def get_exit_criteria(stage: str) -> List[ExitCriterion]:
    definition = STAGE_DEFINITIONS.get(stage)
    return list(definition.exit_criteria) if definition else []


def get_allowed_transitions(from_stage: str) -> List[str]:
    """Stages reachable from `from_stage`; unknown stages have none."""
    definition = STAGE_DEFINITIONS.get(from_stage)
    return list(definition.allowed_transitions) if definition else []


def is_terminal_stage(stage: str) -> bool:
    return stage in TERMINAL_STAGES


def is_valid_transition(from_stage: str, to_stage: str) -> bool:
    return to_stage in get_allowed_transitions(from_stage)


# ============================================================================
# STALLED DETECTION
# ============================================================================

def _to_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.warning(f"⚠️  Ignoring malformed date: {text!r}")
        return None


def compute_is_stalled(
    last_action_date: Union[str, date, None],
    stage: str,
    threshold_days: Optional[int] = None,
    stage_entry_date: Union[str, date, None] = None,
    today: Optional[date] = None,
) -> bool:
    """
    Whether an investor has gone quiet.

    - Terminal stages are never stalled
    - Reference date is last_action_date, falling back to stage_entry_date
    - No reference date at all means not stalled (newly created)
    - Stalled when whole days since the reference date >= threshold
    """
    if is_terminal_stage(stage):
        return False

    reference = _to_date(last_action_date) or _to_date(stage_entry_date)
    if reference is None:
        return False

    if threshold_days is None:
        threshold_days = settings.stalled_threshold_days

    days_since = ((today or date.today()) - reference).days
    return days_since >= threshold_days
