"""
LinkedIn and Network Schemas
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ImportResult(BaseModel):
    success: bool
    imported: int = 0
    skipped: int = 0
    errors: List[Dict] = []
    relationships_detected: int = 0
    # Ids written by this import; used to schedule deferred detection
    contact_ids: List[str] = Field(default_factory=list, exclude=True)


class IntroPath(BaseModel):
    """Flattened warm-intro path (relationship + LinkedIn contact)"""
    linkedin_contact_id: str
    contact_name: str
    contact_company: Optional[str] = None
    contact_position: Optional[str] = None
    team_member_name: str
    relationship_type: str
    path_strength: float
    strength_label: str
    path_description: str = ""
    linkedin_url: Optional[str] = None


class NetworkGraph(BaseModel):
    investor_id: str
    investor_name: str
    connections: List[IntroPath] = []
    total_paths: int = 0
    strong_paths: int = 0
    medium_paths: int = 0
    weak_paths: int = 0


class NetworkOverviewItem(BaseModel):
    investor_id: str
    investor_name: str
    total_connections: int
    strong_connections: int
