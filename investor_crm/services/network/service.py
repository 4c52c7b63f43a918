"""
Network Service
Warm-introduction paths from team LinkedIn networks to investors
"""
import logging
from typing import List, Optional

from supabase import Client

from investor_crm.core.errors import NotFoundError
from investor_crm.models.schemas.linkedin import IntroPath, NetworkGraph, NetworkOverviewItem
from investor_crm.services.linkedin.relationships import STRONG_THRESHOLD, strength_label

logger = logging.getLogger(__name__)

RELATIONSHIP_SELECT = (
    "*, linkedin_contacts(id, first_name, last_name, full_name, company, position, team_member_name, linkedin_url)"
)


def to_intro_path(relationship: dict) -> Optional[IntroPath]:
    """Flatten a relationship row with its joined contact; None for broken joins."""
    contact = relationship.get("linkedin_contacts")
    if isinstance(contact, list):
        contact = contact[0] if contact else None
    if not contact:
        return None

    strength = float(relationship.get("path_strength") or 0)
    name = contact.get("full_name") or f"{contact.get('first_name', '')} {contact.get('last_name', '')}".strip()

    return IntroPath(
        linkedin_contact_id=str(contact["id"]),
        contact_name=name,
        contact_company=contact.get("company"),
        contact_position=contact.get("position"),
        team_member_name=contact.get("team_member_name") or "",
        relationship_type=relationship.get("relationship_type") or "industry_overlap",
        path_strength=strength,
        strength_label=strength_label(strength),
        path_description=relationship.get("path_description") or "",
        linkedin_url=contact.get("linkedin_url"),
    )


async def get_network_graph(supabase: Client, investor_id: str) -> NetworkGraph:
    investor = supabase.table("investors")\
        .select("id, firm_name")\
        .eq("id", investor_id)\
        .is_("deleted_at", "null")\
        .maybe_single()\
        .execute()

    if not investor or not investor.data:
        raise NotFoundError("Investor not found")

    result = supabase.table("investor_relationships")\
        .select(RELATIONSHIP_SELECT)\
        .eq("investor_id", investor_id)\
        .order("path_strength", desc=True)\
        .execute()

    connections = [path for path in map(to_intro_path, result.data or []) if path]
    labels = [path.strength_label for path in connections]

    return NetworkGraph(
        investor_id=investor.data["id"],
        investor_name=investor.data["firm_name"],
        connections=connections,
        total_paths=len(connections),
        strong_paths=labels.count("strong"),
        medium_paths=labels.count("medium"),
        weak_paths=labels.count("weak"),
    )


async def get_network_overview(supabase: Client) -> List[NetworkOverviewItem]:
    """Every investor's connection counts, most strong connections first."""
    result = supabase.table("investors")\
        .select("id, firm_name, investor_relationships(id, path_strength)")\
        .is_("deleted_at", "null")\
        .execute()

    overview = []
    for investor in result.data or []:
        relationships = investor.get("investor_relationships") or []
        overview.append(NetworkOverviewItem(
            investor_id=investor["id"],
            investor_name=investor["firm_name"],
            total_connections=len(relationships),
            strong_connections=sum(
                1 for rel in relationships if float(rel.get("path_strength") or 0) >= STRONG_THRESHOLD
            ),
        ))

    overview.sort(key=lambda item: item.strong_connections, reverse=True)
    return overview


async def get_best_intro_path(supabase: Client, investor_id: str) -> Optional[IntroPath]:
    result = supabase.table("investor_relationships")\
        .select(RELATIONSHIP_SELECT)\
        .eq("investor_id", investor_id)\
        .order("path_strength", desc=True)\
        .limit(1)\
        .execute()

    rows = result.data or []
    return to_intro_path(rows[0]) if rows else None
