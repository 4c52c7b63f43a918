"""
Relationship Detection
Turns company matches into scored warm-introduction paths
"""
import logging
from datetime import date, datetime
from typing import Iterable, List, Mapping, Optional, Union

from investor_crm.services.linkedin.matcher import CompanyMatch, CompanyMatcher

logger = logging.getLogger(__name__)

RELATIONSHIP_TYPES = (
    "works_at",
    "former_colleague",
    "knows_decision_maker",
    "industry_overlap",
    "geographic_proximity",
)

BASE_PATH_STRENGTHS = {
    "works_at": 1.0,
    "former_colleague": 0.7,
    "knows_decision_maker": 0.6,
    "industry_overlap": 0.3,
    "geographic_proximity": 0.2,
}

RELATIONSHIP_PHRASES = {
    "works_at": "currently works at",
    "former_colleague": "formerly worked at",
    "knows_decision_maker": "knows decision maker at",
    "industry_overlap": "has industry connection to",
    "geographic_proximity": "is geographically near",
}

STRONG_THRESHOLD = 0.7
MEDIUM_THRESHOLD = 0.4
WORKS_AT_SIMILARITY = 0.8

DETECTED_VIA_COMPANY_MATCH = "company_match"


def _parse_date(value: Union[str, date, None]) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def recency_multiplier(connected_on: Union[str, date, None], today: Optional[date] = None) -> float:
    connected = _parse_date(connected_on)
    if connected is None:
        return 1.0

    days_ago = ((today or date.today()) - connected).days
    if days_ago < 30:
        return 1.2
    if days_ago < 90:
        return 1.0
    if days_ago < 365:
        return 0.9
    return 0.8


def calculate_path_strength(
    relationship_type: str,
    connected_on: Union[str, date, None],
    today: Optional[date] = None,
) -> float:
    """Base strength for the type times recency, capped at 1.0."""
    base = BASE_PATH_STRENGTHS[relationship_type]
    return round(min(base * recency_multiplier(connected_on, today), 1.0), 2)


def strength_label(score: float) -> str:
    if score >= STRONG_THRESHOLD:
        return "strong"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "weak"


def classify_relationship_type(similarity_score: float, position: Optional[str]) -> str:
    # Anything short of a confident match with a known title is treated as industry overlap
    if similarity_score >= WORKS_AT_SIMILARITY and position:
        return "works_at"
    return "industry_overlap"


def _format_connected_on(connected_on: Union[str, date, None]) -> str:
    connected = _parse_date(connected_on)
    if connected is None:
        return "Date unknown"
    return f"{connected.strftime('%b')} {connected.day}, {connected.year}"


def _full_name(contact: Mapping) -> str:
    full_name = contact.get("full_name")
    if full_name:
        return full_name
    return f"{contact.get('first_name', '')} {contact.get('last_name', '')}".strip()


def build_path_description(contact: Mapping, match: CompanyMatch, relationship_type: str) -> str:
    position = contact.get("position") or "Position unknown"
    return (
        f"{_full_name(contact)} ({position}) at {contact.get('company')} - "
        f"{RELATIONSHIP_PHRASES[relationship_type]} {match.firm_name}. "
        f"Known to {contact.get('team_member_name')} since {_format_connected_on(contact.get('connected_on'))}."
    )


def detect_relationships(
    linkedin_contacts: Iterable[Mapping],
    investors: Iterable[Mapping],
    today: Optional[date] = None,
) -> List[dict]:
    """
    Match every contact's company against the investor list.

    Returns investor_relationships rows ready for upsert. Contacts without a
    company or an id are skipped.
    """
    matcher = CompanyMatcher(investors)
    relationships = []

    for contact in linkedin_contacts:
        if not contact.get("company") or not contact.get("id"):
            continue

        for match in matcher.find_matches(contact["company"]):
            relationship_type = classify_relationship_type(match.similarity_score, contact.get("position"))
            relationships.append({
                "investor_id": match.investor_id,
                "linkedin_contact_id": str(contact["id"]),
                "relationship_type": relationship_type,
                "path_strength": calculate_path_strength(relationship_type, contact.get("connected_on"), today),
                "path_description": build_path_description(contact, match, relationship_type),
                "detected_via": DETECTED_VIA_COMPANY_MATCH,
            })

    logger.debug(f"Detected {len(relationships)} relationships across {len(matcher.entries)} investors")
    return relationships
