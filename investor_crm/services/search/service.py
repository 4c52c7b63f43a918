"""
Global Search
ilike search across investors, contacts and LinkedIn connections
"""
import logging
from typing import Dict, List

from supabase import Client

from investor_crm.core.errors import ValidationError
from investor_crm.utils.sanitize import escape_like, sanitize_text

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _pattern(query: str) -> str:
    return f"%{escape_like(query)}%"


async def global_search(supabase: Client, query: str, limit: int = DEFAULT_LIMIT) -> Dict[str, List[dict]]:
    """Results grouped by type: {investors, contacts, linkedin_contacts}."""
    term = sanitize_text(query or "").strip()
    if len(term) < MIN_QUERY_LENGTH:
        raise ValidationError(f"Search query must be at least {MIN_QUERY_LENGTH} characters")
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}")

    pattern = _pattern(term)

    investors = supabase.table("investors")\
        .select("id, firm_name, stage, relationship_owner, partner_source")\
        .is_("deleted_at", "null")\
        .or_(f"firm_name.ilike.{pattern},partner_source.ilike.{pattern}")\
        .limit(limit)\
        .execute()

    contacts = supabase.table("contacts")\
        .select("id, name, email, title, investor_id, investors(firm_name)")\
        .is_("deleted_at", "null")\
        .or_(f"name.ilike.{pattern},email.ilike.{pattern}")\
        .limit(limit)\
        .execute()

    linkedin = supabase.table("linkedin_contacts")\
        .select("id, full_name, company, position, team_member_name, linkedin_url")\
        .or_(f"full_name.ilike.{pattern},company.ilike.{pattern}")\
        .limit(limit)\
        .execute()

    results = {
        "investors": investors.data or [],
        "contacts": contacts.data or [],
        "linkedin_contacts": linkedin.data or [],
    }
    logger.debug(f"🔍 Search '{term}': {sum(len(v) for v in results.values())} results")
    return results
