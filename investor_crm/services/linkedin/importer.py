"""
LinkedIn Import
CSV -> linkedin_contacts upsert -> investor relationship detection
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from supabase import Client

from investor_crm.models.schemas.linkedin import ImportResult
from investor_crm.services.linkedin.normalizer import normalize_company_name
from investor_crm.services.linkedin.parser import LinkedInContactRow, parse_linkedin_csv, validate_upload
from investor_crm.services.linkedin.relationships import detect_relationships
from investor_crm.utils.sanitize import escape_like

logger = logging.getLogger(__name__)

BATCH_SIZE = 500
CONTACT_CONFLICT_KEYS = "linkedin_url,team_member_name"
RELATIONSHIP_CONFLICT_KEYS = "linkedin_contact_id,investor_id"

DETECTION_COLUMNS = "id, first_name, last_name, full_name, company, position, connected_on, team_member_name"


def _batches(items: List, size: int = BATCH_SIZE) -> Iterable[List]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _identity(first_name: Optional[str], last_name: Optional[str], company: Optional[str]) -> Tuple[str, str, str]:
    return tuple((value or "").strip().lower() for value in (first_name, last_name, company))


def dedupe_by_url(rows: List[LinkedInContactRow]) -> Tuple[List[LinkedInContactRow], List[LinkedInContactRow]]:
    """
    Split rows into (with URL, without URL), keeping the last row for each
    LinkedIn URL and for each name + company among rows without one.

    Postgres rejects duplicate conflict keys within a single upsert, and a
    NULL URL never matches the conflict target, so URL-less rows are
    deduplicated here and inserted separately.
    """
    by_url: Dict[str, LinkedInContactRow] = {}
    by_identity: Dict[Tuple[str, str, str], LinkedInContactRow] = {}
    for row in rows:
        if row.linkedin_url:
            by_url[row.linkedin_url] = row
        else:
            by_identity[_identity(row.first_name, row.last_name, row.company)] = row
    return list(by_url.values()), list(by_identity.values())


def to_contact_record(row: LinkedInContactRow, team_member: str) -> dict:
    return {
        "first_name": row.first_name,
        "last_name": row.last_name,
        "linkedin_url": row.linkedin_url,
        "email": row.email,
        "company": row.company,
        "position": row.position,
        "normalized_company": normalize_company_name(row.company) if row.company else None,
        "connected_on": row.connected_on,
        "team_member_name": team_member,
    }


def _new_rows_without_url(supabase: Client, rows: List[LinkedInContactRow], team_member: str) -> List[LinkedInContactRow]:
    """Drop URL-less rows this team member already imported (same name and company)."""
    if not rows:
        return []
    result = supabase.table("linkedin_contacts")\
        .select("first_name, last_name, company")\
        .eq("team_member_name", team_member)\
        .is_("linkedin_url", "null")\
        .execute()
    known = {
        _identity(existing.get("first_name"), existing.get("last_name"), existing.get("company"))
        for existing in result.data or []
    }
    return [row for row in rows if _identity(row.first_name, row.last_name, row.company) not in known]


# ============================================================================
# RELATIONSHIP DETECTION
# ============================================================================

def _load_investors(supabase: Client) -> List[dict]:
    result = supabase.table("investors")\
        .select("id, firm_name")\
        .is_("deleted_at", "null")\
        .execute()
    return result.data or []


async def run_relationship_detection(supabase: Client, contact_ids: Optional[List[str]] = None) -> int:
    """
    Detect relationships for the given contacts (all contacts when None)
    and upsert them. Returns the number of relationship rows written.
    """
    investors = _load_investors(supabase)
    if not investors:
        logger.info("ℹ️  No investors to match LinkedIn contacts against")
        return 0

    contacts: List[dict] = []
    if contact_ids is None:
        result = supabase.table("linkedin_contacts")\
            .select(DETECTION_COLUMNS)\
            .not_.is_("company", "null")\
            .execute()
        contacts = result.data or []
    else:
        for batch in _batches(contact_ids):
            result = supabase.table("linkedin_contacts")\
                .select(DETECTION_COLUMNS)\
                .in_("id", batch)\
                .execute()
            contacts.extend(result.data or [])

    relationships = detect_relationships(contacts, investors)

    written = 0
    for batch in _batches(relationships):
        result = supabase.table("investor_relationships")\
            .upsert(batch, on_conflict=RELATIONSHIP_CONFLICT_KEYS)\
            .execute()
        written += len(result.data or [])

    logger.info(f"🔗 Relationship detection: {len(contacts)} contacts x {len(investors)} investors -> {written} paths")
    return written


async def rerun_detection(supabase: Client) -> int:
    """Re-score every imported contact, e.g. after new investors are added."""
    return await run_relationship_detection(supabase)


# ============================================================================
# IMPORT
# ============================================================================

async def import_linkedin_csv(
    supabase: Client,
    content: bytes,
    filename: Optional[str],
    team_member: Optional[str],
    user_id: Optional[str],
    detect: bool = True,
) -> ImportResult:
    """
    Import one team member's LinkedIn export.

    Validation errors for individual rows are returned alongside the counts;
    a database failure stops the import and reports what was written so far.
    With detect=False the caller schedules detection for `contact_ids`.
    """
    validate_upload(filename, len(content or b""), team_member)

    parsed = parse_linkedin_csv(content)
    with_url, without_url = dedupe_by_url(parsed.contacts)
    new_without_url = _new_rows_without_url(supabase, without_url, team_member)

    upserts = [to_contact_record(row, team_member) for row in with_url]
    inserts = [to_contact_record(row, team_member) for row in new_without_url]

    imported = 0
    skipped = len(without_url) - len(new_without_url)
    imported_ids: List[str] = []

    writes = [(True, batch) for batch in _batches(upserts)] + [(False, batch) for batch in _batches(inserts)]

    offset = 0
    for upsert, batch in writes:
        try:
            table = supabase.table("linkedin_contacts")
            if upsert:
                result = table.upsert(batch, on_conflict=CONTACT_CONFLICT_KEYS).execute()
            else:
                result = table.insert(batch).execute()
        except Exception as e:
            logger.error(f"❌ LinkedIn import failed at row {offset}: {e}")
            return ImportResult(
                success=False,
                imported=imported,
                skipped=skipped,
                errors=[*parsed.errors, {"row": offset, "message": str(e)}],
            )

        returned = result.data or []
        imported += len(returned)
        skipped += len(batch) - len(returned)
        imported_ids.extend(str(row["id"]) for row in returned if row.get("id"))
        offset += len(batch)

    logger.info(
        f"📥 {team_member} (by {user_id}): imported {imported}, skipped {skipped}, {len(parsed.errors)} row errors"
    )

    relationships_detected = 0
    if detect and imported_ids:
        relationships_detected = await run_relationship_detection(supabase, imported_ids)

    return ImportResult(
        success=True,
        imported=imported,
        skipped=skipped,
        errors=parsed.errors,
        relationships_detected=relationships_detected,
        contact_ids=imported_ids,
    )


# ============================================================================
# QUERIES
# ============================================================================

async def search_linkedin_contacts(
    supabase: Client,
    query: Optional[str] = None,
    team_member: Optional[str] = None,
    limit: int = 50,
) -> List[dict]:
    builder = supabase.table("linkedin_contacts").select("*")

    if team_member:
        builder = builder.eq("team_member_name", team_member)
    if query and query.strip():
        term = escape_like(query.strip())
        builder = builder.or_(f"full_name.ilike.%{term}%,company.ilike.%{term}%,position.ilike.%{term}%")

    result = builder.order("full_name").limit(limit).execute()
    return result.data or []


async def get_linkedin_stats(supabase: Client) -> List[Dict]:
    """Contact counts per team member."""
    result = supabase.table("linkedin_contacts").select("team_member_name").execute()

    counts: Dict[str, int] = {}
    for row in result.data or []:
        name = row.get("team_member_name")
        counts[name] = counts.get(name, 0) + 1

    return [{"team_member_name": name, "count": count} for name, count in counts.items()]
