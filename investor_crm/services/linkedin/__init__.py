"""
LinkedIn Contact Intelligence
CSV import, company normalization/matching and warm-intro relationship scoring
"""
from investor_crm.services.linkedin.parser import (
    TEAM_MEMBERS,
    LinkedInContactRow,
    ParseResult,
    parse_linkedin_csv,
    validate_upload,
)
from investor_crm.services.linkedin.normalizer import normalize_company_name, extract_company_tokens
from investor_crm.services.linkedin.matcher import CompanyMatch, CompanyMatcher, find_company_matches
from investor_crm.services.linkedin.relationships import (
    calculate_path_strength,
    strength_label,
    classify_relationship_type,
    build_path_description,
    detect_relationships,
)
from investor_crm.services.linkedin.importer import (
    import_linkedin_csv,
    run_relationship_detection,
    rerun_detection,
    search_linkedin_contacts,
    get_linkedin_stats,
)

__all__ = [
    "TEAM_MEMBERS",
    "LinkedInContactRow",
    "ParseResult",
    "parse_linkedin_csv",
    "validate_upload",
    "normalize_company_name",
    "extract_company_tokens",
    "CompanyMatch",
    "CompanyMatcher",
    "find_company_matches",
    "calculate_path_strength",
    "strength_label",
    "classify_relationship_type",
    "build_path_description",
    "detect_relationships",
    "import_linkedin_csv",
    "run_relationship_detection",
    "rerun_detection",
    "search_linkedin_contacts",
    "get_linkedin_stats",
]
