"""
Unit tests for company normalization, fuzzy matching and relationship scoring
"""
from datetime import date

import pytest

from investor_crm.services.linkedin import (
    CompanyMatch,
    build_path_description,
    calculate_path_strength,
    classify_relationship_type,
    detect_relationships,
    extract_company_tokens,
    find_company_matches,
    normalize_company_name,
    strength_label,
)
from investor_crm.services.linkedin.matcher import calculate_company_similarity
from investor_crm.services.linkedin.relationships import recency_multiplier

TODAY = date(2025, 6, 30)

INVESTORS = [
    {"id": "inv-1", "firm_name": "Sequoia Capital"},
    {"id": "inv-2", "firm_name": "Andreessen Horowitz"},
    {"id": "inv-3", "firm_name": "Greylock"},
]


# ============================================================================
# NORMALIZATION
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    ("Microsoft Corporation", "microsoft"),
    ("Goldman Sachs Group, Inc.", "goldman sachs group"),
    ("Andreessen Horowitz", "andreessen horowitz"),
    ("Sequoia Capital LLC", "sequoia capital"),
    ("  Acme   Co. ", "acme"),
    ("Smith & Wesson Holdings", "smith wesson"),
    ("", ""),
])
def test_normalize_company_name(raw, expected):
    assert normalize_company_name(raw) == expected


def test_extract_company_tokens_drops_short_words():
    assert extract_company_tokens("a16z of ny ventures") == {"a16z", "ventures"}


# ============================================================================
# MATCHING
# ============================================================================

def test_similarity_identical_and_empty():
    assert calculate_company_similarity("sequoia", "sequoia") == 1.0
    assert calculate_company_similarity("", "sequoia") == 0.0


def test_exact_match():
    matches = find_company_matches("Sequoia Capital", INVESTORS)
    assert [m.investor_id for m in matches] == ["inv-1"]
    assert matches[0].similarity_score == 1.0


def test_partial_name_matches_longer_firm_name():
    matches = find_company_matches("Sequoia", [{"id": "inv-9", "firm_name": "Sequoia Heritage"}])
    assert len(matches) == 1
    assert matches[0].similarity_score == 1.0


def test_unrelated_company_does_not_match():
    assert find_company_matches("Microsoft", INVESTORS) == []


def test_short_names_are_ignored():
    assert find_company_matches("IBM", [{"id": "inv-9", "firm_name": "IBM"}]) == []


def test_threshold_is_exclusive():
    assert find_company_matches("Sequoia Capital", INVESTORS, threshold=1.0) == []


def test_similar_strings_without_shared_token_do_not_match():
    # "grey lock" is close to "greylock" character-wise but shares no word
    assert find_company_matches("Grey Lock", INVESTORS) == []


def test_investors_without_firm_name_are_skipped():
    assert find_company_matches("Sequoia Capital", [{"id": "inv-9", "firm_name": None}]) == []


# ============================================================================
# SCORING
# ============================================================================

@pytest.mark.parametrize("connected_on,expected", [
    ("2025-06-01", 1.2),   # 29 days
    ("2025-05-31", 1.0),   # 30 days
    ("2025-04-02", 1.0),   # 89 days
    ("2025-04-01", 0.9),   # 90 days
    ("2024-07-01", 0.9),   # 364 days
    ("2024-06-30", 0.8),   # 365 days
    (None, 1.0),
    ("not a date", 1.0),
])
def test_recency_multiplier(connected_on, expected):
    assert recency_multiplier(connected_on, TODAY) == expected


def test_path_strength_is_capped_at_one():
    assert calculate_path_strength("works_at", "2025-06-20", TODAY) == 1.0


def test_path_strength_decays_with_age():
    assert calculate_path_strength("industry_overlap", "2023-01-01", TODAY) == 0.24
    assert calculate_path_strength("former_colleague", "2025-06-20", TODAY) == 0.84


@pytest.mark.parametrize("score,label", [(0.7, "strong"), (0.69, "medium"), (0.4, "medium"), (0.39, "weak")])
def test_strength_label(score, label):
    assert strength_label(score) == label


def test_classify_relationship_type():
    assert classify_relationship_type(0.95, "Partner") == "works_at"
    assert classify_relationship_type(0.95, None) == "industry_overlap"
    assert classify_relationship_type(0.79, "Partner") == "industry_overlap"


def test_build_path_description():
    contact = {
        "full_name": "Jane Doe",
        "position": "Partner",
        "company": "Sequoia Capital",
        "team_member_name": "Todd",
        "connected_on": "2025-06-15",
    }
    match = CompanyMatch(investor_id="inv-1", firm_name="Sequoia Capital", similarity_score=1.0)

    assert build_path_description(contact, match, "works_at") == (
        "Jane Doe (Partner) at Sequoia Capital - currently works at Sequoia Capital. "
        "Known to Todd since Jun 15, 2025."
    )


def test_build_path_description_without_position_or_date():
    contact = {"first_name": "Sam", "last_name": "Lee", "company": "Greylock", "team_member_name": "Jeff"}
    match = CompanyMatch(investor_id="inv-3", firm_name="Greylock", similarity_score=1.0)

    description = build_path_description(contact, match, "industry_overlap")
    assert description.startswith("Sam Lee (Position unknown) at Greylock - has industry connection to Greylock.")
    assert description.endswith("since Date unknown.")


def test_detect_relationships():
    contacts = [
        {"id": "c-1", "full_name": "Jane Doe", "company": "Sequoia Capital", "position": "Partner",
         "team_member_name": "Todd", "connected_on": "2025-06-15"},
        {"id": "c-2", "full_name": "No Company", "company": None, "team_member_name": "Todd"},
        {"id": "c-3", "full_name": "Other", "company": "Microsoft", "team_member_name": "Jeff"},
    ]

    relationships = detect_relationships(contacts, INVESTORS, today=TODAY)

    assert len(relationships) == 1
    rel = relationships[0]
    assert rel["investor_id"] == "inv-1"
    assert rel["linkedin_contact_id"] == "c-1"
    assert rel["relationship_type"] == "works_at"
    assert rel["path_strength"] == 1.0
    assert rel["detected_via"] == "company_match"
