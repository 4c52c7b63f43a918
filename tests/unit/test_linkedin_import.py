"""
Unit tests for LinkedIn CSV parsing and import
"""
import pytest

from investor_crm.core.errors import ValidationError
from investor_crm.services.linkedin import import_linkedin_csv, parse_linkedin_csv, validate_upload
from investor_crm.services.linkedin.importer import dedupe_by_url, to_contact_record
from investor_crm.services.linkedin.parser import LinkedInContactRow, parse_connected_on

HEADER = "First Name,Last Name,URL,Email Address,Company,Position,Connected On"

CSV_WITH_NOTES = "\n".join([
    "Notes:",
    '"When exporting your connection data, you may notice that some of the email addresses are missing."',
    "",
    HEADER,
    "Jane,Doe,https://www.linkedin.com/in/janedoe,jane@sequoiacap.com,Sequoia Capital,Partner,15 Jun 2025",
    ",Smith,https://www.linkedin.com/in/smith,,Acme,Analyst,01 Jan 2024",
    ",,,,,,",
    "Sam,Lee,,not-an-email,Greylock,Principal,",
])


# ============================================================================
# PARSER
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    ("10 Feb 2026", "2026-02-10"),
    ("2024-01-05", "2024-01-05"),
    ("", None),
    ("sometime", None),
])
def test_parse_connected_on(raw, expected):
    assert parse_connected_on(raw) == expected


def test_parse_skips_notes_preamble_and_blank_rows():
    result = parse_linkedin_csv(CSV_WITH_NOTES)

    assert result.total_rows == 3
    assert [c.first_name for c in result.contacts] == ["Jane"]

    jane = result.contacts[0]
    assert jane.linkedin_url == "https://www.linkedin.com/in/janedoe"
    assert jane.connected_on == "2025-06-15"


def test_parse_reports_row_errors():
    result = parse_linkedin_csv(CSV_WITH_NOTES)

    assert {"row": 2, "field": "first_name", "message": "First name is required"} in result.errors
    assert {"row": 3, "field": "email", "message": "Invalid email address"} in result.errors


def test_parse_accepts_bytes_with_bom():
    content = ("\ufeff" + HEADER + "\nAda,Lovelace,,,,,\n").encode("utf-8")
    result = parse_linkedin_csv(content)
    assert [c.last_name for c in result.contacts] == ["Lovelace"]


def test_parse_empty_file():
    result = parse_linkedin_csv("")
    assert result.total_rows == 0
    assert result.contacts == []


@pytest.mark.parametrize("filename,team_member,message", [
    (None, "Todd", "No file provided"),
    ("connections.csv", None, "Team member name is required"),
    ("connections.csv", "Bob", "Invalid team member name"),
    ("connections.xlsx", "Todd", "File must be a CSV file"),
])
def test_validate_upload_errors(filename, team_member, message):
    with pytest.raises(ValidationError, match=message):
        validate_upload(filename, 100, team_member)


def test_validate_upload_size_limit():
    with pytest.raises(ValidationError, match="under 10MB"):
        validate_upload("connections.csv", 11 * 1024 * 1024, "Todd")


# ============================================================================
# IMPORTER
# ============================================================================

def _row(first, url=None, company=None):
    return LinkedInContactRow(first_name=first, last_name="X", linkedin_url=url, company=company)


def test_dedupe_by_url_keeps_last_row():
    rows = [
        _row("A", "https://l.in/1"), _row("B", "https://l.in/1"), _row("C", company="Acme"),
        _row("D", "https://l.in/2"), _row("C", company="acme "),
    ]

    with_url, without_url = dedupe_by_url(rows)

    assert [r.first_name for r in with_url] == ["B", "D"]
    assert [(r.first_name, r.company) for r in without_url] == [("C", "acme ")]


def test_to_contact_record_matches_table_columns():
    record = to_contact_record(_row("A", company="Sequoia Capital LLC"), "Todd")

    assert record["normalized_company"] == "sequoia capital"
    assert record["team_member_name"] == "Todd"
    assert set(record) == {
        "first_name", "last_name", "linkedin_url", "email", "company",
        "position", "normalized_company", "connected_on", "team_member_name",
    }


@pytest.mark.asyncio
async def test_reimport_skips_known_contacts_without_url(supabase):
    csv_text = "\n".join([HEADER, "Sam,Lee,,,Greylock,Principal,", "Ana,Ruiz,,,Benchmark,Partner,"])
    supabase.respond(
        "linkedin_contacts",
        [{"first_name": "Sam", "last_name": "Lee", "company": "Greylock"}],
        [{"id": "c-7"}],
    )

    result = await import_linkedin_csv(supabase, csv_text.encode(), "Connections.csv", "Todd", "user-1", detect=False)

    assert result.imported == 1
    assert result.skipped == 1
    lookup, insert = supabase.queries_for("linkedin_contacts")
    assert ("linkedin_url", "null") in [args for args, _ in lookup.called("is_")]
    assert ("team_member_name", "Todd") in [args for args, _ in lookup.called("eq")]
    (records,), _ = insert.called("insert")[0]
    assert [r["first_name"] for r in records] == ["Ana"]
    assert insert.called("upsert") == []


@pytest.mark.asyncio
async def test_import_upserts_and_detects_relationships(supabase):
    supabase.respond("linkedin_contacts", [{"id": "c-1"}], [
        {"id": "c-1", "full_name": "Jane Doe", "company": "Sequoia Capital", "position": "Partner",
         "team_member_name": "Todd", "connected_on": "2025-06-15"},
    ])
    supabase.respond("investors", [{"id": "inv-1", "firm_name": "Sequoia Capital"}])
    supabase.respond("investor_relationships", [{"id": "rel-1"}])

    result = await import_linkedin_csv(supabase, CSV_WITH_NOTES.encode(), "Connections.csv", "Todd", "user-1")

    assert result.success is True
    assert result.imported == 1
    assert result.skipped == 0
    assert result.relationships_detected == 1
    assert result.contact_ids == ["c-1"]
    assert len(result.errors) == 2

    upsert = supabase.queries_for("linkedin_contacts")[0]
    (records,), kwargs = upsert.called("upsert")[0]
    assert kwargs == {"on_conflict": "linkedin_url,team_member_name"}
    assert records[0]["normalized_company"] == "sequoia capital"

    rel_upsert = supabase.queries_for("investor_relationships")[0]
    assert rel_upsert.called("upsert")[0][1] == {"on_conflict": "linkedin_contact_id,investor_id"}


@pytest.mark.asyncio
async def test_import_without_detection(supabase):
    supabase.respond("linkedin_contacts", [{"id": "c-1"}])

    result = await import_linkedin_csv(
        supabase, CSV_WITH_NOTES.encode(), "Connections.csv", "Todd", "user-1", detect=False,
    )

    assert result.relationships_detected == 0
    assert result.contact_ids == ["c-1"]
    assert supabase.queries_for("investors") == []


@pytest.mark.asyncio
async def test_import_reports_database_failure(supabase):
    supabase.respond("linkedin_contacts", RuntimeError("connection reset"))

    result = await import_linkedin_csv(supabase, CSV_WITH_NOTES.encode(), "Connections.csv", "Todd", "user-1")

    assert result.success is False
    assert result.imported == 0
    assert {"row": 0, "message": "connection reset"} in result.errors


def test_contact_ids_are_not_serialized():
    from investor_crm.models.schemas.linkedin import ImportResult

    assert "contact_ids" not in ImportResult(success=True, contact_ids=["c-1"]).model_dump()
