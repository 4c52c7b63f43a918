"""
LinkedIn CSV Parser
Parses the "Connections.csv" export, including LinkedIn's "Notes:" preamble
"""
import csv
import io
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from investor_crm.core.config import settings
from investor_crm.core.errors import ValidationError as CRMValidationError
from investor_crm.utils.sanitize import is_valid_url

logger = logging.getLogger(__name__)

TEAM_MEMBERS = ("Todd", "Jeff", "Jackson", "Morino")

HEADER_MAP = {
    "First Name": "first_name",
    "Last Name": "last_name",
    "URL": "linkedin_url",
    "Email Address": "email",
    "Company": "company",
    "Position": "position",
    "Connected On": "connected_on",
}

HEADER_SCAN_LINES = 10
MAX_NAME_LENGTH = 200
MAX_COMPANY_LENGTH = 500


# ============================================================================
# ROW MODEL
# ============================================================================

def _blank_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_connected_on(value: Optional[str]) -> Optional[str]:
    """
    "10 Feb 2026" → "2026-02-10". Anything unparseable becomes None rather
    than failing the row.
    """
    value = _blank_to_none(value)
    if not value:
        return None
    for fmt in ("%d %b %Y", "%d %B %Y", "%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


class LinkedInContactRow(BaseModel):
    """One validated CSV row"""
    first_name: str
    last_name: str
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    connected_on: Optional[str] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _required_name(cls, value, info):
        label = "First name" if info.field_name == "first_name" else "Last name"
        value = _blank_to_none(value)
        if not value:
            raise PydanticCustomError("required", f"{label} is required")
        if len(value) > MAX_NAME_LENGTH:
            raise PydanticCustomError("too_long", f"{label} must be {MAX_NAME_LENGTH} characters or less")
        return value

    @field_validator("linkedin_url", mode="before")
    @classmethod
    def _url(cls, value):
        value = _blank_to_none(value)
        if value and not is_valid_url(value):
            raise PydanticCustomError("url", "Invalid LinkedIn URL")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, value):
        value = _blank_to_none(value)
        if value:
            try:
                validate_email(value, check_deliverability=False)
            except EmailNotValidError:
                raise PydanticCustomError("email", "Invalid email address")
        return value

    @field_validator("company", "position", mode="before")
    @classmethod
    def _bounded_text(cls, value, info):
        value = _blank_to_none(value)
        if value and len(value) > MAX_COMPANY_LENGTH:
            label = "Company name" if info.field_name == "company" else "Position title"
            raise PydanticCustomError("too_long", f"{label} too long")
        return value

    @field_validator("connected_on", mode="before")
    @classmethod
    def _connected_on(cls, value):
        return parse_connected_on(value)


class ParseResult(BaseModel):
    contacts: List[LinkedInContactRow] = []
    errors: List[Dict] = []
    total_rows: int = 0


# ============================================================================
# PARSING
# ============================================================================

def _map_header(header: str) -> str:
    header = header.strip()
    return HEADER_MAP.get(header, header.lower().replace(" ", "_"))


def _find_header_index(lines: List[str]) -> int:
    for index, line in enumerate(lines[:HEADER_SCAN_LINES]):
        if line.startswith("First Name,"):
            return index
    return 0


def read_rows(csv_text: str) -> List[Dict[str, Optional[str]]]:
    """
    Raw rows keyed by mapped header names.

    Blank lines (including lines of only commas) are skipped.
    """
    lines = csv_text.splitlines()
    start = _find_header_index(lines)
    reader = csv.reader(io.StringIO("\n".join(lines[start:])))

    try:
        headers = [_map_header(h) for h in next(reader)]
    except StopIteration:
        return []

    rows = []
    for values in reader:
        if not any(cell.strip() for cell in values):
            continue
        padded = values + [None] * (len(headers) - len(values))
        rows.append(dict(zip(headers, padded)))
    return rows


def parse_linkedin_csv(content: Union[str, bytes]) -> ParseResult:
    """
    Parse and validate a LinkedIn connections export.

    Invalid rows are reported as {row, field, message} (rows numbered from 1)
    and left out of `contacts`.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")

    rows = read_rows(content)
    contacts = []
    errors = []

    for index, raw in enumerate(rows, start=1):
        try:
            contacts.append(LinkedInContactRow.model_validate(raw))
        except ValidationError as e:
            for issue in e.errors():
                errors.append({
                    "row": index,
                    "field": ".".join(str(part) for part in issue["loc"]),
                    "message": issue["msg"],
                })

    logger.info(f"📄 Parsed LinkedIn CSV: {len(contacts)} valid / {len(rows)} rows, {len(errors)} errors")
    return ParseResult(contacts=contacts, errors=errors, total_rows=len(rows))


def validate_upload(filename: Optional[str], size: int, team_member: Optional[str]) -> None:
    """Raise ValidationError for a missing team member or a bad file."""
    if not filename:
        raise CRMValidationError("No file provided")
    if not team_member:
        raise CRMValidationError("Team member name is required")
    if team_member not in TEAM_MEMBERS:
        raise CRMValidationError("Invalid team member name")
    if not filename.lower().endswith(".csv"):
        raise CRMValidationError("File must be a CSV file")
    if size > settings.max_upload_bytes:
        raise CRMValidationError("File size must be under 10MB")
