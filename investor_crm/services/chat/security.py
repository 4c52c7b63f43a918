"""
Chat Security
Input validation for the assistant and redaction of its tool output
"""
import re
from typing import Any, Iterable

MAX_INPUT_LENGTH = 2000

PROMPT_INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(previous|all|prior|earlier)\s+(instructions|prompts|directions)", re.IGNORECASE),
    re.compile(r"forget\s+(previous|all|prior|earlier)", re.IGNORECASE),
    re.compile(r"disregard\s+(previous|all|prior|earlier)", re.IGNORECASE),
    re.compile(r"for\s+each\s+\w+\s+do\s+", re.IGNORECASE),
    re.compile(r"repeat\s+after\s+me", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"assistant\s*:", re.IGNORECASE),
    re.compile(r"<\|.*?\|>"),
    re.compile(r"\[SYSTEM\]", re.IGNORECASE),
    re.compile(r"\[INST\]", re.IGNORECASE),
]

# Tab (\x09), newline (\x0A) and carriage return (\x0D) survive
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

DEFAULT_REDACTED_FIELDS = ("email", "phone", "created_by")

_EMAIL = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_PHONE = re.compile(r"\+?\d[\d\s().-]{7,}\d")


def validate_user_input(text: str) -> dict:
    """Returns {valid, sanitized, reason?}."""
    if len(text) > MAX_INPUT_LENGTH:
        return {
            "valid": False,
            "sanitized": text[:MAX_INPUT_LENGTH],
            "reason": f"Input exceeds maximum length of {MAX_INPUT_LENGTH} characters",
        }

    for pattern in PROMPT_INJECTION_PATTERNS:
        if pattern.search(text):
            return {"valid": False, "sanitized": text, "reason": "Input contains potentially malicious patterns"}

    return {"valid": True, "sanitized": CONTROL_CHARS.sub("", text)}


def sanitize_tool_output(data: Any, redact_fields: Iterable[str] = ()) -> Any:
    """Recursively drop PII fields before tool results reach the model."""
    fields = set(DEFAULT_REDACTED_FIELDS) | set(redact_fields)

    if isinstance(data, list):
        return [sanitize_tool_output(item, fields) for item in data]
    if isinstance(data, dict):
        return {key: sanitize_tool_output(value, fields) for key, value in data.items() if key not in fields}
    return data


def redact_pii(text: str) -> str:
    """For log lines only."""
    if not text:
        return text
    return _PHONE.sub("[phone]", _EMAIL.sub("[email]", text))
