"""
Input validation and sanitisation utilities.

String input from clients is HTML-escaped for angle brackets before it is
stored, matching the sanitiser the public site has always relied on.
"""
import re
from typing import Any, Optional

from domain.errors import ValidationError

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def sanitize_text(value: Any) -> Any:
    """Escape ``<`` and ``>`` in strings; other values pass through."""
    if isinstance(value, str):
        return value.replace("<", "&lt;").replace(">", "&gt;")
    return value


def sanitize_payload(value: Any) -> Any:
    """Recursively sanitise strings inside dicts/lists (free-form JSON details)."""
    if isinstance(value, dict):
        return {k: sanitize_payload(v) for k, v in value.items()}
    if isinstance(value, list):
        return [sanitize_payload(v) for v in value]
    return sanitize_text(value)


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(_EMAIL.match(email.strip()))


def require_text(value: Optional[str], field: str) -> str:
    """Return the stripped, sanitised value or raise 400 if it is blank."""
    if value is None or not value.strip():
        raise ValidationError("is required", field=field)
    return sanitize_text(value.strip())


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return sanitize_text(value) if value else None
