"""Field validators shared by request schemas."""
import re
from typing import Optional

NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
GEMINI_API_KEY_RE = re.compile(r"^AIza[0-9A-Za-z\-_]{35}$")


def normalize_email(value: str) -> str:
    return value.strip().lower()


def validate_name(value: str) -> str:
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("Name must be between 2 and 50 characters")
    if not NAME_RE.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def validate_gemini_api_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not GEMINI_API_KEY_RE.match(value):
        raise ValueError("Please provide a valid Gemini API key")
    return value
