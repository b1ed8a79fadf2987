"""
Client-side input validation.

Shared by the session and accounts modules so both apply the same
rules. Everything here runs before any network call.
"""

import re
from typing import Any, Iterable, Mapping

from .exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# At least 8 characters, one lowercase, one uppercase, one digit
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")

PHONE_PATTERN = re.compile(
    r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$"
)

ZIP_CODE_PATTERN = re.compile(r"^\d{5,6}(-\d{4})?$")

OTP_PATTERN = re.compile(r"^\d{6}$")

PASSWORD_RULES_MESSAGE = (
    "Password must be at least 8 characters with uppercase, lowercase, and number"
)


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_strong_password(password: str) -> bool:
    return bool(password) and PASSWORD_PATTERN.match(password) is not None


def is_valid_phone(phone: str) -> bool:
    return bool(phone) and PHONE_PATTERN.match(phone) is not None


def is_valid_zip_code(zip_code: str) -> bool:
    return bool(zip_code) and ZIP_CODE_PATTERN.match(zip_code) is not None


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Raise ValidationError for the first missing or blank field."""
    for field in fields:
        if is_blank(data.get(field)):
            raise ValidationError(f"{field} is required", field=field)


def check_email(email: str, field: str = "email") -> str:
    if not is_valid_email(email):
        raise ValidationError("Invalid email format", field=field)
    return email


def check_password_strength(password: str, field: str = "password") -> str:
    if not is_strong_password(password):
        raise ValidationError(PASSWORD_RULES_MESSAGE, field=field)
    return password


def check_phone(phone: str, field: str = "phone") -> str:
    if not is_valid_phone(phone):
        raise ValidationError("Invalid phone number format", field=field)
    return phone


def check_otp_code(code: str) -> str:
    if not code or OTP_PATTERN.match(code) is None:
        raise ValidationError("OTP must be 6 digits", field="code")
    return code
