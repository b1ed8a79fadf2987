"""Validation of profile and address input."""

from typing import Any, Mapping

from gateways.models import AddressFields, ProfileChanges
from shared.exceptions import ValidationError
from shared.models import AddressType
from shared.validation import (
    check_email,
    check_phone,
    is_blank,
    is_valid_zip_code,
    require_fields,
)

REQUIRED_ADDRESS_FIELDS = (
    "full_name",
    "address_line1",
    "city",
    "state",
    "zip_code",
    "country",
    "phone",
)

MIN_NAME_LENGTH = 2


def validate_profile_changes(data: Mapping[str, Any]) -> ProfileChanges:
    """
    Validate a partial profile update.

    Fields that are missing or blank are left out of the update rather
    than sent as empty values. Unknown keys are ignored.
    """
    changes: dict[str, str] = {}

    for field in ("first_name", "last_name"):
        value = data.get(field)
        if is_blank(value):
            continue
        value = value.strip()
        if len(value) < MIN_NAME_LENGTH:
            label = field.replace("_", " ").capitalize()
            raise ValidationError(
                f"{label} must be at least {MIN_NAME_LENGTH} characters", field=field
            )
        changes[field] = value

    if not is_blank(data.get("email")):
        changes["email"] = check_email(data["email"].strip()).lower()

    if not is_blank(data.get("phone")):
        changes["phone"] = check_phone(data["phone"].strip())

    for field in ("date_of_birth", "gender"):
        if not is_blank(data.get(field)):
            changes[field] = data[field]

    if not changes:
        raise ValidationError("No profile changes provided")

    return ProfileChanges(**changes)


def validate_address(data: Mapping[str, Any]) -> AddressFields:
    """Validate and normalize address input."""
    require_fields(data, REQUIRED_ADDRESS_FIELDS)

    zip_code = data["zip_code"].strip()
    if not is_valid_zip_code(zip_code):
        raise ValidationError("Invalid zip code format", field="zip_code")

    phone = check_phone(data["phone"].strip())

    address_type = data.get("address_type") or AddressType.HOME
    try:
        address_type = AddressType(address_type)
    except ValueError:
        raise ValidationError(
            f"Address type must be one of: {', '.join(t.value for t in AddressType)}",
            field="address_type",
        )

    return AddressFields(
        full_name=data["full_name"].strip(),
        address_line1=data["address_line1"].strip(),
        address_line2=(data.get("address_line2") or "").strip(),
        city=data["city"].strip(),
        state=data["state"].strip(),
        zip_code=zip_code,
        country=data["country"].strip(),
        phone=phone,
        address_type=address_type,
        is_default=bool(data.get("is_default", False)),
    )
