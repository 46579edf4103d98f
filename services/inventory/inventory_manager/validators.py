"""
Business-rule validation for inventory payloads.

Each validator returns a tuple of (is_valid, error_message, field) so the
service can report the offending field alongside a readable message.
"""
from typing import Any, Mapping, Optional, Tuple

from .schemas import MAX_INTEGER

REQUIRED_FIELDS = (
    "product_name", "product_id", "category", "location",
    "available_quantity", "reserved_quantity", "on_hand_quantity",
)
QUANTITY_FIELDS = ("available_quantity", "reserved_quantity", "on_hand_quantity")
TEXT_FIELDS = ("product_name", "product_id", "category", "location")
NON_EMPTY_FIELDS = ("product_name", "product_id")

# Column widths of the inventory table
MAX_LENGTHS = {
    "product_name": 255,
    "product_id": 50,
    "category": 100,
    "location": 100,
}

ValidationResult = Tuple[bool, str, Optional[str]]

VALID: ValidationResult = (True, "", None)


def is_valid_quantity(value: Any) -> bool:
    """True for non-negative integers that fit the column; booleans are rejected."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_INTEGER


def validate_required_fields(data: Mapping[str, Any]) -> ValidationResult:
    """
    Check that every required field is present.

    A field is absent when it is missing or None; zero quantities and
    other falsy values count as present.
    """
    for field in REQUIRED_FIELDS:
        if data.get(field) is None:
            return False, f"Missing required field: {field}", field
    return VALID


def validate_quantities(data: Mapping[str, Any]) -> ValidationResult:
    """Check every supplied (non-None) quantity field is a non-negative number."""
    for field in QUANTITY_FIELDS:
        value = data.get(field)
        if isinstance(value, int) and not isinstance(value, bool) and value > MAX_INTEGER:
            return False, f"{field} must be at most {MAX_INTEGER}", field
        if value is not None and not is_valid_quantity(value):
            return False, f"{field} must be a non-negative number", field
    return VALID


def validate_text_fields(data: Mapping[str, Any]) -> ValidationResult:
    """Check supplied text fields are strings that fit their columns."""
    for field in TEXT_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            return False, f"{field} must be a string", field
        if field in NON_EMPTY_FIELDS and not value.strip():
            return False, f"{field} must not be empty", field
        if len(value) > MAX_LENGTHS[field]:
            return False, f"{field} must be at most {MAX_LENGTHS[field]} characters", field
    return VALID
