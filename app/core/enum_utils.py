"""
Enum Utilities for VARCHAR-based Status Fields

Storage convention:
• Database: VARCHAR(50), never a PostgreSQL ENUM
• SQLAlchemy: String(50) with Mapped[str]
• Case: all enum values stored in UPPERCASE

Request schemas accept any casing and normalize it with
create_uppercase_validator before validation.
"""

from typing import Any, Set


def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Invalid values are returned untouched so Pydantic raises the validation error.

    Examples:
        >>> normalize_to_uppercase('percentage', {'PERCENTAGE', 'FLAT'})
        'PERCENTAGE'
        >>> normalize_to_uppercase('invalid', {'PERCENTAGE', 'FLAT'})
        'invalid'
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.strip().upper()
        if upper_v in valid_values:
            return upper_v
    return value


def create_uppercase_validator(field_name: str, valid_values: Set[str]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to UPPERCASE.

    Usage:
        class CommissionRuleCreate(BaseModel):
            type: str

            _normalize_type = create_uppercase_validator('type', VALID_COMMISSION_TYPES)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_uppercase(v, valid_values)

    return validate


# =============================================================================
# VALID VALUE SETS
# =============================================================================

VALID_COMMISSION_TYPES = {"PERCENTAGE", "FLAT"}

VALID_VENDOR_STATUSES = {"PENDING", "ACTIVE", "SUSPENDED", "REJECTED"}

VALID_PAYOUT_OUTCOMES = {"COMPLETED", "FAILED"}

VALID_ADDRESS_TYPES = {"BUSINESS", "WAREHOUSE", "BILLING", "PICKUP"}
