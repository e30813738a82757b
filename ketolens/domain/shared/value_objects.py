"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

import re
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

BARCODE_PATTERN = re.compile(r"[0-9]{8,14}")


def is_valid_barcode(value: object) -> bool:
    """
    Check barcode shape without raising.

    Accepts exactly 8-14 ASCII digits (EAN-8, UPC-A, EAN-13, GTIN-14).

    Example:
        >>> is_valid_barcode("3017620422003")
        True
        >>> is_valid_barcode("12a45678")
        False
    """
    return isinstance(value, str) and BARCODE_PATTERN.fullmatch(value) is not None


class CountryCode(BaseModel):
    """
    Region of a product record (ISO 3166-1 alpha-2).

    Example:
        >>> CountryCode(value="us").value
        'US'
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field("US", min_length=2, max_length=2)

    @field_validator("value")
    @classmethod
    def upper(cls, v: str) -> str:
        """Normalize to upper case letters."""
        if not (v.isascii() and v.isalpha()):
            raise ValueError(f"Country code must be letters, got {v!r}")
        return v.upper()

    def __str__(self) -> str:
        """String representation."""
        return self.value


def new_record_id() -> str:
    """Generate a record identifier for cache rows and audit events."""
    return uuid.uuid4().hex
