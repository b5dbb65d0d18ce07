"""Semantic field types."""

from enum import Enum


class FieldType(str, Enum):
    """Canonical semantic type of a field, inferred from its name."""

    CURRENCY = "currency"
    DATE = "date"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TEXT_LOWERCASE = "text_lowercase"
    TEXT_PRESERVE = "text_preserve"
