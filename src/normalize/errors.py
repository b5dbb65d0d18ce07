"""Errors raised while coercing field values."""

from typing import Any

from src.normalize.types import FieldType


class NormalizationError(Exception):
    """A single field value could not be coerced to its semantic type."""

    def __init__(
        self,
        field_name: str,
        value: Any,
        field_type: FieldType,
        reason: str,
    ) -> None:
        """Initialize the normalization error.

        Args:
            field_name: Name of the field being normalized.
            value: Raw value that failed.
            field_type: Target semantic type.
            reason: Underlying failure description.
        """
        self.field_name = field_name
        self.value = value
        self.field_type = field_type
        self.reason = reason
        super().__init__(
            f"Cannot normalize field '{field_name}' as {field_type.value}: {reason}"
        )
