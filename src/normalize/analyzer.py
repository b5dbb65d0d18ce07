"""Diagnostics for how normalization changes sample values."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.normalize.errors import NormalizationError
from src.normalize.types import FieldType
from src.normalize.values import ValueNormalizer


MAX_EXAMPLES = 3


class ChangeExample(BaseModel):
    """A value that normalization changed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    original: Any
    normalized: Any
    original_type: str


class FieldAnalysis(BaseModel):
    """Normalization statistics for one set of values."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = 0
    changed: int = 0
    errors: int = 0
    null_values: int = 0
    examples: list[ChangeExample] = Field(default_factory=list)


class FieldRates(BaseModel):
    """Per-field percentages rounded to whole numbers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    change_rate: int
    error_rate: int
    null_rate: int


class NormalizationSummary(BaseModel):
    """Roll-up of several field analyses."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_fields: int
    fields_with_changes: int
    fields_with_errors: int
    total_values_processed: int
    total_changes: int
    total_errors: int
    field_details: dict[str, FieldRates]


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total > 0 else 0


class NormalizationAnalyzer:
    """Measures how often normalization alters or rejects values."""

    def __init__(self, values: ValueNormalizer | None = None) -> None:
        """Initialize the analyzer.

        Args:
            values: Value coercion dispatcher.
        """
        self._values = values or ValueNormalizer()

    def analyze(self, values: Sequence[Any], field_type: FieldType) -> FieldAnalysis:
        """Normalize sample values and count the outcomes.

        A value counts as changed when the normalized value differs in
        value or in type.

        Args:
            values: Raw sample values.
            field_type: Type to normalize them as.

        Returns:
            Counts and up to three change examples.
        """
        changed = 0
        errors = 0
        nulls = 0
        examples: list[ChangeExample] = []

        for value in values:
            if value is None:
                nulls += 1
                continue
            try:
                normalized = self._values.normalize_field("sample", value, field_type)
            except NormalizationError:
                errors += 1
                continue
            if normalized != value or type(normalized) is not type(value):
                changed += 1
                if len(examples) < MAX_EXAMPLES:
                    examples.append(
                        ChangeExample(
                            original=value,
                            normalized=normalized,
                            original_type=type(value).__name__,
                        )
                    )

        return FieldAnalysis(
            total=len(values),
            changed=changed,
            errors=errors,
            null_values=nulls,
            examples=examples,
        )

    def analyze_fields(
        self,
        samples: Mapping[str, Sequence[Any]],
        field_types: Mapping[str, FieldType],
    ) -> dict[str, FieldAnalysis]:
        """Analyze several fields at once.

        Args:
            samples: Field name to sample values.
            field_types: Field name to type; missing names use
                ``text_preserve``.

        Returns:
            Analysis per field.
        """
        return {
            name: self.analyze(values, field_types.get(name, FieldType.TEXT_PRESERVE))
            for name, values in samples.items()
        }

    def summary_report(
        self, results: Mapping[str, FieldAnalysis]
    ) -> NormalizationSummary:
        """Aggregate per-field analyses into rates."""
        return NormalizationSummary(
            total_fields=len(results),
            fields_with_changes=sum(1 for r in results.values() if r.changed > 0),
            fields_with_errors=sum(1 for r in results.values() if r.errors > 0),
            total_values_processed=sum(r.total for r in results.values()),
            total_changes=sum(r.changed for r in results.values()),
            total_errors=sum(r.errors for r in results.values()),
            field_details={
                name: FieldRates(
                    change_rate=_percent(r.changed, r.total),
                    error_rate=_percent(r.errors, r.total),
                    null_rate=_percent(r.null_values, r.total),
                )
                for name, r in results.items()
            },
        )
