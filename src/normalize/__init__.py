"""Field type inference and value normalization."""

from src.normalize.analyzer import (
    FieldAnalysis,
    NormalizationAnalyzer,
    NormalizationSummary,
)
from src.normalize.errors import NormalizationError
from src.normalize.metrics import NormalizationMetrics
from src.normalize.record import RecordNormalizer
from src.normalize.rules import DEFAULT_RULES, TypeInferenceEngine, TypeRule
from src.normalize.types import FieldType
from src.normalize.values import (
    ValueNormalizer,
    normalize_boolean,
    normalize_currency,
    normalize_date,
    normalize_number,
    normalize_text,
)


__all__ = [
    "DEFAULT_RULES",
    "FieldAnalysis",
    "FieldType",
    "NormalizationAnalyzer",
    "NormalizationError",
    "NormalizationMetrics",
    "NormalizationSummary",
    "RecordNormalizer",
    "TypeInferenceEngine",
    "TypeRule",
    "ValueNormalizer",
    "normalize_boolean",
    "normalize_currency",
    "normalize_date",
    "normalize_number",
    "normalize_text",
]
