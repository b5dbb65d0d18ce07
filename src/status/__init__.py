"""Dynamic status classification."""

from src.status.analyzer import StatusAnalyzer
from src.status.classifier import ItemClassifier
from src.status.configuration import StatusConfiguration, validate_configuration
from src.status.fields import (
    MISSING_STATUS,
    extract_status,
    is_problematic_status,
)
from src.status.matcher import (
    DEFAULT_MATCH_THRESHOLD,
    StatusMatcher,
    best_match,
    normalize_status_text,
    similarity,
)
from src.status.models import (
    Categorized,
    Classification,
    MatchResult,
    StatusConfigSnapshot,
    StatusHealth,
    StatusMatch,
    StatusPatterns,
    StatusReport,
    StatusValidation,
)


__all__ = [
    "DEFAULT_MATCH_THRESHOLD",
    "MISSING_STATUS",
    "Categorized",
    "Classification",
    "ItemClassifier",
    "MatchResult",
    "StatusAnalyzer",
    "StatusConfigSnapshot",
    "StatusConfiguration",
    "StatusHealth",
    "StatusMatch",
    "StatusMatcher",
    "StatusPatterns",
    "StatusReport",
    "StatusValidation",
    "best_match",
    "extract_status",
    "is_problematic_status",
    "normalize_status_text",
    "similarity",
    "validate_configuration",
]
