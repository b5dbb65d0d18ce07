"""Status and name extraction from normalized records."""

from src.cache.models import Record


DEFAULT_STATUS_FIELD = "status"
UNKNOWN_STATUS = "unknown"
# Extraction-failure markers all start with this prefix
MISSING_MARKER_PREFIX = "cannot"
MISSING_STATUS = "cannot find status"
MISSING_ITEM_NAME = "cannot find item name"


def extract_status(record: Record, field: str = DEFAULT_STATUS_FIELD) -> str:
    """Read the status of a record.

    Args:
        record: Normalized record.
        field: Name of the status field.

    Returns:
        The status text, or the missing-status marker when absent or empty.
    """
    value = record.fields.get(field)
    if value is None or value == "":
        return MISSING_STATUS
    return value if isinstance(value, str) else str(value)


def extract_item_name(record: Record) -> str:
    """Read a display name for a record, for reports."""
    value = record.fields.get("item_name")
    if value:
        return str(value)
    return MISSING_ITEM_NAME


def is_problematic_status(status: str | None) -> bool:
    """Check whether a status is empty, unknown, or an extraction failure."""
    return (
        not status
        or status == UNKNOWN_STATUS
        or status.startswith(MISSING_MARKER_PREFIX)
    )


def is_valid_status(status: str | None) -> bool:
    """Check whether a status may be used to build the active-status set."""
    return not is_problematic_status(status)
