"""Per-type value coercion.

Every coercion maps ``None`` to ``None`` and is idempotent: feeding a
normalized value back through the same type returns an equal value.
"""

import json
import re
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import structlog
from dateutil import parser as date_parser

from src.normalize.errors import NormalizationError
from src.normalize.types import FieldType


logger = structlog.get_logger()

NormalizedValue = str | float | int | bool | None

CURRENCY_SYMBOLS_RE = re.compile(r"[$,£€¥\s]")
# Leading decimal literal, the way a lenient float parser reads it
LEADING_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
TRUE_STRINGS = frozenset({"true", "yes", "1"})

# Fills components missing from partial dates deterministically
_DATE_DEFAULT = datetime(1970, 1, 1)  # noqa: DTZ001


def parse_leading_float(text: str) -> float | None:
    """Parse the numeric prefix of a string.

    Args:
        text: Input text; surrounding whitespace is ignored.

    Returns:
        The parsed number, or None if the text has no numeric prefix.
    """
    match = LEADING_FLOAT_RE.match(text.strip())
    if match is None:
        return None
    return float(match.group(0))


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def normalize_currency(value: Any) -> float | int | None:
    """Coerce a monetary value to a number.

    Args:
        value: Raw value such as ``"$1,234.50"`` or ``12``.

    Returns:
        The amount, ``0`` when unparsable, or None for None.
    """
    if value is None:
        return None
    if _is_number(value):
        return value
    if isinstance(value, str):
        parsed = parse_leading_float(CURRENCY_SYMBOLS_RE.sub("", value))
        return parsed if parsed is not None else 0
    return 0


def normalize_number(value: Any) -> float | int | None:
    """Coerce a value to a number.

    Args:
        value: Raw value.

    Returns:
        The number, ``0`` when unparsable, or None for None.
    """
    if value is None:
        return None
    if _is_number(value):
        return value
    if isinstance(value, bool):
        return 0
    parsed = parse_leading_float(str(value))
    return parsed if parsed is not None else 0


def normalize_boolean(value: Any) -> bool | None:
    """Coerce a value to a boolean.

    Strings are true only for ``true``, ``yes`` or ``1`` (any case).
    Numbers are true when nonzero.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if _is_number(value):
        return value != 0
    return bool(value)


def format_iso_timestamp(moment: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with milliseconds.

    Naive datetimes are taken to be UTC.

    Args:
        moment: Datetime to render.

    Returns:
        String like ``2024-01-15T00:00:00.000Z``.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    rendered = moment.astimezone(UTC).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def normalize_date(value: Any) -> str | None:
    """Coerce a value to an ISO-8601 UTC timestamp string.

    Args:
        value: Date, datetime or date-like string.

    Returns:
        ISO-8601 string, or None when empty or unparsable.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return format_iso_timestamp(value)
    if isinstance(value, date):
        return format_iso_timestamp(datetime(value.year, value.month, value.day))  # noqa: DTZ001
    if isinstance(value, str):
        try:
            parsed = date_parser.parse(value.strip(), default=_DATE_DEFAULT)
        except (ValueError, OverflowError):
            return None
        return format_iso_timestamp(parsed)
    return None


def stringify(value: Any) -> str:
    """Render a non-string field value as text.

    Args:
        value: Any JSON-like value.

    Returns:
        Text form; lists are comma-joined, mappings JSON-encoded.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list | tuple):
        return ",".join(stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def normalize_text(value: Any, lowercase: bool = False) -> str | None:
    """Coerce a value to trimmed text.

    Args:
        value: Raw value.
        lowercase: Whether to lower-case the result.

    Returns:
        Trimmed text, or None for None.
    """
    if value is None:
        return None
    text = stringify(value).strip()
    return text.lower() if lowercase else text


class ValueNormalizer:
    """Dispatches raw values to the coercion for their field type."""

    def __init__(self) -> None:
        """Initialize the dispatch table."""
        self._dispatch: dict[FieldType, Callable[[Any], NormalizedValue]] = {
            FieldType.CURRENCY: normalize_currency,
            FieldType.DATE: normalize_date,
            FieldType.BOOLEAN: normalize_boolean,
            FieldType.NUMBER: normalize_number,
            FieldType.TEXT_LOWERCASE: lambda v: normalize_text(v, lowercase=True),
            FieldType.TEXT_PRESERVE: lambda v: normalize_text(v, lowercase=False),
        }

    def normalize(self, value: Any, field_type: FieldType) -> NormalizedValue:
        """Coerce a value to the given type.

        Args:
            value: Raw value.
            field_type: Target type.

        Returns:
            Normalized value.
        """
        if value is None:
            return None
        return self._dispatch[field_type](value)

    def normalize_field(
        self,
        field_name: str,
        value: Any,
        field_type: FieldType,
    ) -> NormalizedValue:
        """Coerce one field value, reporting failures with field context.

        Args:
            field_name: Name of the field.
            value: Raw value.
            field_type: Target type.

        Returns:
            Normalized value.

        Raises:
            NormalizationError: If coercion raised unexpectedly.
        """
        try:
            return self.normalize(value, field_type)
        except NormalizationError:
            raise
        except Exception as e:
            raise NormalizationError(field_name, value, field_type, str(e)) from e
