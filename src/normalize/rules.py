"""Field-name based type inference.

Rules are data: each ``TypeRule`` expands into an ordered list of
``(predicate, FieldType)`` pairs and the first predicate that accepts a
lower-cased field name decides its type.
"""

from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.normalize.types import FieldType


logger = structlog.get_logger()

FieldPredicate = Callable[[str], bool]


class TypeRule(BaseModel):
    """Name-matching rule for one field type.

    Attributes:
        field_type: Type assigned when the rule matches.
        exact: Field names matched exactly.
        patterns: Substrings matched anywhere in the name. Patterns ending
            in ``_`` also match as prefixes.
        suffixes: Name endings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    field_type: FieldType
    exact: frozenset[str] = Field(default_factory=frozenset)
    patterns: tuple[str, ...] = ()
    suffixes: tuple[str, ...] = ()

    def predicates(self) -> list[FieldPredicate]:
        """Expand the rule into predicates in evaluation order.

        Returns:
            Exact, substring, suffix and prefix predicates.
        """
        exact = self.exact
        patterns = self.patterns
        suffixes = self.suffixes
        prefixes = tuple(p for p in patterns if p.endswith("_"))
        return [
            lambda name: name in exact,
            lambda name: any(p in name for p in patterns),
            lambda name: name.endswith(suffixes) if suffixes else False,
            lambda name: name.startswith(prefixes) if prefixes else False,
        ]


# Priority order: earlier rules win
DEFAULT_RULES: tuple[TypeRule, ...] = (
    TypeRule(
        field_type=FieldType.CURRENCY,
        patterns=(
            "price",
            "cost",
            "_cost",
            "sold_price",
            "alteration_cost",
            "maintenance_cost",
        ),
    ),
    TypeRule(
        field_type=FieldType.DATE,
        exact=frozenset({"auto_date"}),
        patterns=("date", "_date"),
    ),
    TypeRule(
        field_type=FieldType.BOOLEAN,
        exact=frozenset({"accepted", "rejected", "is_finished"}),
        patterns=("is_",),
        suffixes=("_complete",),
    ),
    TypeRule(
        field_type=FieldType.NUMBER,
        exact=frozenset(
            {
                "swagger_rating",
                "rain_rating",
                "heel_height_inches",
                "times_maintained",
                "recency_factor",
                "material_1_pct",
                "material_2_pct",
                "material_3_pct",
                "days_since_worn_local_time",
            }
        ),
    ),
    TypeRule(
        field_type=FieldType.TEXT_LOWERCASE,
        exact=frozenset(
            {
                "status",
                "department",
                "brand",
                "size",
                "fit",
                "comfort",
                "good_for",
                "rate_the_robot",
                "discard_reason",
                "outlet_sold_or_discarded",
                "silhouette",
                "pattern_family",
                "aspect_family",
                "country_of_fabrication",
                "closet_section",
                "division",
                "material_1",
                "material_2",
                "material_3",
                "seller_username",
                "purchase_location",
                "purchase_channel",
                "item_source",
                "grade",
                "occasion",
                "location_worn",
                "temp_rating",
            }
        ),
        patterns=("color",),
    ),
    TypeRule(
        field_type=FieldType.TEXT_PRESERVE,
        exact=frozenset(
            {
                "item_name",
                "notes",
                "care_instructions",
                "capsule",
                "inspiration",
                "item_ids",
                "calendar_ids",
                "selfies",
                "dates_worn",
                "linked_item_id",
                "inspiration_ids_using_item",
                "generator_version",
                "outfit_id",
                "selfie",
                "item_images",
                "outfit_metadata",
                "outfit_notes",
            }
        ),
    ),
)

DEFAULT_FIELD_TYPE = FieldType.TEXT_PRESERVE


class TypeInferenceEngine:
    """Maps field names to semantic types.

    Pure with respect to data: the result depends only on the field name
    and the rule list the engine was built with.
    """

    def __init__(self, rules: Iterable[TypeRule] = DEFAULT_RULES) -> None:
        """Initialize the engine.

        Args:
            rules: Rules in priority order.
        """
        self._rules = list(rules)
        self._overrides: dict[str, FieldType] = {}
        self._predicates: list[tuple[FieldPredicate, FieldType]] = []
        self._rebuild()

    def _rebuild(self) -> None:
        pairs: list[tuple[FieldPredicate, FieldType]] = []
        for rule in self._rules:
            extra = frozenset(
                name
                for name, ftype in self._overrides.items()
                if ftype == rule.field_type
            )
            if extra:
                rule = rule.model_copy(update={"exact": rule.exact | extra})
            pairs.extend((p, rule.field_type) for p in rule.predicates())
        self._predicates = pairs

    def detect_type(self, field_name: str) -> FieldType:
        """Infer the semantic type of a field.

        Args:
            field_name: Field name as it appears in the record.

        Returns:
            Type of the first matching rule, or ``text_preserve``.
        """
        name = field_name.lower()
        for predicate, field_type in self._predicates:
            if predicate(name):
                return field_type
        return DEFAULT_FIELD_TYPE

    def add_rule(self, field_name: str, field_type: FieldType | str) -> None:
        """Register an exact-name rule at runtime.

        The name joins the exact matches of its type, so it still loses to
        higher-priority rules that also match it.

        Args:
            field_name: Field name to match exactly (case-insensitive).
            field_type: Type to assign.

        Raises:
            ValueError: If the type is unknown.
        """
        try:
            resolved = FieldType(field_type)
        except ValueError as e:
            msg = f"Unknown field type: {field_type}"
            raise ValueError(msg) from e

        self._overrides[field_name.lower()] = resolved
        self._rebuild()
        logger.debug(
            "type_rule_added",
            component="normalize",
            field_name=field_name,
            field_type=resolved.value,
        )

    def fields_of_type(self, field_type: FieldType) -> list[str]:
        """List the exact field names registered for a type.

        Args:
            field_type: Type to look up.

        Returns:
            Sorted exact-match names, including runtime additions.
        """
        names: set[str] = set()
        for rule in self._rules:
            if rule.field_type == field_type:
                names |= rule.exact
        names |= {n for n, t in self._overrides.items() if t == field_type}
        return sorted(names)

    def group_by_type(self, field_names: Iterable[str]) -> dict[FieldType, list[str]]:
        """Group field names by inferred type.

        Args:
            field_names: Names to classify.

        Returns:
            Mapping of type to names, in input order.
        """
        groups: dict[FieldType, list[str]] = {}
        for name in field_names:
            groups.setdefault(self.detect_type(name), []).append(name)
        return groups

    def analyze_record(self, fields: Mapping[str, Any]) -> dict[FieldType, int]:
        """Count the fields of a record per inferred type.

        Args:
            fields: Record fields.

        Returns:
            Mapping of type to field count.
        """
        return dict(Counter(self.detect_type(name) for name in fields if name != "id"))
