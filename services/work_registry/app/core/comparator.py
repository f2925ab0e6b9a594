"""Value comparisons between the semantic metadata of two records."""

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from services.work_registry.app.db.models import AuthorshipModel

# Fields that must agree between the works of a collection before a merge.
# Title is per-file, keyword and creators are compared against the collection.
WORK_METADATA_FIELDS = ("work_type", "visibility")

VERSION_METADATA_FIELDS = (
    "subtitle",
    "description",
    "publisher_statement",
    "rights",
    "version_name",
    "published_date",
    "publisher",
    "subject",
    "language",
    "identifier",
    "based_near",
    "related_url",
    "source",
    "contributor",
)

ACCESS_CONTROL_FIELDS = ("discover_users", "discover_groups", "edit_users", "edit_groups")


@dataclass(frozen=True)
class FieldDifference:
    """One field whose value differs between two records."""

    field: str
    left: Any
    right: Any

    @property
    def label(self) -> str:
        return self.field.replace("_", " ")

    def describe(self) -> str:
        return f"{self.field} {_display(self.left)} != {_display(self.right)}"


def _display(value: Any) -> str:
    if isinstance(value, Enum):
        return repr(value.value)
    return repr(value)


def _normalize(value: Any) -> Any:
    """Treat None, blank strings and empty lists as the same absent value."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        return list(value) or None
    return value


def diff_fields(left: Any, right: Any, fields: Iterable[str]) -> list[FieldDifference]:
    """Compare the named attributes of two records, in field order."""
    differences = []
    for name in fields:
        left_value = getattr(left, name)
        right_value = getattr(right, name)
        if _normalize(left_value) != _normalize(right_value):
            differences.append(FieldDifference(name, left_value, right_value))
    return differences


def work_metadata_differences(left: Any, right: Any) -> list[FieldDifference]:
    return diff_fields(left, right, WORK_METADATA_FIELDS)


def version_metadata_differences(left: Any, right: Any) -> list[FieldDifference]:
    return diff_fields(left, right, VERSION_METADATA_FIELDS)


def access_control_differences(left: Any, right: Any) -> list[FieldDifference]:
    """Access lists are compared as sets; their order carries no meaning."""
    differences = []
    for name in ACCESS_CONTROL_FIELDS:
        left_value = getattr(left, name) or []
        right_value = getattr(right, name) or []
        if set(left_value) != set(right_value):
            differences.append(FieldDifference(name, left_value, right_value))
    return differences


def creators_match(
    expected: Sequence[AuthorshipModel],
    actual: Sequence[AuthorshipModel],
) -> bool:
    """Same display names with the same multiplicity, in any order."""
    return Counter(creator.display_name for creator in expected) == Counter(
        creator.display_name for creator in actual
    )


def keywords_match(expected: Iterable[str] | None, actual: Iterable[str] | None) -> bool:
    """Keywords are a set: order and repetition are ignored."""
    return set(expected or []) == set(actual or [])
