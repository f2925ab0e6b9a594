"""Record validations for works, versions and collections.

These return messages instead of raising and never modify the record, so
callers can validate hypothetical states (a draft checked as if it were
published) without touching what is persisted.
"""

from collections import Counter

from services.work_registry.app.db.models import CollectionModel, WorkModel, WorkVersionModel
from shared.schemas.work import Visibility


def _blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_work(work: WorkModel) -> list[str]:
    """Validate the work-level fields of a work.

    The work's versions must be loaded.
    """
    errors = []
    if _blank(work.work_type):
        errors.append("Work type can't be blank")
    if work.visibility not in set(Visibility):
        errors.append("Visibility is not included in the list")
    if len(work.draft_versions) > 1:
        errors.append("Work can only have one draft version")
    return errors


def validate_work_version(version: WorkVersionModel, publishing: bool | None = None) -> list[str]:
    """Validate a version.

    Args:
        version: Version to check; its file memberships and creators must be loaded
        publishing: Apply the published-record rules. Defaults to the
            version's own state.

    Returns:
        Human-readable error messages, empty when valid
    """
    if publishing is None:
        publishing = version.is_published

    errors = []
    if _blank(version.title):
        errors.append("Title can't be blank")

    title_counts = Counter(membership.title for membership in version.file_memberships)
    if any(count > 1 for count in title_counts.values()):
        errors.append("File names must be unique")

    if publishing:
        if _blank(version.description):
            errors.append("Description can't be blank")
        if _blank(version.rights):
            errors.append("Rights can't be blank")
        if _blank(version.published_date):
            errors.append("Published date can't be blank")
        if not version.creators:
            errors.append("Creators can't be blank")
        if not version.file_memberships:
            errors.append("Files can't be blank")
    return errors


def prevalidate_publish(version: WorkVersionModel) -> list[str]:
    """Errors a depositor would hit when publishing, before they pick a license.

    Rights are chosen on the final publish step, so their absence is not
    reported yet.
    """
    return [
        message
        for message in validate_work_version(version, publishing=True)
        if not message.startswith("Rights ")
    ]


def validate_collection(collection: CollectionModel) -> list[str]:
    """Validate a collection's descriptive fields."""
    errors = []
    if _blank(collection.title):
        errors.append("Title can't be blank")
    if _blank(collection.description):
        errors.append("Description can't be blank")
    return errors
