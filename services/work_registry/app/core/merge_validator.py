"""Eligibility checks run over a collection before its works are merged."""

from dataclasses import dataclass

from services.work_registry.app.core.comparator import (
    access_control_differences,
    creators_match,
    keywords_match,
    version_metadata_differences,
    work_metadata_differences,
)
from services.work_registry.app.db.models import CollectionModel, WorkModel
from shared.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Violation:
    """One reason a collection cannot be merged.

    Soft violations are metadata disagreements an administrator may
    override with a forced merge. Hard violations make the merge
    structurally impossible.
    """

    message: str
    soft: bool = False


class MergeValidator:
    """Runs the fixed battery of merge checks over a collection.

    Checks run work by work, in ascending work id order:
    1. exactly one version (hard)
    2. exactly one file on that version (hard)
    3. that version is published (hard)
    4. work-level metadata equal to the first work's (hard)
    5. version metadata equal to the first work's (soft)
    6. access lists equal to the first work's (soft)
    7. creators equal to the collection's (soft)
    8. keywords equal to the collection's (soft)
    """

    def validate(self, collection: CollectionModel, force: bool = False) -> list[str]:
        """Return the violation messages that block a merge.

        Args:
            collection: Collection loaded with works, versions, files and creators
            force: Suppress soft (metadata-mismatch) violations

        Returns:
            Messages in check order; empty when the merge may proceed
        """
        violations = self.check(collection)
        suppressed = [v for v in violations if force and v.soft]
        if suppressed:
            logger.info(
                "merge_violations_forced",
                collection_id=collection.collection_id,
                suppressed=[v.message for v in suppressed],
            )
        return [v.message for v in violations if not (force and v.soft)]

    def check(self, collection: CollectionModel) -> list[Violation]:
        """Return every violation, soft and hard."""
        works = list(collection.works)
        if not works:
            return [Violation(f"Collection-{collection.collection_id} has no works to merge")]

        first = works[0]
        violations: list[Violation] = []
        for work in works:
            violations.extend(self._structure_violations(work))
            if work is not first:
                violations.extend(self._consistency_violations(first, work))
            violations.extend(self._collection_violations(collection, work))
        return violations

    def _structure_violations(self, work: WorkModel) -> list[Violation]:
        violations = []
        version_count = len(work.versions)
        if version_count != 1:
            violations.append(
                Violation(
                    f"Work-{work.work_id} has {version_count} work versions, but must only have 1"
                )
            )

        version = work.latest_version
        if version is None:
            return violations

        file_count = len(version.file_memberships)
        if file_count != 1:
            violations.append(
                Violation(f"Work-{work.work_id} has {file_count} files, but must only have 1")
            )
        if not version.is_published:
            violations.append(Violation(f"Work-{work.work_id} is not published"))
        return violations

    def _consistency_violations(self, first: WorkModel, work: WorkModel) -> list[Violation]:
        violations = []
        prefix = f"Work-{first.work_id} has different"
        suffix = f"than Work-{work.work_id}"

        work_diffs = work_metadata_differences(first, work)
        if work_diffs:
            details = ", ".join(diff.describe() for diff in work_diffs)
            violations.append(Violation(f"{prefix} work metadata {suffix}: {details}"))

        first_version, version = first.latest_version, work.latest_version
        if first_version is not None and version is not None:
            version_diffs = version_metadata_differences(first_version, version)
            if version_diffs:
                details = ", ".join(diff.describe() for diff in version_diffs)
                violations.append(
                    Violation(f"{prefix} WorkVersion metadata {suffix}: {details}", soft=True)
                )

        for diff in access_control_differences(first, work):
            violations.append(Violation(f"{prefix} {diff.label} {suffix}", soft=True))
        return violations

    def _collection_violations(
        self, collection: CollectionModel, work: WorkModel
    ) -> list[Violation]:
        version = work.latest_version
        if version is None:
            return []

        violations = []
        prefix = f"Collection-{collection.collection_id} has different"
        if not creators_match(collection.creators, version.creators):
            violations.append(
                Violation(f"{prefix} creators than Work-{work.work_id}", soft=True)
            )
        if not keywords_match(collection.keyword, version.keyword):
            violations.append(
                Violation(f"{prefix} keywords than Work-{work.work_id}", soft=True)
            )
        return violations
