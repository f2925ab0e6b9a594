"""Result type returned by the collection merge."""

from dataclasses import dataclass, field

from services.work_registry.app.db.models import WorkModel
from shared.schemas.work import MergeOutcomeSchema, WorkSummary


@dataclass
class MergeOutcome:
    """Success, or failure with the messages explaining why nothing changed."""

    errors: list[str] = field(default_factory=list)
    work: WorkModel | None = None

    @property
    def successful(self) -> bool:
        return not self.errors

    @classmethod
    def failure(cls, errors: list[str]) -> "MergeOutcome":
        return cls(errors=list(errors))

    @classmethod
    def success(cls, work: WorkModel) -> "MergeOutcome":
        return cls(work=work)

    def to_schema(self) -> MergeOutcomeSchema:
        return MergeOutcomeSchema(
            successful=self.successful,
            errors=self.errors,
            work=WorkSummary.model_validate(self.work) if self.work is not None else None,
        )
