"""Core business logic for the Work Registry."""

from services.work_registry.app.core.errors import (
    CollectionNotFoundError,
    MergedWorkInvalidError,
)
from services.work_registry.app.core.merge_validator import MergeValidator
from services.work_registry.app.core.outcome import MergeOutcome
from services.work_registry.app.core.state_machine import (
    InvalidTransitionError,
    VersionStateMachine,
)
from services.work_registry.app.core.validation import (
    prevalidate_publish,
    validate_work,
    validate_work_version,
)

__all__ = [
    "CollectionNotFoundError",
    "MergedWorkInvalidError",
    "MergeValidator",
    "MergeOutcome",
    "InvalidTransitionError",
    "VersionStateMachine",
    "prevalidate_publish",
    "validate_work",
    "validate_work_version",
]
