"""DOI dispatch for versions, works and collections."""

from services.work_registry.app.doi.dispatcher import (
    CollectionTarget,
    DoiDispatcher,
    InvalidResourceError,
    VersionTarget,
    WorkTarget,
    build_metadata,
    to_target,
)
from services.work_registry.app.doi.metadata import MetadataValidationError
from services.work_registry.app.doi.registrar import DoiRegistrar, RegistrarError

__all__ = [
    "CollectionTarget",
    "DoiDispatcher",
    "DoiRegistrar",
    "InvalidResourceError",
    "MetadataValidationError",
    "RegistrarError",
    "VersionTarget",
    "WorkTarget",
    "build_metadata",
    "to_target",
]
