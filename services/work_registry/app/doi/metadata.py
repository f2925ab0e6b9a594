"""DataCite metadata documents for versions and collections."""

import re
from typing import Any
from uuid import UUID

from services.work_registry.app.db.models import CollectionModel, WorkVersionModel
from shared.schemas.creator import CreatorSchema
from shared.schemas.work import WorkType

YEAR_PATTERN = re.compile(r"\b(\d{4})\b")

RESOURCE_TYPES: dict[WorkType, str] = {
    WorkType.ARTICLE: "JournalArticle",
    WorkType.AUDIO: "Sound",
    WorkType.BOOK: "Book",
    WorkType.CONFERENCE_PROCEEDING: "ConferenceProceeding",
    WorkType.DATASET: "Dataset",
    WorkType.DISSERTATION: "Dissertation",
    WorkType.IMAGE: "Image",
    WorkType.MASTERS_THESIS: "Dissertation",
    WorkType.OTHER: "Other",
    WorkType.POSTER: "Text",
    WorkType.PRESENTATION: "Text",
    WorkType.REPORT: "Report",
    WorkType.SOFTWARE_OR_PROGRAM_CODE: "Software",
    WorkType.THESIS: "Dissertation",
    WorkType.VIDEO: "Audiovisual",
}


class MetadataValidationError(ValueError):
    """Raised when a resource lacks fields DataCite requires."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def publication_year(published_date: str | None) -> int | None:
    """Extract the year from an EDTF-ish date such as '2021-05', '2021?' or 'circa 1990'."""
    if not published_date:
        return None
    match = YEAR_PATTERN.search(published_date)
    return int(match.group(1)) if match else None


def creator_attributes(creator: CreatorSchema) -> dict[str, Any]:
    """Map one creator to a DataCite creator entry."""
    if not creator.is_personal:
        return {"name": creator.display_name, "nameType": "Organizational"}

    entry: dict[str, Any] = {
        "name": creator.display_name,
        "nameType": "Personal",
        "familyName": creator.surname,
    }
    if creator.given_name:
        entry["givenName"] = creator.given_name
    if creator.orcid:
        entry["nameIdentifiers"] = [
            {
                "nameIdentifier": f"https://orcid.org/{creator.orcid}",
                "nameIdentifierScheme": "ORCID",
                "schemeUri": "https://orcid.org",
            }
        ]
    return entry


class _DataCiteMetadata:
    """Shared DataCite mapping over a version-like or collection record."""

    resource_type_general = "Other"
    resource_type: str | None = None

    def __init__(
        self,
        resource: WorkVersionModel | CollectionModel,
        public_identifier: UUID,
        publisher: str,
        base_url: str,
    ):
        self.resource = resource
        self.public_identifier = public_identifier
        self.publisher = publisher
        self.base_url = base_url.rstrip("/")

    @property
    def creators(self) -> list[CreatorSchema]:
        return [CreatorSchema.model_validate(creator) for creator in self.resource.creators]

    def validate(self) -> None:
        """Raise MetadataValidationError unless title, creators and year are present."""
        errors = []
        if not (self.resource.title or "").strip():
            errors.append("title is required")
        if not self.resource.creators:
            errors.append("at least one creator is required")
        if publication_year(self.resource.published_date) is None:
            errors.append("a publication year is required")
        if errors:
            raise MetadataValidationError(errors)

    def attributes(self) -> dict[str, Any]:
        """Build the DataCite `attributes` document."""
        self.validate()
        resource = self.resource

        attributes: dict[str, Any] = {
            "titles": [{"title": resource.title}],
            "creators": [creator_attributes(creator) for creator in self.creators],
            "publisher": self.publisher,
            "publicationYear": publication_year(resource.published_date),
            "types": {"resourceTypeGeneral": self.resource_type_general},
            "url": f"{self.base_url}/{self.public_identifier}",
        }
        if self.resource_type:
            attributes["types"]["resourceType"] = self.resource_type
        if resource.subtitle:
            attributes["titles"].append({"title": resource.subtitle, "titleType": "Subtitle"})
        if resource.description:
            attributes["descriptions"] = [
                {"description": resource.description, "descriptionType": "Abstract"}
            ]
        if resource.keyword:
            attributes["subjects"] = [{"subject": keyword} for keyword in resource.keyword]
        return attributes


class WorkVersionMetadata(_DataCiteMetadata):
    """DataCite metadata for a version (also used for its work's DOI)."""

    def __init__(
        self,
        resource: WorkVersionModel,
        public_identifier: UUID,
        publisher: str,
        base_url: str,
        work_type: WorkType | None = None,
    ):
        super().__init__(resource, public_identifier, publisher, base_url)
        if work_type is not None:
            self.resource_type_general = RESOURCE_TYPES.get(work_type, "Other")
            self.resource_type = work_type.value


class CollectionMetadata(_DataCiteMetadata):
    """DataCite metadata for a collection."""

    resource_type_general = "Collection"
