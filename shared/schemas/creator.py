"""Creator schema models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreatorSchema(BaseModel):
    """Schema representing one positional creator of a work or collection."""

    model_config = ConfigDict(from_attributes=True)

    display_name: str = Field(..., description="Name as shown on the record")
    given_name: Optional[str] = Field(None, description="Creator's given/first name")
    surname: Optional[str] = Field(None, description="Creator's family/last name")
    email: Optional[str] = Field(None, description="Creator's email address")
    orcid: Optional[str] = Field(None, description="Creator's ORCID identifier")
    position: int = Field(0, description="Zero-based position in the creator list")

    @property
    def is_personal(self) -> bool:
        """True when the creator can be split into given and family names."""
        return bool(self.surname)
