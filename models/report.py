from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.species import Species

Latitude = Annotated[float, Field(ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180, le=180, allow_inf_nan=False)]
Breed = Annotated[str, Field(min_length=1)]

_REPORT_CONFIG = ConfigDict(
    frozen=True,
    from_attributes=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class NewReport(BaseModel):
    """
    Everything a report needs before the store assigns its identity.
    """

    model_config = _REPORT_CONFIG

    latitude: Latitude
    longitude: Longitude
    street: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    region: str | None = None
    comment: str | None = None
    contact: str | None = None
    photo_key: str = Field(min_length=1)
    species: Species
    breed: Breed
    user_id: str | None = None


class Report(NewReport):
    id: str
    captured_at: datetime


class ReportUpdate(BaseModel):
    """
    Correctable fields of a report. Only explicitly set fields are applied.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    street: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    region: str | None = None
    comment: str | None = None
    contact: str | None = None
    species: Species | None = None
    breed: Breed | None = None

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)

        # species and breed are required on the report itself
        for key in ('species', 'breed'):
            if key in changes and changes[key] is None:
                del changes[key]

        return changes


class ReportFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    species: Species | None = None
    breed: str | None = None
    user_id: str | None = None
