from pydantic import BaseModel, ConfigDict, Field

from config import UNDEFINED_BREED
from models.species import Species


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    species: Species
    breed: str = Field(min_length=1)

    @classmethod
    def default(cls) -> 'Classification':
        return cls(species=Species.OTHER, breed=UNDEFINED_BREED)

    @property
    def is_default(self) -> bool:
        return self.species == Species.OTHER and self.breed == UNDEFINED_BREED
