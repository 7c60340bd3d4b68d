from pydantic import BaseModel, ConfigDict


class Address(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    street: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    region: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.street or self.neighborhood or self.city or self.region)
