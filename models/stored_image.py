from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StoredImage:
    key: str
    data: bytes
