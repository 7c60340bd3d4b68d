from enum import StrEnum


class Species(StrEnum):
    DOG = 'Dog'
    CAT = 'Cat'
    OTHER = 'Other'


# checked in order, the first species with a synonym contained in the text wins
_SYNONYMS: tuple[tuple[Species, tuple[str, ...]], ...] = (
    (Species.DOG, ('dog', 'puppy', 'cão', 'cao', 'cães', 'caes', 'cachorro', 'cadela', 'perro')),
    (Species.CAT, ('cat', 'kitten', 'gato', 'gata', 'felino')),
    (Species.OTHER, ('other', 'outro', 'outra')),
)


def parse_species(text: str) -> Species | None:
    """
    Match free text against known species names, case-insensitively.

    Returns None when nothing matches.
    """
    text = text.strip().casefold()
    if not text:
        return None

    for species, synonyms in _SYNONYMS:
        if any(synonym in text for synonym in synonyms):
            return species

    return None
