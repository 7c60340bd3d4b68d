import base64
import json
import logging
import re
from collections.abc import Callable
from datetime import timedelta
from typing import Protocol

from httpx import AsyncClient
from pydantic import SecretStr
from sentry_sdk import trace

from config import CLASSIFIER_TIMEOUT, GEMINI_API_URL, GEMINI_MODEL, UNDEFINED_BREED
from models.classification import Classification
from models.species import Species, parse_species
from utils import timeout_seconds

PROMPT = (
    'Look at the photo of this pet and identify the kind of animal and its breed. '
    'Answer with a JSON object {"species": <Dog, Cat or Other>, "breed": <breed>}. '
    'If you are not sure about a field, use "unidentified" as its value.'
)

_RESPONSE_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'species': {'type': 'STRING', 'enum': [s.value for s in Species]},
        'breed': {'type': 'STRING'},
    },
    'required': ['species', 'breed'],
}

_SPECIES_KEYS = ('species', 'tipo', 'type', 'animal')
_BREED_KEYS = ('breed', 'raça', 'raca')

_UNIDENTIFIED_BREEDS = frozenset((
    'não identificado',
    'nao identificado',
    'não identificada',
    'nao identificada',
    'unidentified',
    'not identified',
    'unknown',
    'undefined',
    UNDEFINED_BREED,
))

_SPECIES_KEY_RE = r'["\']?(?:species|tipo|type|animal)["\']?'
_BREED_KEY_RE = r'["\']?(?:breed|ra[çc]a)["\']?'
_VALUE_RE = r'["\'](?P<{}>[^"\']*)["\']'

_FRAGMENT_RE = re.compile(
    r'\{\s*' + _SPECIES_KEY_RE + r'\s*:\s*' + _VALUE_RE.format('species') + r'\s*,\s*'
    + _BREED_KEY_RE + r'\s*:\s*' + _VALUE_RE.format('breed') + r'\s*\}',
    re.IGNORECASE,
)
_SPECIES_FIELD_RE = re.compile(_SPECIES_KEY_RE + r'\s*:\s*' + _VALUE_RE.format('species'), re.IGNORECASE)
_BREED_FIELD_RE = re.compile(_BREED_KEY_RE + r'\s*:\s*' + _VALUE_RE.format('breed'), re.IGNORECASE)
_CODE_FENCE_RE = re.compile(r'^```(?:json)?\s*(?P<body>.*?)\s*```$', re.DOTALL | re.IGNORECASE)


class Classifier(Protocol):
    async def classify(self, image: bytes) -> Classification: ...


def normalize_breed(breed: str) -> str:
    breed = breed.strip()
    if not breed or breed.casefold().rstrip('.') in _UNIDENTIFIED_BREEDS:
        return UNDEFINED_BREED
    return breed


def _pick(data: dict, keys: tuple[str, ...]) -> str | None:
    for key, value in data.items():
        if isinstance(key, str) and key.strip().casefold() in keys and isinstance(value, str):
            return value
    return None


def _parse_strict_json(text: str) -> tuple[str, str] | None:
    if match := _CODE_FENCE_RE.match(text.strip()):
        text = match['body']

    try:
        data = json.loads(text)
    except ValueError:
        return None

    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        return None

    species = _pick(data, _SPECIES_KEYS)
    breed = _pick(data, _BREED_KEYS)
    if species is None or breed is None:
        return None
    return species, breed


def _parse_fragment(text: str) -> tuple[str, str] | None:
    match = _FRAGMENT_RE.search(text)
    if match is None:
        return None
    return match['species'], match['breed']


def _parse_fields(text: str) -> tuple[str, str] | None:
    species_match = _SPECIES_FIELD_RE.search(text)
    breed_match = _BREED_FIELD_RE.search(text)
    if species_match is None or breed_match is None:
        return None
    return species_match['species'], breed_match['breed']


# applied in order, the first strategy to return a result wins
PARSE_STRATEGIES: tuple[Callable[[str], tuple[str, str] | None], ...] = (
    _parse_strict_json,
    _parse_fragment,
    _parse_fields,
)


def parse_classification(text: str) -> Classification | None:
    """
    Extract species and breed from a model response.

    Returns None when no strategy recognizes the response.
    """
    for strategy in PARSE_STRATEGIES:
        result = strategy(text)
        if result is None:
            continue

        species_text, breed_text = result
        if not species_text.strip():
            continue

        return Classification(
            species=parse_species(species_text) or Species.OTHER,
            breed=normalize_breed(breed_text),
        )

    return None


def _response_text(data: dict) -> str:
    parts = data['candidates'][0]['content']['parts']
    return ''.join(part.get('text', '') for part in parts)


class GeminiClassifier:
    """
    Species and breed tagging with a Gemini vision model.

    Classification never fails: errors and unusable answers yield the default classification.
    """

    def __init__(
        self,
        http: AsyncClient,
        api_key: SecretStr | None,
        *,
        model: str = GEMINI_MODEL,
        url: str = GEMINI_API_URL,
        timeout: timedelta | float = CLASSIFIER_TIMEOUT,
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._model = model
        self._url = url
        self._timeout = timeout_seconds(timeout)

    @trace
    async def classify(self, image: bytes) -> Classification:
        if self._api_key is None:
            logging.info('Classifier API key is not configured, using the default classification')
            return Classification.default()

        try:
            text = await self._generate(image)
        except Exception as e:
            logging.warning('Classifier request failed: %r', e)
            return Classification.default()

        logging.debug('Classifier response: %r', text)
        classification = parse_classification(text)
        if classification is None:
            logging.warning('Could not parse classifier response: %r', text)
            return Classification.default()

        return classification

    async def _generate(self, image: bytes) -> str:
        r = await self._http.post(
            f'{self._url}/models/{self._model}:generateContent',
            headers={'x-goog-api-key': self._api_key.get_secret_value()},
            json={
                'contents': [
                    {
                        'parts': [
                            {
                                'inline_data': {
                                    'mime_type': 'image/jpeg',
                                    'data': base64.b64encode(image).decode('ascii'),
                                }
                            },
                            {'text': PROMPT},
                        ]
                    }
                ],
                'generationConfig': {
                    'responseMimeType': 'application/json',
                    'responseSchema': _RESPONSE_SCHEMA,
                },
            },
            timeout=self._timeout,
        )
        r.raise_for_status()
        return _response_text(r.json())
