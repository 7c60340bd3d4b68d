import json
import unittest

import httpx
from pydantic import SecretStr

from config import UNDEFINED_BREED
from models.classification import Classification
from models.species import Species
from services.classifier_service import GeminiClassifier, normalize_breed, parse_classification


def gemini_response(text: str) -> dict:
    return {'candidates': [{'content': {'parts': [{'text': text}], 'role': 'model'}}]}


class TestParseClassification(unittest.TestCase):
    def test_strict_json(self):
        self.assertEqual(
            parse_classification('{"species": "Dog", "breed": "Labrador Retriever"}'),
            Classification(species=Species.DOG, breed='Labrador Retriever'),
        )

    def test_strict_json__list_and_code_fence(self):
        text = '```json\n[{"tipo": "gato", "raça": "Siamês"}]\n```'
        self.assertEqual(
            parse_classification(text),
            Classification(species=Species.CAT, breed='Siamês'),
        )

    def test_fragment_in_prose(self):
        text = "Claro! Aqui está: [{ 'tipo': 'Cachorro', 'raça': 'Vira-lata' }] Espero ter ajudado."
        self.assertEqual(
            parse_classification(text),
            Classification(species=Species.DOG, breed='Vira-lata'),
        )

    def test_independent_fields(self):
        text = 'The animal looks like a cat.\n"species": "cat"\nI think the "breed": "Persian"'
        self.assertEqual(
            parse_classification(text),
            Classification(species=Species.CAT, breed='Persian'),
        )

    def test_species_contained_in_answer(self):
        self.assertEqual(
            parse_classification('{"species": "Bulldog", "breed": "English"}'),
            Classification(species=Species.DOG, breed='English'),
        )

    def test_unknown_species(self):
        self.assertEqual(
            parse_classification('{"species": "rabbit", "breed": "Angora"}'),
            Classification(species=Species.OTHER, breed='Angora'),
        )

    def test_unidentified_breed(self):
        for breed in ('não identificado', 'Nao Identificado', 'unknown', '', '  '):
            with self.subTest(breed=breed):
                result = parse_classification(json.dumps({'species': 'Cão', 'breed': breed}))
                self.assertEqual(result, Classification(species=Species.DOG, breed=UNDEFINED_BREED))

    def test_unparseable(self):
        for text in ('', 'I cannot see any animal in this picture.', '{"animal": 1}', 'null'):
            with self.subTest(text=text):
                self.assertIsNone(parse_classification(text))


class TestNormalizeBreed(unittest.TestCase):
    def test_passes_through(self):
        self.assertEqual(normalize_breed(' SRD '), 'SRD')
        self.assertEqual(normalize_breed('Golden Retriever'), 'Golden Retriever')

    def test_sentinel(self):
        self.assertEqual(normalize_breed('Não identificado.'), UNDEFINED_BREED)


class TestGeminiClassifier(unittest.IsolatedAsyncioTestCase):
    async def _classify(self, handler, *, api_key: str | None = 'test-key') -> Classification:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            classifier = GeminiClassifier(
                http,
                SecretStr(api_key) if api_key is not None else None,
                model='test-model',
                url='https://gemini.test/v1beta',
                timeout=1,
            )
            return await classifier.classify(b'\xff\xd8\xff\xe0 fake jpeg')

    def assertPolicy(self, classification: Classification):
        self.assertIn(classification.species, tuple(Species))
        self.assertTrue(classification.breed)

    async def test_structured_response(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=gemini_response('{"species": "Cat", "breed": "Maine Coon"}'))

        result = await self._classify(handler)

        self.assertEqual(result, Classification(species=Species.CAT, breed='Maine Coon'))
        self.assertEqual(requests[0].url.path, '/v1beta/models/test-model:generateContent')
        self.assertEqual(requests[0].headers['x-goog-api-key'], 'test-key')
        body = json.loads(requests[0].content)
        self.assertEqual(body['generationConfig']['responseMimeType'], 'application/json')
        self.assertEqual(body['contents'][0]['parts'][0]['inline_data']['mime_type'], 'image/jpeg')

    async def test_unparseable_response(self):
        result = await self._classify(lambda _: httpx.Response(200, json=gemini_response('No idea, sorry.')))
        self.assertEqual(result, Classification.default())

    async def test_server_error(self):
        result = await self._classify(lambda _: httpx.Response(500, json={'error': {'code': 500}}))
        self.assertEqual(result, Classification.default())

    async def test_unexpected_body(self):
        result = await self._classify(lambda _: httpx.Response(200, json={'promptFeedback': {'blockReason': 'OTHER'}}))
        self.assertEqual(result, Classification.default())

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout('timed out', request=request)

        result = await self._classify(handler)
        self.assertEqual(result, Classification.default())

    async def test_missing_api_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError('No request expected without an API key')

        result = await self._classify(handler, api_key=None)
        self.assertEqual(result, Classification.default())

    async def test_output_is_policy_constrained(self):
        for text in (
            '{"species": "Dog", "breed": "Poodle"}',
            '{"species": "dragon", "breed": ""}',
            "[{'tipo': 'gata', 'raça': 'não identificado'}]",
            'garbage',
        ):
            with self.subTest(text=text):
                self.assertPolicy(await self._classify(lambda _, t=text: httpx.Response(200, json=gemini_response(t))))
