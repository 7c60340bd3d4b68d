import os
import tempfile
import unittest

from anyio import Path
from fastapi.responses import ORJSONResponse
from fastapi.testclient import TestClient

from config import IMAGE_UPLOAD_MAX_FILE_SIZE, VERSION
from context import AppContext
from json_response import JSONResponseUTF8
from main import create_app
from models.classification import Classification
from models.species import Species
from services.image_service import ImageService
from services.ingest_service import IngestService
from services.report_store import MemoryReportStore
from services.test_ingest_service import FakeClassifier, FakeGeocoder, make_photo
from services.user_service import MemoryUserStore


class TestAPI(unittest.TestCase):
    def setUp(self):
        tmp = self.enterContext(tempfile.TemporaryDirectory())
        self.reports = MemoryReportStore()
        self.classifier = FakeClassifier()
        images = ImageService(Path(os.path.join(tmp, 'photos')))
        context = AppContext(
            reports=self.reports,
            users=MemoryUserStore(),
            images=images,
            ingest=IngestService(
                store=self.reports,
                images=images,
                geocoder=FakeGeocoder(),
                classifier=self.classifier,
            ),
        )
        self.client = self.enterContext(TestClient(create_app(context)))

    def submit(self, *, photo: bytes | None = None, headers: dict | None = None, **fields):
        data = {'latitude': '-23.5505', 'longitude': '-46.6333', **fields}
        data = {k: v for k, v in data.items() if v is not None}
        files = {'photo': ('animal.jpg', photo if photo is not None else make_photo(), 'image/jpeg')}
        return self.client.post('/api/reports', data=data, files=files, headers=headers or {})

    def test_create_report(self):
        r = self.submit(comentario='Perto da catedral', contato='11 99999-0000')

        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.headers['X-Version'], VERSION)
        report = r.json()
        self.assertTrue(report['id'])
        self.assertTrue(report['capturedAt'])
        self.assertEqual(report['latitude'], -23.5505)
        self.assertEqual(report['longitude'], -46.6333)
        self.assertEqual(report['species'], 'Dog')
        self.assertEqual(report['breed'], 'Vira-lata')
        self.assertEqual(report['city'], 'São Paulo')
        self.assertEqual(report['comment'], 'Perto da catedral')
        self.assertEqual(report['contact'], '11 99999-0000')
        self.assertIsNone(report['userId'])

        image = self.client.get(f'/api/images/{report["photoKey"]}')
        self.assertEqual(image.status_code, 200)
        self.assertEqual(image.headers['Content-Type'], 'image/jpeg')
        self.assertIn('max-age=', image.headers['Cache-Control'])

    def test_create_report__missing_photo(self):
        r = self.client.post('/api/reports', data={'latitude': '1', 'longitude': '2'})

        self.assertEqual(r.status_code, 400)
        self.assertIn('message', r.json())

    def test_create_report__invalid_coordinates(self):
        for latitude, longitude in (('abc', '1'), ('NaN', '1'), ('1', 'inf'), (None, '1'), ('1', ''), ('91', '0')):
            with self.subTest(latitude=latitude, longitude=longitude):
                r = self.submit(latitude=latitude, longitude=longitude)
                self.assertEqual(r.status_code, 400, r.text)

        self.assertEqual(self.client.get('/api/reports').json(), [])

    def test_create_report__invalid_image(self):
        r = self.submit(photo=b'this is not an image')

        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), {'message': 'Failed to process photo'})
        self.assertEqual(self.client.get('/api/reports').json(), [])

    def test_create_report__photo_too_large(self):
        r = self.submit(photo=b'\xff' * (IMAGE_UPLOAD_MAX_FILE_SIZE + 1))

        self.assertEqual(r.status_code, 400, r.text)
        self.assertIn('message', r.json())
        self.assertEqual(self.client.get('/api/reports').json(), [])
        self.assertEqual(self.classifier.images, [])

    def test_json_responses_are_utf8(self):
        self.assertTrue(issubclass(JSONResponseUTF8, ORJSONResponse))

        self.classifier.classification = Classification(species=Species.CAT, breed='Siamês')
        created = self.submit().json()

        r = self.client.get(f'/api/reports/{created["id"]}')
        self.assertEqual(r.headers['Content-Type'], 'application/json; charset=utf-8')
        self.assertIn('Siamês'.encode(), r.content)

    def test_list_reports(self):
        first = self.submit().json()
        self.classifier.classification = Classification(species=Species.CAT, breed='Siamês')
        cat = self.submit().json()
        self.classifier.classification = Classification(species=Species.DOG, breed='Poodle')
        second = self.submit().json()

        def ids(params: dict) -> list[str]:
            r = self.client.get('/api/reports', params=params)
            self.assertEqual(r.status_code, 200, r.text)
            return [report['id'] for report in r.json()]

        self.assertEqual(ids({}), [second['id'], cat['id'], first['id']])
        self.assertEqual(ids({'tipo': 'all'}), [second['id'], cat['id'], first['id']])
        self.assertEqual(ids({'tipo': 'Dog'}), [second['id'], first['id']])
        self.assertEqual(ids({'tipo': 'Gato'}), [cat['id']])
        self.assertEqual(ids({'tipo': 'Cão', 'raca': 'Poodle'}), [second['id']])
        self.assertEqual(ids({'raca': 'Siamês'}), [cat['id']])

    def test_list_reports__unknown_species(self):
        r = self.client.get('/api/reports', params={'tipo': 'Dragon'})
        self.assertEqual(r.status_code, 400)

    def test_get_report(self):
        created = self.submit().json()

        r = self.client.get(f'/api/reports/{created["id"]}')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), created)

        r = self.client.get('/api/reports/does-not-exist')
        self.assertEqual(r.status_code, 404)
        self.assertIn('message', r.json())

    def test_get_image__missing(self):
        self.assertEqual(self.client.get('/api/images/missing.jpg').status_code, 404)

    def test_my_reports(self):
        self.assertEqual(self.client.get('/api/reports/my').status_code, 401)

        mine = self.submit(headers={'X-Forwarded-User': 'user-1'}).json()
        self.submit(headers={'X-Forwarded-User': 'user-2'})
        self.submit()

        r = self.client.get('/api/reports/my', headers={'X-Forwarded-User': 'user-1'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual([report['id'] for report in r.json()], [mine['id']])
        self.assertEqual(mine['userId'], 'user-1')

    def test_auth_user(self):
        self.assertEqual(self.client.get('/api/auth/user').status_code, 401)

        r = self.client.get(
            '/api/auth/user',
            headers={'X-Forwarded-User': 'user-1', 'X-Forwarded-Email': 'ana@example.com'},
        )
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['id'], 'user-1')
        self.assertEqual(r.json()['email'], 'ana@example.com')

    def test_login_logout_redirect(self):
        for path in ('/api/login', '/api/logout'):
            with self.subTest(path=path):
                r = self.client.get(path, follow_redirects=False)
                self.assertIn(r.status_code, (302, 307))
                self.assertIn('Location', r.headers)
