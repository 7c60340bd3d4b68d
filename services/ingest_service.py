import logging
import math

from anyio import create_task_group
from sentry_sdk import trace

from exceptions import ReportValidationError
from models.address import Address
from models.classification import Classification
from models.report import NewReport, Report
from services.classifier_service import Classifier
from services.geocoding_service import Geocoder
from services.image_service import ImageService
from services.report_store import ReportStore


def _validate_coordinate(name: str, value: float | None, limit: float) -> float:
    if value is None:
        raise ReportValidationError(f'{name.capitalize()} is required')
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ReportValidationError(f'{name.capitalize()} must be a number')

    value = float(value)
    if not math.isfinite(value) or not -limit <= value <= limit:
        raise ReportValidationError(f'{name.capitalize()} must be a finite number between {-limit} and {limit}')

    return value


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class IngestService:
    """
    Turns one submitted photo and location into a stored report.

    Only invalid input and photo storage failures abort a submission.
    Geocoding and classification degrade to defaults instead.
    """

    def __init__(
        self,
        store: ReportStore,
        images: ImageService,
        geocoder: Geocoder,
        classifier: Classifier,
    ) -> None:
        self.store = store
        self.images = images
        self.geocoder = geocoder
        self.classifier = classifier

    @trace
    async def ingest(
        self,
        photo: bytes | None,
        latitude: float | None,
        longitude: float | None,
        *,
        comment: str | None = None,
        contact: str | None = None,
        user_id: str | None = None,
    ) -> Report:
        if not photo:
            raise ReportValidationError('Photo is required')
        latitude = _validate_coordinate('latitude', latitude, 90)
        longitude = _validate_coordinate('longitude', longitude, 180)

        image = await self.images.normalize(photo)

        address = Address()
        classification = Classification.default()

        async def geocode() -> None:
            nonlocal address
            address = await self.geocoder.reverse_geocode(latitude, longitude)

        async def classify() -> None:
            nonlocal classification
            classification = await self.classifier.classify(image.data)

        async with create_task_group() as tg:
            tg.start_soon(geocode)
            tg.start_soon(classify)

        if address.is_empty:
            logging.info('Enrichment degraded for %r: no address for (%f, %f)', image.key, latitude, longitude)
        if classification.is_default:
            logging.info('Enrichment degraded for %r: default classification', image.key)

        report = await self.store.create(
            NewReport(
                latitude=latitude,
                longitude=longitude,
                street=address.street,
                neighborhood=address.neighborhood,
                city=address.city,
                region=address.region,
                comment=_blank_to_none(comment),
                contact=_blank_to_none(contact),
                photo_key=image.key,
                species=classification.species,
                breed=classification.breed,
                user_id=user_id,
            )
        )

        logging.info('Created report %s (%s, %s)', report.id, report.species, report.breed)
        return report
