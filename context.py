import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from pydantic import SecretStr

from config import GEMINI_API_KEY, PHOTOS_DIR
from db import create_db_engine, create_tables
from services.classifier_service import GeminiClassifier
from services.geocoding_service import NominatimGeocoder
from services.image_service import ImageService
from services.ingest_service import IngestService
from services.report_store import DatabaseReportStore, ReportStore
from services.user_service import DatabaseUserStore, UserStore
from utils import create_http_client


@dataclass(frozen=True, slots=True)
class AppContext:
    reports: ReportStore
    users: UserStore
    images: ImageService
    ingest: IngestService


@asynccontextmanager
async def open_context() -> AsyncIterator[AppContext]:
    """
    Wire the production services: database stores, filesystem photos, Nominatim and Gemini.
    """
    engine = create_db_engine()
    await create_tables(engine)

    if GEMINI_API_KEY is None:
        logging.warning('GEMINI_API_KEY is not set, reports will use the default classification')

    try:
        async with create_http_client() as http:
            reports = DatabaseReportStore(engine)
            images = ImageService(PHOTOS_DIR)
            yield AppContext(
                reports=reports,
                users=DatabaseUserStore(engine),
                images=images,
                ingest=IngestService(
                    store=reports,
                    images=images,
                    geocoder=NominatimGeocoder(http),
                    classifier=GeminiClassifier(
                        http,
                        SecretStr(GEMINI_API_KEY) if GEMINI_API_KEY is not None else None,
                    ),
                ),
            )
    finally:
        await engine.dispose()
