import logging
from datetime import timedelta
from typing import Protocol

from httpx import AsyncClient
from sentry_sdk import trace

from config import GEOCODING_TIMEOUT, NOMINATIM_URL
from models.address import Address
from utils import first_non_empty, timeout_seconds

# most specific key first
_STREET_KEYS = ('pedestrian', 'road', 'street', 'footway', 'path')
_NEIGHBORHOOD_KEYS = ('neighbourhood', 'suburb', 'quarter', 'residential')
_CITY_KEYS = ('city', 'town', 'village', 'municipality')
_REGION_KEYS = ('state', 'region', 'state_district')


class Geocoder(Protocol):
    async def reverse_geocode(self, latitude: float, longitude: float) -> Address: ...


def parse_nominatim_address(data: object) -> Address:
    if not isinstance(data, dict):
        raise ValueError(f'Expected a JSON object, got {type(data).__name__}')

    address = data.get('address') or {}
    if not isinstance(address, dict):
        raise ValueError(f'Expected address to be an object, got {type(address).__name__}')

    return Address(
        street=first_non_empty(address, _STREET_KEYS),
        neighborhood=first_non_empty(address, _NEIGHBORHOOD_KEYS),
        city=first_non_empty(address, _CITY_KEYS),
        region=first_non_empty(address, _REGION_KEYS),
    )


class NominatimGeocoder:
    """
    Best-effort reverse geocoding with the Nominatim API.

    Address details are cosmetic, so every failure results in an empty address.
    """

    def __init__(
        self,
        http: AsyncClient,
        *,
        url: str = NOMINATIM_URL,
        timeout: timedelta | float = GEOCODING_TIMEOUT,
    ) -> None:
        self._http = http
        self._url = url
        self._timeout = timeout_seconds(timeout)

    @trace
    async def reverse_geocode(self, latitude: float, longitude: float) -> Address:
        try:
            r = await self._http.get(
                f'{self._url}/reverse',
                params={
                    'format': 'json',
                    'lat': latitude,
                    'lon': longitude,
                    'zoom': 18,
                    'addressdetails': 1,
                },
                timeout=self._timeout,
            )
            r.raise_for_status()
            return parse_nominatim_address(r.json())
        except Exception as e:
            logging.warning('Reverse geocoding failed for (%f, %f): %r', latitude, longitude, e)
            return Address()
