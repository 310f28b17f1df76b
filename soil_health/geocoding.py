"""OpenStreetMap Nominatim reverse geocoding for GPS sampling locations."""

import time
from typing import Any

import requests
from pydantic import BaseModel

from soil_health.config import GeocodingSettings, get_settings
from soil_health.http_cache import request
from soil_health.logging_config import get_logger
from soil_health.models import LocationOption, LocationRef

logger = get_logger(__name__)

PUBLIC_NOMINATIM_HOST = "nominatim.openstreetmap.org"

# Nominatim address keys, most specific first
CITY_KEYS = ("city", "town", "village", "municipality", "hamlet")
REGION_KEYS = ("state", "province", "region", "county", "state_district")


class LocationDetails(BaseModel):
    """Country, primary administrative region and city for a coordinate."""

    country: str | None = None
    country_code: str | None = None
    region: str | None = None
    city: str | None = None

    def is_empty(self) -> bool:
        return not (self.country or self.region or self.city)


def _first(address: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if address.get(key):
            return str(address[key])
    return None


class ReverseGeocoder:
    """Reverse geocoder backed by the Nominatim ``/reverse`` endpoint."""

    def __init__(self, settings: GeocodingSettings | None = None) -> None:
        self.settings = settings or get_settings().geocoding
        self.last_request_time = 0.0
        self.min_request_interval = 1.0  # Nominatim usage policy: 1 req/s
        logger.debug(f"Reverse geocoder initialized: {self.settings.endpoint}")

    def _respect_rate_limit(self) -> None:
        if PUBLIC_NOMINATIM_HOST not in self.settings.endpoint:
            return
        elapsed = time.time() - self.last_request_time
        if elapsed < self.min_request_interval:
            sleep_time = self.min_request_interval - elapsed
            logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
            time.sleep(sleep_time)
        self.last_request_time = time.time()

    def lookup(self, latitude: float, longitude: float) -> LocationDetails | None:
        """Resolve a coordinate to country/region/city.

        Returns None when the service fails or knows nothing about the point.
        """
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise ValueError(f"Invalid coordinates: {latitude}, {longitude}")

        self._respect_rate_limit()
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "jsonv2",
            "addressdetails": "1",
            "zoom": "10",
            "accept-language": self.settings.language,
        }
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "application/json",
        }

        try:
            response = request(
                "GET",
                self.settings.endpoint,
                params=params,
                headers=headers,
                timeout=self.settings.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Nominatim lookup failed for ({latitude}, {longitude}): {e}")
            return None

        if not isinstance(data, dict) or "error" in data:
            logger.info(f"No address found for ({latitude}, {longitude})")
            return None

        address = data.get("address") or {}
        details = LocationDetails(
            country=address.get("country"),
            country_code=(address.get("country_code") or "").upper() or None,
            region=_first(address, REGION_KEYS),
            city=_first(address, CITY_KEYS),
        )
        return None if details.is_empty() else details

    def enrich_location(self, location: LocationRef) -> LocationRef:
        """Copy of a GPS location with country/region/city filled in.

        Manual locations, and GPS locations that cannot be resolved, are
        returned unchanged.
        """
        if location.option != LocationOption.GPS:
            return location

        details = self.lookup(location.latitude, location.longitude)
        if details is None:
            return location

        return location.model_copy(
            update={
                "country": details.country,
                "region": details.region,
                "city": details.city,
            }
        )
