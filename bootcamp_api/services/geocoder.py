"""
Geocoding service (MapQuest geocoding API).
Turns free-text addresses and zipcodes into coordinates plus normalized
address components.
"""
import logging
import math
from enum import Enum
from typing import Optional

import requests
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from bootcamp_api.config import get_settings
from bootcamp_api.errors import UpstreamFailure, ValidationError
from bootcamp_api.models.bootcamp import Location

settings = get_settings()
logger = logging.getLogger(__name__)

EARTH_RADIUS = {"mi": 3963.2, "km": 6378.1}


class DistanceUnit(str, Enum):
    """Units accepted by radius search."""
    MILES = "mi"
    KILOMETERS = "km"


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str = ""
    street: Optional[str] = None
    city: Optional[str] = None
    state_code: Optional[str] = None
    zipcode: Optional[str] = None
    country_code: Optional[str] = None

    def to_location(self) -> Location:
        """GeoJSON point, longitude first."""
        return Location(
            coordinates=[self.longitude, self.latitude],
            formatted_address=self.formatted_address,
            street=self.street,
            city=self.city,
            state=self.state_code,
            zipcode=self.zipcode,
            country=self.country_code,
        )


def distance_between(lat1: float, lng1: float, lat2: float, lng2: float, unit: str = "km") -> float:
    """Great-circle distance using the haversine formula."""
    radius = EARTH_RADIUS["mi"] if unit == "mi" else EARTH_RADIUS["km"]
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * radius * math.asin(math.sqrt(a))


class GeocoderService:
    """Service for address lookups."""

    def __init__(self):
        self.api_key = settings.geocoder_api_key
        self.url = settings.geocoder_url

    def _fetch(self, address: str) -> dict:
        response = requests.get(
            self.url,
            params={"key": self.api_key, "location": address, "maxResults": 1},
            timeout=10,
        )
        response.raise_for_status()
        return response.json()

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Geocode a free-text address.

        Raises:
            ValidationError: nothing matched the address
            UpstreamFailure: the geocoding API could not be reached
        """
        try:
            payload = await run_in_threadpool(self._fetch, address)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Geocoding request failed: %s", e)
            raise UpstreamFailure("Geocoding service unavailable")

        results = payload.get("results") or [{}]
        locations = results[0].get("locations") or []
        if not locations:
            raise ValidationError(f"Could not geocode address: {address}")

        loc = locations[0]
        lat_lng = loc.get("latLng") or {}
        if "lat" not in lat_lng or "lng" not in lat_lng:
            raise ValidationError(f"Could not geocode address: {address}")

        street = loc.get("street") or None
        city = loc.get("adminArea5") or None
        state_code = loc.get("adminArea3") or None
        zipcode = loc.get("postalCode") or None
        country_code = loc.get("adminArea1") or None

        region = " ".join(part for part in (state_code, zipcode) if part)
        formatted = ", ".join(part for part in (street, city, region, country_code) if part)

        return GeocodeResult(
            latitude=lat_lng["lat"],
            longitude=lat_lng["lng"],
            formatted_address=formatted,
            street=street,
            city=city,
            state_code=state_code,
            zipcode=zipcode,
            country_code=country_code,
        )
