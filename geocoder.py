"""MapQuest geocoding client."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

import config

logger = logging.getLogger(__name__)


class GeocoderError(Exception):
    """Raised when the geocoding service cannot be reached or rejects the request."""


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

    @property
    def formatted_address(self) -> str:
        region = " ".join(part for part in (self.state, self.zipcode) if part)
        return ", ".join(part for part in (self.street, self.city, region, self.country) if part)

    def to_location(self) -> dict:
        """GeoJSON point, longitude first."""
        return {
            "type": "Point",
            "coordinates": [self.longitude, self.latitude],
            "formatted_address": self.formatted_address,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipcode": self.zipcode,
            "country": self.country,
        }


class Geocoder:
    def __init__(self, api_key: str, url: str, timeout: float = 10.0):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    def geocode(self, address: str) -> List[GeocodeResult]:
        try:
            response = requests.get(
                self.url,
                params={"key": self.api_key, "location": address},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Geocoding %r failed: %s", address, e)
            raise GeocoderError(str(e)) from e

        results = []
        for result in body.get("results", []):
            for loc in result.get("locations", []):
                lat_lng = loc.get("latLng") or {}
                if "lat" not in lat_lng or "lng" not in lat_lng:
                    continue
                results.append(GeocodeResult(
                    latitude=lat_lng["lat"],
                    longitude=lat_lng["lng"],
                    street=loc.get("street") or None,
                    city=loc.get("adminArea5") or None,
                    state=loc.get("adminArea3") or None,
                    zipcode=loc.get("postalCode") or None,
                    country=loc.get("adminArea1") or None,
                ))
        return results


def get_geocoder() -> Geocoder:
    return Geocoder(api_key=config.GEOCODER_API_KEY, url=config.GEOCODER_URL)
