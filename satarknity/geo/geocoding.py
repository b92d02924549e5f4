"""
Satarknity - Reverse Geocoding
Turns device coordinates into a human-readable location string.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from satarknity.core.constants import COORDINATE_DECIMALS
from satarknity.core.errors import GeocodingError

logger = logging.getLogger(__name__)


@dataclass
class Coordinates:
    """Best-effort device position."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def as_text(self) -> str:
        """Raw coordinate pair used when no address can be resolved."""
        return (
            f"{self.latitude:.{COORDINATE_DECIMALS}f}, "
            f"{self.longitude:.{COORDINATE_DECIMALS}f}"
        )


@dataclass
class ResolvedLocation:
    """Location text plus how it was obtained."""
    text: str
    source: str  # "geocoded" or "coordinates"
    coordinates: Coordinates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "source": self.source,
            "latitude": self.coordinates.latitude,
            "longitude": self.coordinates.longitude,
        }


class ReverseGeocoder:
    """
    Client for a Nominatim-compatible reverse geocoding service.

    Works against the public OpenStreetMap instance or any provider that
    speaks the same API with a static access key (passed as `key`).
    Rate limited to 1 request per second.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        api_key: Optional[str] = None,
        user_agent: str = "Satarknity/0.2",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the geocoder.

        Args:
            base_url: Service root URL
            api_key: Static access key, if the provider requires one
            user_agent: Identifying User-Agent (required by Nominatim policy)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._last_request_time = 0.0

    def __enter__(self):
        self._get_client()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._client

    def _rate_limit(self):
        """Ensure we don't exceed rate limits."""
        elapsed = time.time() - self._last_request_time
        if elapsed < 1.0:
            time.sleep(1.0 - elapsed)
        self._last_request_time = time.time()

    def reverse_geocode(self, latitude: float, longitude: float) -> str:
        """
        Reverse geocode coordinates to an address.

        Args:
            latitude: Location latitude
            longitude: Location longitude

        Returns:
            Formatted address

        Raises:
            GeocodingError: service unreachable, errored, or found nothing
        """
        self._rate_limit()

        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
        }
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = self._get_client().get(f"{self.base_url}/reverse", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(f"Reverse geocoding failed: {e}") from e

        address = data.get("display_name") if isinstance(data, dict) else None
        if not address:
            raise GeocodingError(
                data.get("error", "No address found") if isinstance(data, dict) else "No address found"
            )

        return address

    def resolve(self, coordinates: Coordinates) -> ResolvedLocation:
        """
        Resolve coordinates to a location string, never leaving it empty.

        Any geocoding failure falls back to the raw coordinate pair.
        """
        try:
            address = self.reverse_geocode(coordinates.latitude, coordinates.longitude)
            return ResolvedLocation(text=address, source="geocoded", coordinates=coordinates)
        except GeocodingError as e:
            logger.warning(f"Falling back to raw coordinates: {e.message}")
            return ResolvedLocation(
                text=coordinates.as_text(),
                source="coordinates",
                coordinates=coordinates,
            )
