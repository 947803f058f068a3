from typing import Any, Dict, Optional
import logging

import requests

from participium.core.settings import settings
from .base import GeocodingProvider, empty_result, format_address

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse-geocoding provider.

    No API key required. Nominatim's usage policy asks for an identifying
    User-Agent header.
    """

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/reverse"

    def __init__(self, user_agent: str = "participium-api/0.1"):
        self.user_agent = user_agent

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        try:
            resp = requests.get(
                self.BASE_URL,
                params={"lat": latitude, "lon": longitude, "format": "json", "addressdetails": 1},
                headers={"User-Agent": self.user_agent},
                timeout=settings.GEOCODING_TIMEOUT_SECONDS,
            )
            if resp.status_code != 200:
                logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
                return empty_result(self.name)

            data: Dict[str, Any] = resp.json()
            address = data.get("address") or {}

            road = address.get("road") or address.get("pedestrian") or address.get("square")
            house_number = address.get("house_number")

            return {
                "address": format_address(road, house_number) or data.get("display_name"),
                "road": road,
                "house_number": house_number,
                "city": address.get("city") or address.get("town") or address.get("village"),
                "country": address.get("country"),
                "provider": self.name,
            }
        except (requests.RequestException, ValueError) as e:
            # Report creation must not fail because of geocoding
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return empty_result(self.name)
