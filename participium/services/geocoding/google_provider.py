from typing import Any, Dict, List, Optional
import logging

import requests

from participium.core.settings import settings
from .base import GeocodingProvider, empty_result, format_address

logger = logging.getLogger(__name__)


class GoogleMapsProvider(GeocodingProvider):
    """
    Google Maps reverse-geocoding provider.

    Used only when GEOCODING_PROVIDER=google and GOOGLE_MAPS_API_KEY is set.
    """

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        if not self.api_key:
            logger.info("GoogleMapsProvider called without API key; returning empty result.")
            return empty_result(self.name)

        try:
            resp = requests.get(
                self.BASE_URL,
                params={"latlng": f"{latitude},{longitude}", "key": self.api_key},
                timeout=settings.GEOCODING_TIMEOUT_SECONDS,
            )
            if resp.status_code != 200:
                logger.warning(f"Google Maps reverse-geocode failed with status {resp.status_code}")
                return empty_result(self.name)

            data: Dict[str, Any] = resp.json()
            results = data.get("results") or []
            if not results:
                return empty_result(self.name)

            first = results[0]
            components: List[Dict[str, Any]] = first.get("address_components") or []

            def _component(types):
                for c in components:
                    if any(t in c.get("types", []) for t in types):
                        return c.get("long_name")
                return None

            road = _component(["route"])
            house_number = _component(["street_number"])

            return {
                "address": format_address(road, house_number) or first.get("formatted_address"),
                "road": road,
                "house_number": house_number,
                "city": _component(["locality", "postal_town"]),
                "country": _component(["country"]),
                "provider": self.name,
            }
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Google Maps reverse-geocode error: {e}")
            return empty_result(self.name)
