"""
Reverse-geocoding provider contract.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class GeocodingProvider(ABC):
    """
    Abstract reverse-geocoding provider.

    Contract:
    - Input: latitude, longitude (floats)
    - Output: dict with well-known keys:
      {
        "address": str | None,       # "<road>, <house number>" when known
        "road": str | None,
        "house_number": str | None,
        "city": str | None,
        "country": str | None,
        "provider": str
      }
    - MUST NEVER raise upstream exceptions; returns empty fields on failure.
    - Network timeout is GEOCODING_TIMEOUT_SECONDS.
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        raise NotImplementedError


def empty_result(provider: str) -> Dict[str, Optional[str]]:
    return {
        "address": None,
        "road": None,
        "house_number": None,
        "city": None,
        "country": None,
        "provider": provider,
    }


def format_address(road: Optional[str], house_number: Optional[str]) -> Optional[str]:
    """Street first, then the civic number: "Via Roma, 12"."""
    if not road:
        return None
    if house_number:
        return f"{road}, {house_number}"
    return road
