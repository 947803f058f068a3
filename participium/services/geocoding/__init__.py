"""
Reverse geocoding for report addresses.

Providers never raise; a failed lookup yields empty fields and the report
is stored without an address.
"""

from typing import Optional

from participium.core.settings import settings
from .base import GeocodingProvider, empty_result, format_address
from .resolver import get_geocoding_provider, reset_geocoding_provider


def reverse_geocode_address(latitude: float, longitude: float) -> Optional[str]:
    """Street address for a point, or None when disabled or unknown."""
    if not settings.GEOCODING_ENABLED:
        return None
    return get_geocoding_provider().reverse_geocode(latitude, longitude).get("address")


__all__ = [
    "GeocodingProvider",
    "empty_result",
    "format_address",
    "get_geocoding_provider",
    "reset_geocoding_provider",
    "reverse_geocode_address",
]
