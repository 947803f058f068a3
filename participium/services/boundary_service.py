"""
Boundary Service - municipal geofence.

Boundaries are GeoJSON Polygon/MultiPolygon geometries stored as JSON
strings in the "boundaries" collection.
"""

from typing import Dict, List, Optional
import logging

from participium.config.firebase import get_db
from participium.core.exceptions import BadRequestError
from participium.core.settings import settings
from participium.utils.firestore_helpers import doc_to_dict
from participium.utils.geometry import load_geometry, point_in_geometry

logger = logging.getLogger(__name__)


class BoundaryService:
    """Point-in-boundary checks for report locations."""

    def __init__(self):
        self.db = get_db()

    def list_boundaries(self) -> List[Dict]:
        return [doc_to_dict(doc) for doc in self.db.collection("boundaries").stream()]

    def find_containing_boundary(self, longitude: float, latitude: float) -> Optional[Dict]:
        for boundary in self.list_boundaries():
            geometry = load_geometry(boundary.get("geometry"))
            if geometry is None:
                logger.warning(f"Boundary {boundary.get('id')} has an unreadable geometry")
                continue
            if point_in_geometry(longitude, latitude, geometry):
                return boundary
        return None

    def validate_coordinates(self, longitude: float, latitude: float) -> None:
        """
        Raises:
            BadRequestError: when enforcement is on and no boundary contains the point
        """
        if not settings.ENFORCE_MUNICIPAL_BOUNDARY:
            return
        if self.find_containing_boundary(longitude, latitude) is None:
            raise BadRequestError("The provided coordinates are outside the allowed municipal boundaries")


# Global service instance (singleton pattern)
_boundary_service = None


def get_boundary_service() -> BoundaryService:
    """Get or create BoundaryService singleton."""
    global _boundary_service
    if _boundary_service is None:
        _boundary_service = BoundaryService()
    return _boundary_service
