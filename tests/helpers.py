"""Shared test data."""

# Square around central Turin, (lng, lat)
TEST_BOUNDARY = {
    "type": "Polygon",
    "coordinates": [[[7.60, 45.00], [7.75, 45.00], [7.75, 45.12], [7.60, 45.12], [7.60, 45.00]]],
}
INSIDE = (7.6869, 45.0703)
OUTSIDE = (9.1900, 45.4642)

DEFAULT_PASSWORD = "password123"


def image_file(name: str = "photo.jpg", content_type: str = "image/jpeg", size: int = 1024):
    """Multipart tuple for the "images" field."""
    return ("images", (name, b"\xff" * size, content_type))
