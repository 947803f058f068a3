"""
Tests for spatial helpers, upload validation and reverse geocoding.
"""
import json

import pytest
import requests

from participium.core.exceptions import BadRequestError
from participium.services import geocoding
from participium.services.geocoding import nominatim_provider, resolver
from participium.services.geocoding.google_provider import GoogleMapsProvider
from participium.services.geocoding.nominatim_provider import NominatimProvider
from participium.utils.geometry import (
    haversine_meters,
    in_bounding_box,
    load_geometry,
    point_in_geometry,
    within_radius,
)
from participium.utils.uploads import (
    MAX_IMAGE_SIZE,
    sanitize_filename,
    validate_image,
    validate_report_image_count,
)
from tests.helpers import INSIDE, OUTSIDE, TEST_BOUNDARY

SQUARE_WITH_HOLE = {
    "type": "Polygon",
    "coordinates": [
        [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]],
        [[4, 4], [6, 4], [6, 6], [4, 6], [4, 4]],
    ],
}


# Distances

def test_haversine_zero_distance():
    assert haversine_meters(45.07, 7.68, 45.07, 7.68) == 0


def test_haversine_turin_to_milan():
    distance = haversine_meters(INSIDE[1], INSIDE[0], OUTSIDE[1], OUTSIDE[0])
    assert 120_000 < distance < 130_000


def test_one_degree_of_latitude():
    assert haversine_meters(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)


def test_within_radius():
    assert within_radius(7.6869, 45.0703, 7.6869, 45.0712, 150)
    assert not within_radius(7.6869, 45.0703, 7.6869, 45.0712, 50)


# Bounding box

def test_bounding_box_is_inclusive():
    assert in_bounding_box(7.6, 45.0, 7.6, 45.0, 7.7, 45.1)
    assert in_bounding_box(7.7, 45.1, 7.6, 45.0, 7.7, 45.1)
    assert not in_bounding_box(7.70001, 45.05, 7.6, 45.0, 7.7, 45.1)


# Polygons

def test_point_in_test_boundary():
    assert point_in_geometry(*INSIDE, TEST_BOUNDARY)
    assert not point_in_geometry(*OUTSIDE, TEST_BOUNDARY)


def test_point_in_hole_is_outside():
    assert point_in_geometry(2, 2, SQUARE_WITH_HOLE)
    assert not point_in_geometry(5, 5, SQUARE_WITH_HOLE)


def test_multipolygon_matches_any_part():
    geometry = {
        "type": "MultiPolygon",
        "coordinates": [
            [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
            [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]],
        ],
    }
    assert point_in_geometry(0.5, 0.5, geometry)
    assert point_in_geometry(5.5, 5.5, geometry)
    assert not point_in_geometry(3, 3, geometry)


def test_unsupported_geometry_contains_nothing():
    assert not point_in_geometry(0, 0, {"type": "Point", "coordinates": [0, 0]})


def test_load_geometry_accepts_json_and_dicts():
    assert load_geometry(json.dumps(TEST_BOUNDARY)) == TEST_BOUNDARY
    assert load_geometry(TEST_BOUNDARY) is TEST_BOUNDARY
    assert load_geometry("{not json") is None
    assert load_geometry(None) is None


# Uploads

@pytest.mark.parametrize(
    "filename, expected",
    [
        ("photo.jpg", "photo.jpg"),
        ("my photo (1).png", "my_photo__1_.png"),
        ("../../etc/passwd", "passwd"),
        ("città.webp", "citt_.webp"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_validate_image_rejects_type():
    with pytest.raises(BadRequestError) as exc_info:
        validate_image("doc.pdf", "application/pdf", 100)
    assert exc_info.value.message == "Invalid file type: application/pdf. Allowed types: JPEG, PNG, WebP"


def test_validate_image_size_limit():
    validate_image("big.png", "image/png", MAX_IMAGE_SIZE)
    with pytest.raises(BadRequestError) as exc_info:
        validate_image("big.png", "image/png", MAX_IMAGE_SIZE + 1)
    assert exc_info.value.message == "File big.png exceeds 5MB limit"


@pytest.mark.parametrize("count", [0, 4])
def test_report_image_count_out_of_range(count):
    with pytest.raises(BadRequestError):
        validate_report_image_count(count)


# Geocoding

class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload


def test_nominatim_formats_road_and_number(monkeypatch):
    payload = {"address": {"road": "Via Roma", "house_number": "12", "city": "Torino", "country": "Italia"}}
    monkeypatch.setattr(nominatim_provider.requests, "get", lambda *args, **kwargs: FakeResponse(payload=payload))

    result = NominatimProvider().reverse_geocode(45.07, 7.68)
    assert result["address"] == "Via Roma, 12"
    assert result["city"] == "Torino"
    assert result["provider"] == "nominatim"


def test_nominatim_failure_yields_empty_result(monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(nominatim_provider.requests, "get", timeout)
    result = NominatimProvider().reverse_geocode(45.07, 7.68)
    assert result["address"] is None


def test_resolver_falls_back_without_google_key(monkeypatch):
    monkeypatch.setattr(resolver.settings, "GEOCODING_PROVIDER", "google")
    monkeypatch.setattr(resolver.settings, "GOOGLE_MAPS_API_KEY", None)
    assert isinstance(resolver.get_geocoding_provider(), NominatimProvider)


def test_resolver_uses_google_with_key(monkeypatch):
    monkeypatch.setattr(resolver.settings, "GEOCODING_PROVIDER", "google")
    monkeypatch.setattr(resolver.settings, "GOOGLE_MAPS_API_KEY", "key")
    assert isinstance(resolver.get_geocoding_provider(), GoogleMapsProvider)


def test_reverse_geocode_disabled_returns_none(monkeypatch):
    monkeypatch.setattr(geocoding.settings, "GEOCODING_ENABLED", False)
    assert geocoding.reverse_geocode_address(45.07, 7.68) is None


def test_reset_geocoding_provider_picks_up_new_settings(monkeypatch):
    monkeypatch.setattr(resolver.settings, "GEOCODING_PROVIDER", "nominatim")
    assert isinstance(geocoding.get_geocoding_provider(), NominatimProvider)

    monkeypatch.setattr(resolver.settings, "GEOCODING_PROVIDER", "google")
    monkeypatch.setattr(resolver.settings, "GOOGLE_MAPS_API_KEY", "key")
    assert isinstance(geocoding.get_geocoding_provider(), NominatimProvider)

    geocoding.reset_geocoding_provider()
    assert isinstance(geocoding.get_geocoding_provider(), GoogleMapsProvider)
