"""
Tests for the database seed script.
"""
import json

from participium.utils.geometry import load_geometry, point_in_geometry
from participium.utils.security import verify_password
from scripts.seed_db import build_seed, write_to_db
from tests.helpers import INSIDE


def test_every_category_points_to_seeded_offices():
    seed = build_seed("s3cret!")
    offices = seed["offices"]
    for category in seed["categories"].values():
        assert offices[category["office_id"]]["is_external"] is False
        assert offices[category["external_office_id"]]["is_external"] is True


def test_admin_account():
    seed = build_seed("s3cret!")
    admin = seed["users"]["user_admin"]
    assert admin["role_id"] == "role_admin"
    assert verify_password("s3cret!", admin["password_hash"])

    assignment = seed["office_roles"]["user_admin_office_organization_office"]
    assert assignment["user_id"] == "user_admin"
    assert (assignment["office_id"], assignment["role_id"]) == (admin["office_id"], admin["role_id"])


def test_boundary_is_json_and_contains_city_centre():
    boundary = build_seed("x")["boundaries"]["boundary_torino"]
    assert isinstance(boundary["geometry"], str)
    assert point_in_geometry(*INSIDE, load_geometry(boundary["geometry"]))
    assert json.loads(boundary["geometry"])["type"] == "MultiPolygon"


def test_dry_run_writes_nothing(fake_db):
    seed = {"roles": {"role_x": {"name": "x"}}}
    write_to_db(fake_db, seed, apply=False)
    assert fake_db.docs("roles").get("role_x") is None


def test_apply_is_idempotent(fake_db):
    seed = build_seed("x")
    write_to_db(fake_db, seed, apply=True)
    write_to_db(fake_db, seed, apply=True)
    assert len(fake_db.docs("categories")) == len(seed["categories"]) + 2
