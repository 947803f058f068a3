"""
Participium - Test Configuration and Fixtures
"""
import json
import os
from datetime import timedelta

import pytest
from faker import Faker

# Set testing environment before settings are loaded
os.environ["GEOCODING_ENABLED"] = "false"
os.environ["ENFORCE_MUNICIPAL_BOUNDARY"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_USER"] = ""
os.environ["COOKIE_SECURE"] = "false"

from fastapi.testclient import TestClient

from participium.config import firebase
from participium.core.settings import settings
from participium.main import app
from participium.services import (
    auth_service,
    boundary_service,
    discussion_service,
    email_service,
    notification_service,
    otp_service,
    profile_service,
    report_service,
    session_service,
    storage_service,
    taxonomy_service,
    telegram_link_service,
    user_service,
)
from participium.services.geocoding import resolver
from participium.utils.firestore_helpers import utcnow
from participium.utils.security import hash_password
from tests.mocks.fake_firestore import FakeFirestore
from tests.helpers import DEFAULT_PASSWORD, TEST_BOUNDARY
from tests.mocks.fake_storage import FakeBucket

fake = Faker()

_SINGLETONS = [
    (auth_service, "_auth_service"),
    (boundary_service, "_boundary_service"),
    (discussion_service, "_discussion_service"),
    (email_service, "_email_service"),
    (notification_service, "_notification_service"),
    (otp_service, "_otp_service"),
    (profile_service, "_profile_service"),
    (report_service, "_report_service"),
    (session_service, "_session_service"),
    (storage_service, "_storage_service"),
    (taxonomy_service, "_taxonomy_service"),
    (telegram_link_service, "_telegram_link_service"),
    (user_service, "_user_service"),
    (resolver, "_provider_instance"),
]


@pytest.fixture(autouse=True)
def fake_db(monkeypatch) -> FakeFirestore:
    """Fresh in-memory Firestore and fresh service singletons for each test"""
    db = FakeFirestore()
    monkeypatch.setattr(firebase, "db", db)
    for module, attribute in _SINGLETONS:
        monkeypatch.setattr(module, attribute, None)
    return db


@pytest.fixture(autouse=True)
def fake_bucket(monkeypatch) -> FakeBucket:
    bucket = FakeBucket()
    monkeypatch.setattr(storage_service, "get_bucket", lambda: bucket)
    return bucket


@pytest.fixture(autouse=True)
def taxonomy(fake_db: FakeFirestore) -> dict:
    """Roles, offices, categories and the municipal boundary"""
    roles = {
        "user": False,
        "admin": True,
        "pr_officer": True,
        "tech_officer": True,
        "external_maintainer": True,
    }
    for name, is_municipal in roles.items():
        fake_db.collection("roles").document(f"role_{name}").set(
            {"name": name, "label": name.replace("_", " ").title(), "is_municipal": is_municipal}
        )

    offices = {
        "maintenance": False,
        "infrastructure": False,
        "organization_office": False,
        "external_company_1": True,
        "external_company_2": True,
    }
    for name, is_external in offices.items():
        fake_db.collection("offices").document(f"office_{name}").set(
            {"name": name, "label": name.replace("_", " ").title(), "is_external": is_external}
        )

    fake_db.collection("categories").document("cat_roads").set({
        "name": "Roads and Urban Furnishings",
        "office_id": "office_maintenance",
        "external_office_id": "office_external_company_1",
    })
    fake_db.collection("categories").document("cat_lighting").set({
        "name": "Public Lighting",
        "office_id": "office_infrastructure",
        "external_office_id": "office_external_company_2",
    })
    fake_db.collection("boundaries").document("boundary_torino").set({
        "name": "torino",
        "label": "Comune di Torino",
        "geometry": json.dumps(TEST_BOUNDARY),
    })

    return {
        "roles": {name: f"role_{name}" for name in roles},
        "offices": {name: f"office_{name}" for name in offices},
        "categories": {"roads": "cat_roads", "lighting": "cat_lighting"},
    }


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(fake_db: FakeFirestore):
    """Factory creating a user document (and a profile for citizens)"""

    def _make_user(role: str = "user", office: str = None, verified: bool = True,
                   password: str = DEFAULT_PASSWORD, **fields) -> dict:
        now = utcnow()
        username = fields.pop("username", None) or f"{fake.user_name()}_{fake.pyint(1000, 9999)}"
        data = {
            "email": fields.pop("email", None) or f"{username}@example.com",
            "username": username,
            "first_name": fields.pop("first_name", None) or fake.first_name(),
            "last_name": fields.pop("last_name", None) or fake.last_name(),
            "role_id": f"role_{role}",
            "office_id": f"office_{office}" if office else None,
            "password_hash": hash_password(password),
            "is_email_verified": verified,
            "created_at": now,
            "updated_at": now,
        }
        data.update(fields)

        user_ref = fake_db.collection("users").document()
        user_ref.set(data)
        if role == "user":
            fake_db.collection("profiles").document(user_ref.id).set({
                "user_id": user_ref.id,
                "telegram_username": None,
                "telegram_id": None,
                "telegram_linked_at": None,
                "email_notifications_enabled": True,
                "profile_picture_url": None,
                "created_at": now,
                "updated_at": now,
            })
        return dict(data, id=user_ref.id)

    return _make_user


@pytest.fixture
def session_for():
    """Factory returning a fresh session token for a user"""

    def _session_for(user: dict) -> str:
        token, _ = session_service.get_session_service().create_session(user["id"])
        return token

    return _session_for


@pytest.fixture
def login(client: TestClient, session_for):
    """Factory putting a user's session cookie on the test client"""

    def _login(user: dict) -> TestClient:
        client.cookies.set(settings.SESSION_COOKIE_NAME, session_for(user))
        return client

    return _login


@pytest.fixture
def age_session(fake_db: FakeFirestore):
    """Move a session's last activity into the past"""

    def _age_session(token: str, seconds: float) -> None:
        session_id = token.split(".")[0]
        fake_db.docs("sessions")[session_id]["updated_at"] = utcnow() - timedelta(seconds=seconds)

    return _age_session

