"""
Tests for report submission, listing, processing and discussion.
"""
from datetime import timedelta

import pytest

from participium.utils.firestore_helpers import utcnow
from tests.helpers import INSIDE, OUTSIDE, image_file


def _report_form(**overrides):
    form = {
        "title": "Broken streetlight",
        "description": "The streetlight on the corner has been off for a week",
        "longitude": str(INSIDE[0]),
        "latitude": str(INSIDE[1]),
        "category_id": "cat_roads",
    }
    form.update(overrides)
    return form


def _insert_report(fake_db, user, **fields):
    """Store a report directly, bypassing uploads"""
    now = utcnow()
    data = {
        "title": "Pothole",
        "description": "Deep pothole in the middle of the road",
        "status": "pending",
        "longitude": INSIDE[0],
        "latitude": INSIDE[1],
        "address": None,
        "images": ["https://storage.googleapis.com/participium-test/reports/x/1-photo.jpg"],
        "user_id": user["id"],
        "is_anonymous": False,
        "category_id": "cat_roads",
        "explanation": None,
        "assigned_officer_id": None,
        "assigned_external_maintainer_id": None,
        "processed_by_id": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(fields)
    report_ref = fake_db.collection("reports").document()
    report_ref.set(data)
    return report_ref.id


def _ids(response):
    return {report["id"] for report in response.json()["data"]}


@pytest.fixture
def citizen(make_user):
    return make_user()


@pytest.fixture
def pr_officer(make_user):
    return make_user("pr_officer", "organization_office")


@pytest.fixture
def tech_officer(make_user):
    return make_user("tech_officer", "maintenance", first_name="Teresa")


@pytest.fixture
def maintainer(make_user):
    return make_user("external_maintainer", "external_company_1")


# Submission

def test_create_report(login, citizen, fake_db, fake_bucket):
    client = login(citizen)
    response = client.post("/api/reports", data=_report_form(), files=[image_file("my photo.jpg")])
    assert response.status_code == 201

    report = response.json()["data"]
    assert report["status"] == "pending"
    assert report["user"]["id"] == citizen["id"]
    assert report["category"]["name"] == "Roads and Urban Furnishings"
    assert report["address"] is None
    assert len(report["images"]) == 1

    paths = list(fake_bucket.files)
    assert len(paths) == 1
    assert paths[0].startswith(f"reports/{report['id']}/")
    assert paths[0].endswith("-my_photo.jpg")
    assert report["images"][0].endswith(paths[0])
    assert report["id"] in fake_db.docs("reports")


def test_create_report_requires_session(client):
    response = client.post("/api/reports", data=_report_form(), files=[image_file()])
    assert response.status_code == 401


def test_create_report_outside_boundary(login, citizen, fake_bucket):
    client = login(citizen)
    form = _report_form(longitude=str(OUTSIDE[0]), latitude=str(OUTSIDE[1]))
    response = client.post("/api/reports", data=form, files=[image_file()])
    assert response.status_code == 400
    assert response.json()["message"] == "The provided coordinates are outside the allowed municipal boundaries"
    assert fake_bucket.files == {}


def test_create_report_without_images(login, citizen):
    response = login(citizen).post("/api/reports", data=_report_form())
    assert response.status_code == 400
    assert response.json()["message"] == "You must upload between 1 and 3 images"


def test_create_report_with_too_many_images(login, citizen):
    files = [image_file(f"photo{i}.jpg") for i in range(4)]
    response = login(citizen).post("/api/reports", data=_report_form(), files=files)
    assert response.status_code == 400


def test_create_report_with_wrong_file_type(login, citizen):
    files = [image_file("notes.txt", "text/plain")]
    response = login(citizen).post("/api/reports", data=_report_form(), files=files)
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid file type: text/plain")


def test_create_report_unknown_category(login, citizen):
    response = login(citizen).post("/api/reports", data=_report_form(category_id="nope"), files=[image_file()])
    assert response.status_code == 404


def test_create_report_fills_address_from_geocoder(login, citizen, monkeypatch):
    from participium.services import report_service

    monkeypatch.setattr(report_service, "reverse_geocode_address", lambda lat, lng: "Via Roma, 12")
    response = login(citizen).post("/api/reports", data=_report_form(), files=[image_file()])
    assert response.json()["data"]["address"] == "Via Roma, 12"


# Public listing

def test_public_listing_hides_anonymous_reporter(client, citizen, fake_db):
    report_id = _insert_report(fake_db, citizen, is_anonymous=True)

    response = client.get("/api/reports/public")
    assert response.status_code == 200
    report = response.json()["data"][0]
    assert report["id"] == report_id
    assert report["user"] is None
    assert report["user_id"] is None


def test_public_listing_shows_anonymous_reporter_to_owner_and_officers(login, make_user, citizen, pr_officer, fake_db):
    _insert_report(fake_db, citizen, is_anonymous=True)

    for viewer in (citizen, pr_officer):
        report = login(viewer).get("/api/reports/public").json()["data"][0]
        assert report["user"]["id"] == citizen["id"]

    other = make_user()
    report = login(other).get("/api/reports/public").json()["data"][0]
    assert report["user"] is None


def test_public_listing_ignores_bad_cookie(client, citizen, fake_db):
    _insert_report(fake_db, citizen)
    client.cookies.set("session_token", "garbage")
    response = client.get("/api/reports/public")
    assert response.status_code == 200
    assert len(response.json()["data"]) == 1


def test_public_listing_excludes_rejected(client, citizen, fake_db):
    visible = _insert_report(fake_db, citizen)
    _insert_report(fake_db, citizen, status="rejected")
    assert _ids(client.get("/api/reports/public")) == {visible}


def test_public_listing_bounding_box(client, citizen, fake_db):
    inside = _insert_report(fake_db, citizen, longitude=7.68, latitude=45.07)
    _insert_report(fake_db, citizen, longitude=7.72, latitude=45.10)

    params = {"min_longitude": 7.67, "max_longitude": 7.69, "min_latitude": 45.06, "max_latitude": 45.08}
    assert _ids(client.get("/api/reports/public", params=params)) == {inside}


def test_public_listing_radius(client, citizen, fake_db):
    near = _insert_report(fake_db, citizen, longitude=7.6869, latitude=45.0703)
    _insert_report(fake_db, citizen, longitude=7.70, latitude=45.09)

    params = {"search_longitude": 7.6869, "search_latitude": 45.0712, "radius_meters": 200}
    assert _ids(client.get("/api/reports/public", params=params)) == {near}


def test_public_listing_is_newest_first(client, citizen, fake_db):
    older = _insert_report(fake_db, citizen, created_at=utcnow() - timedelta(days=1))
    newer = _insert_report(fake_db, citizen)
    data = client.get("/api/reports/public").json()["data"]
    assert [report["id"] for report in data] == [newer, older]


# Authenticated listing

def test_citizen_sees_own_rejected_reports_only(login, make_user, citizen, fake_db):
    other = make_user()
    mine = _insert_report(fake_db, citizen, status="rejected")
    _insert_report(fake_db, other, status="rejected")
    open_report = _insert_report(fake_db, other)

    assert _ids(login(citizen).get("/api/reports")) == {mine, open_report}


def test_pr_officer_sees_pending_only(login, citizen, pr_officer, fake_db):
    pending = _insert_report(fake_db, citizen)
    _insert_report(fake_db, citizen, status="assigned")

    client = login(pr_officer)
    assert _ids(client.get("/api/reports")) == {pending}
    assert _ids(client.get("/api/reports", params={"status": "assigned"})) == {pending}


def test_external_maintainer_sees_assigned_reports_only(login, citizen, maintainer, fake_db):
    assigned = _insert_report(fake_db, citizen, status="assigned", assigned_external_maintainer_id=maintainer["id"])
    _insert_report(fake_db, citizen, status="assigned")
    assert _ids(login(maintainer).get("/api/reports")) == {assigned}


def test_list_by_category(login, citizen, fake_db):
    roads = _insert_report(fake_db, citizen)
    _insert_report(fake_db, citizen, category_id="cat_lighting")
    assert _ids(login(citizen).get("/api/reports", params={"category_id": "cat_roads"})) == {roads}


def test_get_report(login, citizen, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(citizen).get(f"/api/reports/{report_id}")
    assert response.status_code == 200
    assert response.json()["data"]["category"]["office"]["name"] == "maintenance"


def test_get_rejected_report_of_someone_else(login, make_user, citizen, fake_db):
    report_id = _insert_report(fake_db, make_user(), status="rejected")
    response = login(citizen).get(f"/api/reports/{report_id}")
    assert response.status_code == 404
    assert response.json()["message"] == f"Report with ID {report_id} not found"


def test_get_unknown_report(login, citizen):
    assert login(citizen).get("/api/reports/missing").status_code == 404


def test_nearby_reports(login, citizen, fake_db):
    near = _insert_report(fake_db, citizen, longitude=7.6869, latitude=45.0703)
    _insert_report(fake_db, citizen, longitude=7.70, latitude=45.09)
    _insert_report(fake_db, citizen, longitude=7.6870, latitude=45.0704, status="rejected")

    params = {"longitude": 7.6869, "latitude": 45.0712, "radius": 500}
    data = login(citizen).get("/api/reports/nearby", params=params).json()["data"]
    assert [report["id"] for report in data] == [near]
    assert data[0]["distance"] == pytest.approx(100, abs=5)


def test_reports_by_assigned_officer(login, citizen, pr_officer, tech_officer, fake_db):
    assigned = _insert_report(fake_db, citizen, status="assigned", assigned_officer_id=tech_officer["id"])
    _insert_report(fake_db, citizen)

    response = login(pr_officer).get(f"/api/reports/user/{tech_officer['id']}")
    assert _ids(response) == {assigned}
    assert login(citizen).get(f"/api/reports/user/{tech_officer['id']}").status_code == 403


def test_dashboard_stats(login, citizen, tech_officer, fake_db):
    _insert_report(fake_db, citizen)
    _insert_report(fake_db, citizen, status="assigned", assigned_officer_id=tech_officer["id"])
    _insert_report(fake_db, citizen, status="in_progress", assigned_officer_id=tech_officer["id"])
    _insert_report(fake_db, citizen, status="rejected", processed_by_id=tech_officer["id"])
    _insert_report(fake_db, citizen, status="resolved")

    stats = login(tech_officer).get("/api/reports/stats").json()["data"]
    assert stats["total"] == 5
    assert stats["pending"] == 1
    assert stats["resolved"] == 1
    assert stats["user_assigned"] == 1
    assert stats["user_in_progress"] == 1
    assert stats["user_rejected"] == 1
    assert stats["user_resolved"] == 0


# Processing

def test_pr_officer_assigns_to_least_busy_officer(login, make_user, citizen, pr_officer, fake_db):
    busy = make_user("tech_officer", "maintenance", first_name="Anna")
    free = make_user("tech_officer", "maintenance", first_name="Bruno")
    make_user("tech_officer", "infrastructure", first_name="Aldo")
    _insert_report(fake_db, citizen, status="assigned", assigned_officer_id=busy["id"])
    report_id = _insert_report(fake_db, citizen)

    response = login(pr_officer).patch(f"/api/reports/{report_id}", json={"status": "assigned"})
    assert response.status_code == 200

    report = response.json()["data"]
    assert report["status"] == "assigned"
    assert report["assigned_officer"]["id"] == free["id"]
    assert report["processed_by_id"] == pr_officer["id"]


def test_least_busy_tie_breaks_by_name(login, make_user, citizen, pr_officer, fake_db):
    make_user("tech_officer", "maintenance", first_name="Zeno")
    alba = make_user("tech_officer", "maintenance", first_name="Alba")
    report_id = _insert_report(fake_db, citizen)

    report = login(pr_officer).patch(f"/api/reports/{report_id}", json={"status": "assigned"}).json()["data"]
    assert report["assigned_officer_id"] == alba["id"]


def test_assign_to_officer_of_other_office(login, make_user, citizen, pr_officer, fake_db):
    outsider = make_user("tech_officer", "infrastructure")
    report_id = _insert_report(fake_db, citizen)

    response = login(pr_officer).patch(
        f"/api/reports/{report_id}",
        json={"status": "assigned", "assigned_officer_id": outsider["id"]},
    )
    assert response.status_code == 400


def test_reject_with_explanation_notifies_reporter(login, citizen, pr_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)

    response = login(pr_officer).patch(
        f"/api/reports/{report_id}",
        json={"status": "rejected", "explanation": "Duplicate of an existing report"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["explanation"] == "Duplicate of an existing report"

    notifications = list(fake_db.docs("notifications").values())
    assert len(notifications) == 1
    assert notifications[0]["user_id"] == citizen["id"]
    assert notifications[0]["type"] == "report_status_changed"
    assert notifications[0]["report_id"] == report_id


def test_tech_officer_cannot_reject_pending(login, citizen, tech_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(tech_officer).patch(f"/api/reports/{report_id}", json={"status": "rejected"})
    assert response.status_code == 400
    assert response.json()["message"] == (
        "tech_officer cannot change status from pending to rejected. Allowed: assigned"
    )
    assert fake_db.docs("reports")[report_id]["status"] == "pending"


def test_citizen_cannot_update_reports(login, citizen, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(citizen).patch(f"/api/reports/{report_id}", json={"status": "assigned"})
    assert response.status_code == 403


def test_update_rejects_invalid_status_value(login, citizen, pr_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(pr_officer).patch(f"/api/reports/{report_id}", json={"status": "archived"})
    assert response.status_code == 400


def test_update_unknown_report(login, pr_officer):
    response = login(pr_officer).patch("/api/reports/missing", json={"status": "assigned"})
    assert response.status_code == 404


def test_external_maintainer_flow(login, citizen, tech_officer, maintainer, fake_db):
    report_id = _insert_report(fake_db, citizen, status="assigned", assigned_officer_id=tech_officer["id"])

    response = login(maintainer).patch(f"/api/reports/{report_id}", json={"status": "in_progress"})
    assert response.status_code == 400
    assert response.json()["message"] == "You can only modify reports assigned to you"

    response = login(tech_officer).patch(
        f"/api/reports/{report_id}",
        json={"assigned_external_maintainer_id": maintainer["id"]},
    )
    assert response.status_code == 200
    assert response.json()["data"]["assigned_external_maintainer"]["id"] == maintainer["id"]

    response = login(maintainer).patch(f"/api/reports/{report_id}", json={"status": "in_progress"})
    assert response.status_code == 200
    response = login(maintainer).patch(f"/api/reports/{report_id}", json={"status": "resolved"})
    assert response.status_code == 200
    assert fake_db.docs("reports")[report_id]["status"] == "resolved"


def test_external_maintainer_from_wrong_company(login, make_user, citizen, tech_officer, fake_db):
    wrong = make_user("external_maintainer", "external_company_2")
    report_id = _insert_report(fake_db, citizen, status="assigned")

    response = login(tech_officer).patch(
        f"/api/reports/{report_id}",
        json={"assigned_external_maintainer_id": wrong["id"]},
    )
    assert response.status_code == 400


def test_assigning_a_non_maintainer(login, citizen, tech_officer, fake_db):
    report_id = _insert_report(fake_db, citizen, status="assigned")
    response = login(tech_officer).patch(
        f"/api/reports/{report_id}",
        json={"assigned_external_maintainer_id": citizen["id"]},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "The specified user is not an external maintainer"


def test_unassigning_external_maintainer(login, citizen, tech_officer, maintainer, fake_db):
    report_id = _insert_report(
        fake_db, citizen, status="assigned", assigned_external_maintainer_id=maintainer["id"]
    )
    response = login(tech_officer).patch(
        f"/api/reports/{report_id}", json={"assigned_external_maintainer_id": None}
    )
    assert response.status_code == 200
    assert fake_db.docs("reports")[report_id]["assigned_external_maintainer_id"] is None


def test_officer_changes_category(login, citizen, pr_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(pr_officer).patch(f"/api/reports/{report_id}", json={"category_id": "cat_lighting"})
    assert response.json()["data"]["category"]["name"] == "Public Lighting"

    response = login(pr_officer).patch(f"/api/reports/{report_id}", json={"category_id": "missing"})
    assert response.status_code == 404


# Discussion

def test_comments_are_staff_only(login, citizen, tech_officer, pr_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)

    assert login(citizen).get(f"/api/reports/{report_id}/comments").status_code == 403

    response = login(tech_officer).post(f"/api/reports/{report_id}/comments", json={"content": "On it"})
    assert response.status_code == 201
    login(pr_officer).post(f"/api/reports/{report_id}/comments", json={"content": "Thanks"})

    comments = login(tech_officer).get(f"/api/reports/{report_id}/comments").json()["data"]
    assert [comment["content"] for comment in comments] == ["On it", "Thanks"]
    assert comments[0]["user"]["id"] == tech_officer["id"]
    assert "password_hash" not in comments[0]["user"]


def test_comments_on_report_not_assigned_to_maintainer(login, citizen, maintainer, fake_db):
    report_id = _insert_report(fake_db, citizen, status="assigned")
    assert login(maintainer).get(f"/api/reports/{report_id}/comments").status_code == 404


def test_empty_comment_is_rejected(login, citizen, tech_officer, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(tech_officer).post(f"/api/reports/{report_id}/comments", json={"content": ""})
    assert response.status_code == 400


def test_messages_notify_the_other_side(login, citizen, tech_officer, fake_db):
    report_id = _insert_report(fake_db, citizen, status="assigned", assigned_officer_id=tech_officer["id"])

    response = login(citizen).post(f"/api/reports/{report_id}/messages", json={"content": "Any news?"})
    assert response.status_code == 201
    response = login(tech_officer).post(f"/api/reports/{report_id}/messages", json={"content": "Tomorrow"})
    assert response.status_code == 201

    recipients = sorted(
        (n["user_id"], n["type"]) for n in fake_db.docs("notifications").values()
    )
    assert recipients == sorted([
        (tech_officer["id"], "report_new_message"),
        (citizen["id"], "report_new_message"),
    ])

    messages = login(citizen).get(f"/api/reports/{report_id}/messages").json()["data"]
    assert [message["content"] for message in messages] == ["Any news?", "Tomorrow"]


def test_messages_on_anonymous_report_reach_reporter(login, citizen, tech_officer, fake_db):
    report_id = _insert_report(fake_db, citizen, is_anonymous=True, assigned_officer_id=tech_officer["id"])
    login(tech_officer).post(f"/api/reports/{report_id}/messages", json={"content": "Checking"})
    notifications = list(fake_db.docs("notifications").values())
    assert [n["user_id"] for n in notifications] == [citizen["id"]]


def test_other_citizens_cannot_read_messages(login, make_user, citizen, fake_db):
    report_id = _insert_report(fake_db, citizen)
    response = login(make_user()).get(f"/api/reports/{report_id}/messages")
    assert response.status_code == 403
    assert response.json()["message"] == "You can only exchange messages on your own reports"
