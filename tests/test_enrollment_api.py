import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from app.extensions import db
from app.models import (
    Course,
    CourseSession,
    Enrollment,
    EnrollmentStatus,
    Payment,
    PaymentStatus,
    SessionStatus,
    User,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


@pytest.fixture
def app():
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def academy(app):
    course = Course(slug="pm-basics", title="Project Management Basics", is_published=True)
    db.session.add(course)
    db.session.flush()

    session = CourseSession(
        course_id=course.id,
        title="PM Basics - October",
        capacity=2,
        status=SessionStatus.registration_open,
        is_published=True,
    )
    admin = User(email="admin@academy.al", name="Admin", is_admin=True)
    admin.set_password("admin-secret")
    staff = User(email="staff@academy.al", name="Staff", is_admin=False)
    staff.set_password("staff-secret")
    db.session.add_all([session, admin, staff])
    db.session.commit()
    return {"session_id": session.id}


def _login(client, email="admin@academy.al", password="admin-secret"):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response


def _intake(session_id, email="ana@gmail.com", **overrides):
    payload = {
        "courseSlug": "pm-basics",
        "sessionId": session_id,
        "studentName": "Ana Hoxha",
        "studentEmail": email,
        "studentPhone": "+355691234567",
        "studentIdCard": "J12345678A",
        "studentAddress": "Rruga e Durresit 12, Tirana",
        "amount": "180.00",
        "currency": "eur",
        "gdprConsent": True,
    }
    payload.update(overrides)
    return payload


def _enroll(client, session_id, email="ana@gmail.com"):
    response = client.post("/api/enrollments", json=_intake(session_id, email))
    assert response.status_code == 201
    return response.get_json()["enrollmentId"]


def test_intake_creates_enrollment(client, academy):
    response = client.post("/api/enrollments", json=_intake(academy["session_id"]))

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["status"] == "enrolled"
    assert body["availableSpots"] == 2

    enrollment = db.session.get(Enrollment, body["enrollmentId"])
    assert enrollment.full_name == "Ana Hoxha"
    assert enrollment.gdpr_consent is True
    assert enrollment.course_slug == "pm-basics"
    assert enrollment.payment.currency == "EUR"
    assert enrollment.payment.status == PaymentStatus.pending


def test_intake_false_consent_is_stored_as_false(client, academy):
    response = client.post(
        "/api/enrollments", json=_intake(academy["session_id"], gdprConsent=False)
    )

    assert response.status_code == 201
    enrollment = db.session.get(Enrollment, response.get_json()["enrollmentId"])
    assert enrollment.gdpr_consent is False


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"studentName": None}, "Missing required fields"),
        ({"studentPhone": "0691234567"}, "Phone number must be in format +355xxxxxxxxx (Albanian format)"),
        ({"studentIdCard": "123"}, "ID card number must be exactly 10 characters"),
    ],
)
def test_intake_validation_errors(client, academy, overrides, message):
    response = client.post("/api/enrollments", json=_intake(academy["session_id"], **overrides))

    assert response.status_code == 400
    body = response.get_json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert body["error"] == message
    assert Enrollment.query.count() == 0


def test_intake_rejects_non_object_body(client, academy):
    response = client.post("/api/enrollments", json=["not", "an", "object"])

    assert response.status_code == 400
    assert response.get_json()["error"] == "Request body must be a JSON object"


def test_intake_unknown_session(client, academy):
    response = client.post("/api/enrollments", json=_intake(4040))

    assert response.status_code == 404
    assert response.get_json()["code"] == "SESSION_NOT_FOUND"


def test_intake_duplicate(client, academy):
    _enroll(client, academy["session_id"])

    response = client.post(
        "/api/enrollments", json=_intake(academy["session_id"], email="ANA@gmail.com")
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "DUPLICATE_ENROLLMENT"
    assert body["error"] == "You are already enrolled in this session"


def test_intake_full_session(client, academy):
    session = db.session.get(CourseSession, academy["session_id"])
    session.capacity = 0
    session.status = SessionStatus.fully_booked
    db.session.commit()

    response = client.post("/api/enrollments", json=_intake(academy["session_id"]))

    assert response.status_code == 400
    assert response.get_json()["code"] == "SESSION_FULL"


def test_check_enrollment(client, academy):
    session_id = academy["session_id"]
    enrollment_id = _enroll(client, session_id)

    response = client.get(f"/api/enrollments/check/{session_id}/Ana@gmail.com")
    body = response.get_json()
    assert body["isEnrolled"] is True
    assert body["enrollment"] == {"id": enrollment_id, "status": "enrolled"}

    response = client.get(f"/api/enrollments/check/{session_id}/other@gmail.com")
    assert response.get_json() == {"success": True, "isEnrolled": False, "enrollment": None}


def test_get_enrollment(client, academy):
    enrollment_id = _enroll(client, academy["session_id"])

    response = client.get(f"/api/enrollments/{enrollment_id}")

    assert response.status_code == 200
    data = response.get_json()["enrollment"]
    assert data["email"] == "ana@gmail.com"
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["amount"] == "180.00"

    missing = client.get("/api/enrollments/does-not-exist")
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "ENROLLMENT_NOT_FOUND"


def test_admin_endpoints_require_login(client, academy):
    enrollment_id = _enroll(client, academy["session_id"])

    response = client.patch(
        f"/api/enrollments/{enrollment_id}/status", json={"status": "cancelled"}
    )
    assert response.status_code == 401
    assert response.get_json()["success"] is False

    _login(client, "staff@academy.al", "staff-secret")
    response = client.get("/api/enrollments")
    assert response.status_code == 403


def test_list_enrollments_filters(client, academy):
    session_id = academy["session_id"]
    first = _enroll(client, session_id, "a@gmail.com")
    _enroll(client, session_id, "b@gmail.com")
    _login(client)
    client.patch(f"/api/enrollments/{first}/status", json={"status": "cancelled"})

    everything = client.get("/api/enrollments?status=all").get_json()
    cancelled = client.get(f"/api/enrollments?status=cancelled&sessionId={session_id}").get_json()

    assert everything["count"] == 2
    assert cancelled["count"] == 1
    assert cancelled["enrollments"][0]["id"] == first

    bad = client.get("/api/enrollments?status=pending")
    assert bad.status_code == 400
    assert bad.get_json()["error"] == "Invalid status"


def test_patch_status_walks_the_lifecycle(client, academy):
    enrollment_id = _enroll(client, academy["session_id"])
    _login(client)

    response = client.patch(
        f"/api/enrollments/{enrollment_id}/status",
        json={"status": "payment_confirmed", "adminEmail": "finance@academy.al"},
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Enrollment status updated to payment_confirmed"
    assert body["enrollment"]["payment"]["verified_by"] == "finance@academy.al"

    response = client.patch(
        f"/api/enrollments/{enrollment_id}/status", json={"status": "registered"}
    )
    assert response.status_code == 200
    payment = Payment.query.filter_by(enrollment_id=enrollment_id).one()
    assert payment.status == PaymentStatus.paid


def test_patch_status_rejects_bad_input(client, academy):
    enrollment_id = _enroll(client, academy["session_id"])
    _login(client)

    response = client.patch(f"/api/enrollments/{enrollment_id}/status", json={"status": "pending"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid status"

    response = client.patch(f"/api/enrollments/{enrollment_id}/status", json={"status": "registered"})
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_TRANSITION"

    response = client.patch("/api/enrollments/nope/status", json={"status": "cancelled"})
    assert response.status_code == 404


def test_patch_status_capacity_exceeded(client, academy):
    session_id = academy["session_id"]
    ids = [_enroll(client, session_id, f"s{i}@gmail.com") for i in range(3)]
    _login(client)
    for enrollment_id in ids[:2]:
        response = client.patch(
            f"/api/enrollments/{enrollment_id}/status", json={"status": "payment_confirmed"}
        )
        assert response.status_code == 200

    response = client.patch(
        f"/api/enrollments/{ids[2]}/status", json={"status": "payment_confirmed"}
    )

    assert response.status_code == 400
    assert response.get_json()["code"] == "CAPACITY_EXCEEDED"
    db.session.expire_all()
    assert db.session.get(CourseSession, session_id).status == SessionStatus.fully_booked
    assert db.session.get(Enrollment, ids[2]).status == EnrollmentStatus.enrolled


def test_put_updates_contact_details(client, academy):
    session_id = academy["session_id"]
    enrollment_id = _enroll(client, session_id, "a@gmail.com")
    _enroll(client, session_id, "b@gmail.com")
    _login(client)

    response = client.put(
        f"/api/enrollments/{enrollment_id}",
        json={"full_name": "Ana H.", "email": "B@gmail.com"},
    )
    assert response.status_code == 400
    assert response.get_json()["code"] == "DUPLICATE_ENROLLMENT"

    response = client.put(
        f"/api/enrollments/{enrollment_id}",
        json={"full_name": "Ana H.", "email": "ana.h@gmail.com", "phone": "+355681112223"},
    )
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["full_name"] == "Ana H."
    assert data["email"] == "ana.h@gmail.com"
    assert data["phone"] == "+355681112223"

    response = client.put(f"/api/enrollments/{enrollment_id}", json={"full_name": "Only name"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Full name and email are required"


def test_delete_enrollment_reopens_session(client, academy):
    session_id = academy["session_id"]
    ids = [_enroll(client, session_id, f"s{i}@gmail.com") for i in range(2)]
    _login(client)
    for enrollment_id in ids:
        client.patch(f"/api/enrollments/{enrollment_id}/status", json={"status": "payment_confirmed"})
    db.session.expire_all()
    assert db.session.get(CourseSession, session_id).status == SessionStatus.fully_booked

    response = client.delete(f"/api/enrollments/{ids[0]}")

    assert response.status_code == 200
    assert response.get_json()["message"] == "Enrollment deleted successfully"
    db.session.expire_all()
    assert db.session.get(Enrollment, ids[0]) is None
    assert db.session.get(CourseSession, session_id).status == SessionStatus.registration_open

    assert client.delete(f"/api/enrollments/{ids[0]}").status_code == 404
