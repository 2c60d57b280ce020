import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from app.extensions import db
from app.models import ContactInquiry, InquiryPriority, InquiryStatus, User


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = True
    LOGIN_RATE_LIMIT = 100
    LOGIN_RATE_WINDOW_SECONDS = 60
    CONTACT_RATE_LIMIT = 3
    CONTACT_RATE_WINDOW_SECONDS = 60


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
def admin_client(client):
    user = User(email="admin@academy.al", name="Admin", is_admin=True)
    user.set_password("admin-secret")
    db.session.add(user)
    db.session.commit()
    response = client.post(
        "/api/auth/login", json={"email": "admin@academy.al", "password": "admin-secret"}
    )
    assert response.status_code == 200
    return client


def _inquiry(**overrides):
    payload = {
        "name": "Ana Hoxha",
        "email": "Ana@Gmail.com",
        "phone": "+355691234567",
        "subject": "Weekend classes",
        "message": "Do you run the CCNA course on weekends?",
    }
    payload.update(overrides)
    return payload


def test_submit_inquiry(client):
    response = client.post("/api/contact/submit", json=_inquiry())

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Thank you for your inquiry! We'll get back to you within 24 hours."
    inquiry = db.session.get(ContactInquiry, body["inquiryId"])
    assert inquiry.email == "ana@gmail.com"
    assert inquiry.status == InquiryStatus.new
    assert inquiry.priority == InquiryPriority.medium


def test_submit_validates(client):
    missing = client.post("/api/contact/submit", json=_inquiry(subject=""))
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Missing required fields. Please fill in all required fields."

    bad_email = client.post("/api/contact/submit", json=_inquiry(email="ana.gmail.com"))
    assert bad_email.get_json()["error"] == "Please provide a valid email address."
    assert ContactInquiry.query.count() == 0


def test_submit_is_rate_limited(client):
    for _ in range(3):
        assert client.post("/api/contact/submit", json=_inquiry()).status_code == 201

    limited = client.post("/api/contact/submit", json=_inquiry())

    assert limited.status_code == 429
    assert "Retry-After" in limited.headers


def test_inquiries_require_admin(client):
    assert client.get("/api/contact/inquiries").status_code == 401


def test_list_and_filter_inquiries(admin_client):
    admin_client.post("/api/contact/submit", json=_inquiry(subject="First"))
    admin_client.post("/api/contact/submit", json=_inquiry(subject="Second"))
    first = ContactInquiry.query.filter_by(subject="First").one()
    first.status = InquiryStatus.closed
    db.session.commit()

    body = admin_client.get("/api/contact/inquiries").get_json()
    assert body["pagination"] == {"total": 2, "limit": 50, "offset": 0, "pages": 1}

    body = admin_client.get("/api/contact/inquiries?status=new").get_json()
    assert [i["subject"] for i in body["data"]] == ["Second"]
    assert body["pagination"]["total"] == 1

    assert admin_client.get("/api/contact/inquiries?status=bogus").status_code == 400


def test_update_inquiry_sets_responded_at(admin_client):
    inquiry_id = admin_client.post("/api/contact/submit", json=_inquiry()).get_json()["inquiryId"]

    response = admin_client.put(
        f"/api/contact/inquiries/{inquiry_id}",
        json={"status": "responded", "priority": "high", "admin_notes": "Called back"},
    )

    data = response.get_json()["data"]
    assert data["status"] == "responded"
    assert data["priority"] == "high"
    assert data["admin_notes"] == "Called back"
    assert data["responded_at"] is not None

    invalid = admin_client.put(f"/api/contact/inquiries/{inquiry_id}", json={"status": "lost"})
    assert invalid.status_code == 400

    missing = admin_client.get("/api/contact/inquiries/999")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "Contact inquiry not found"
