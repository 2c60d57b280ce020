import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from app.extensions import db
from app.models import CourseSession, SessionStatus, User
from app.utils.rate_limit import InMemoryRateLimiter


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = True
    INTAKE_RATE_LIMIT = 2
    INTAKE_RATE_WINDOW_SECONDS = 60
    LOGIN_RATE_LIMIT = 1
    LOGIN_RATE_WINDOW_SECONDS = 60


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


def test_limiter_allows_until_limit():
    limiter = InMemoryRateLimiter()

    assert limiter.allow("intake:1.2.3.4", 2, 60) == (True, 0)
    assert limiter.allow("intake:1.2.3.4", 2, 60) == (True, 0)
    allowed, retry_after = limiter.allow("intake:1.2.3.4", 2, 60)

    assert allowed is False
    assert 1 <= retry_after <= 60
    assert limiter.allow("intake:5.6.7.8", 2, 60)[0] is True


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_limiter_forgets_idle_keys():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(sweep_interval=5, clock=clock)

    limiter.allow("intake:1.1.1.1", 2, 10)
    limiter.allow("intake:2.2.2.2", 2, 10)
    assert len(limiter) == 2

    clock.now = 11.0
    assert limiter.allow("intake:2.2.2.2", 2, 10) == (True, 0)

    assert len(limiter) == 1


def test_limiter_drops_key_once_its_window_is_empty():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(sweep_interval=3600, clock=clock)

    for i in range(200):
        limiter.allow(f"login:10.0.0.{i}", 1, 10)
    assert len(limiter) == 200

    clock.now = 11.0
    limiter.allow("login:10.0.0.1", 1, 10)

    # no sweep yet; only the key that was touched has been rebuilt
    assert len(limiter) == 200
    clock.now = 3601.0
    limiter.allow("login:10.0.0.1", 1, 10)
    assert len(limiter) == 1


def test_limiter_window_reopens_after_expiry():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)

    assert limiter.allow("contact:1.2.3.4", 1, 10)[0] is True
    assert limiter.allow("contact:1.2.3.4", 1, 10) == (False, 10)

    clock.now = 10.5
    assert limiter.allow("contact:1.2.3.4", 1, 10) == (True, 0)


def test_intake_is_rate_limited(client):
    session = CourseSession(
        title="Leadership", capacity=10, status=SessionStatus.registration_open, is_published=True
    )
    db.session.add(session)
    db.session.commit()
    session_id = session.id

    def intake(email):
        return client.post(
            "/api/enrollments",
            json={
                "courseSlug": "leadership",
                "sessionId": session_id,
                "studentName": "Student",
                "studentEmail": email,
            },
        )

    assert intake("a@gmail.com").status_code == 201
    assert intake("b@gmail.com").status_code == 201
    limited = intake("c@gmail.com")

    assert limited.status_code == 429
    body = limited.get_json()
    assert body["success"] is False
    assert body["error"] == "Too many requests from this IP, please try again later."
    assert int(limited.headers["Retry-After"]) == body["retryAfter"]


def test_login_is_rate_limited(client):
    user = User(email="admin@academy.al", name="Admin", is_admin=True)
    user.set_password("admin-secret")
    db.session.add(user)
    db.session.commit()

    wrong = client.post("/api/auth/login", json={"email": "admin@academy.al", "password": "nope"})
    limited = client.post(
        "/api/auth/login", json={"email": "admin@academy.al", "password": "admin-secret"}
    )

    assert wrong.status_code == 401
    assert wrong.get_json()["error"] == "Invalid credentials"
    assert limited.status_code == 429


def test_limits_are_per_app():
    first = create_app(TestConfig)
    second = create_app(TestConfig)

    assert first.extensions["rate_limiter"] is not second.extensions["rate_limiter"]
