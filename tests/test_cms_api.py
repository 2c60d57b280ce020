import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from app.extensions import db
from app.models import Page, PageSection, Setting, User


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


def _page(slug="about", title="About us", is_published=True, sort_order=0):
    page = Page(slug=slug, title=title, is_published=is_published, sort_order=sort_order)
    db.session.add(page)
    db.session.commit()
    return page.id


# --- Pages ---
def test_list_pages_filters_published(client):
    _page("about", "About", sort_order=2)
    _page("faq", "FAQ", sort_order=1)
    _page("draft", "Draft", is_published=False)

    body = client.get("/api/cms/pages?published_only=true").get_json()
    assert [p["slug"] for p in body["data"]] == ["faq", "about"]

    body = client.get("/api/cms/pages").get_json()
    assert body["count"] == 3


def test_get_page_by_slug(client):
    _page("about", "About us")

    assert client.get("/api/cms/pages/about").get_json()["data"]["title"] == "About us"
    missing = client.get("/api/cms/pages/nowhere")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "Page not found"


def test_page_writes_require_admin(client):
    assert client.post("/api/cms/pages", json={"slug": "x", "title": "X"}).status_code == 401
    assert client.put("/api/cms/pages/home", json={"hero_title": "Hi"}).status_code == 401
    assert client.put("/api/cms/settings/site_name", json={"value": "x"}).status_code == 401


def test_page_crud(admin_client):
    created = admin_client.post(
        "/api/cms/pages", json={"slug": "contact-us", "title": "Contact", "is_published": True}
    )
    assert created.status_code == 201
    page_id = created.get_json()["data"]["id"]

    missing = admin_client.post("/api/cms/pages", json={"slug": "x"})
    assert missing.status_code == 400
    assert missing.get_json()["error"] == "Slug and title are required"

    clash = admin_client.post("/api/cms/pages", json={"slug": "contact-us", "title": "Again"})
    assert clash.status_code == 400
    assert clash.get_json()["error"] == "Page with this slug already exists"

    updated = admin_client.put(f"/api/cms/pages/{page_id}", json={"meta_title": "Reach us"})
    assert updated.status_code == 200
    assert updated.get_json()["data"]["meta_title"] == "Reach us"
    assert updated.get_json()["data"]["title"] == "Contact"

    assert admin_client.delete(f"/api/cms/pages/{page_id}").status_code == 200
    assert admin_client.delete(f"/api/cms/pages/{page_id}").status_code == 404


# --- Sections ---
def test_section_crud_and_cascade(admin_client):
    page_id = _page()

    created = admin_client.post(
        "/api/cms/sections",
        json={
            "page_id": page_id,
            "section_type": "hero",
            "title": "Welcome",
            "data": {"buttons": [{"label": "Enroll", "href": "/courses"}]},
            "sort_order": 1,
            "is_published": False,
        },
    )
    assert created.status_code == 201
    section = created.get_json()["data"]
    assert section["data"] == {"buttons": [{"label": "Enroll", "href": "/courses"}]}
    assert section["is_published"] is False

    admin_client.post(
        "/api/cms/sections",
        json={"page_id": page_id, "section_type": "text", "sort_order": 0},
    )

    listed = admin_client.get(f"/api/cms/pages/{page_id}/sections").get_json()
    assert [s["section_type"] for s in listed["data"]] == ["text", "hero"]
    published = admin_client.get(f"/api/cms/pages/{page_id}/sections?published_only=true").get_json()
    assert [s["section_type"] for s in published["data"]] == ["text"]

    updated = admin_client.put(
        f"/api/cms/sections/{section['id']}", json={"is_published": True, "data": {"k": 1}}
    )
    assert updated.get_json()["data"]["data"] == {"k": 1}
    assert updated.get_json()["data"]["title"] == "Welcome"

    admin_client.delete(f"/api/cms/pages/{page_id}")
    assert PageSection.query.count() == 0


def test_section_requires_page(admin_client):
    response = admin_client.post("/api/cms/sections", json={"title": "Orphan"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Page ID and section type are required"

    response = admin_client.post(
        "/api/cms/sections", json={"page_id": 999, "section_type": "hero"}
    )
    assert response.status_code == 404
    assert response.get_json()["error"] == "Page not found"

    assert admin_client.get("/api/cms/sections/999").get_json()["error"] == "Section not found"


# --- Settings ---
def test_settings_read_and_update(admin_client):
    db.session.add(Setting(key="site_name", value="Academy", type="text"))
    db.session.commit()

    listed = admin_client.get("/api/cms/settings").get_json()
    assert [s["key"] for s in listed["data"]] == ["site_name"]

    updated = admin_client.put("/api/cms/settings/site_name", json={"value": "IT Academy"})
    assert updated.status_code == 200
    assert admin_client.get("/api/cms/settings/site_name").get_json()["data"]["value"] == "IT Academy"

    missing = admin_client.put("/api/cms/settings/nope", json={"value": "x"})
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "Setting not found"


def test_home_settings_defaults_and_overrides(admin_client):
    defaults = admin_client.get("/api/cms/pages/home").get_json()["data"]
    assert defaults["hero_title"] == "Advance Your IT Career"
    assert isinstance(defaults["why_choose_features"], list)

    response = admin_client.put(
        "/api/cms/pages/home",
        json={
            "hero_title": "Learn Cloud",
            "why_choose_features": [{"id": "1", "title": "Labs"}],
        },
    )
    assert response.status_code == 200

    data = admin_client.get("/api/cms/pages/home").get_json()["data"]
    assert data["hero_title"] == "Learn Cloud"
    assert data["why_choose_features"] == [{"id": "1", "title": "Labs"}]
    assert data["hero_button_text"] == "View Courses"
    assert db.session.get(Setting, "why_choose_features").type == "json"

    rejected = admin_client.put("/api/cms/pages/home", json={"site_name": "x"})
    assert rejected.status_code == 400
