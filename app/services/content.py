# services/content.py
"""CMS pages, page sections and key/value site settings."""
import copy
import json

from flask import current_app
from sqlalchemy import select

from ..errors import DuplicateSlug, ResourceNotFound, ValidationError
from ..extensions import db
from ..models import Page, PageSection, Setting

HOME_PREFIXES = ("hero_", "why_choose_")

HOME_DEFAULTS = {
    "hero_title": "Advance Your IT Career",
    "hero_subtitle": "With Industry Leading Certifications",
    "hero_description": "Earn globally recognized certifications from industry leaders.",
    "hero_button_text": "View Courses",
    "hero_button_link": "/courses",
    "why_choose_title": "Why Choose Our Academy?",
    "why_choose_subtitle": "More than training: a complete learning experience.",
    "why_choose_features": [
        {
            "id": "1",
            "icon": "Award",
            "title": "Industry Certifications",
            "description": "Globally recognized certifications from the major vendors.",
        },
        {
            "id": "2",
            "icon": "Users",
            "title": "Expert Instructors",
            "description": "Certified professionals with real-world industry experience.",
        },
        {
            "id": "3",
            "icon": "BookOpen",
            "title": "Flexible Schedule",
            "description": "Weekday, weekend and evening classes.",
        },
    ],
}


# ---------- Pages ----------
def list_pages(published_only: bool = False):
    stmt = select(Page)
    if published_only:
        stmt = stmt.where(Page.is_published.is_(True))
    stmt = stmt.order_by(Page.sort_order, Page.created_at.desc())
    return db.session.execute(stmt).scalars().all()


def get_page(page_id: int) -> Page:
    page = db.session.get(Page, page_id)
    if page is None:
        raise ResourceNotFound("Page", page_id)
    return page


def get_page_by_slug(slug: str) -> Page:
    page = db.session.execute(select(Page).where(Page.slug == slug)).scalar_one_or_none()
    if page is None:
        raise ResourceNotFound("Page", slug)
    return page


def _check_page_slug(slug: str, exclude_id: int | None = None) -> None:
    stmt = select(Page.id).where(Page.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Page.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise DuplicateSlug("Page", slug)


def create_page(**fields) -> Page:
    _check_page_slug(fields["slug"])
    page = Page(**fields)
    db.session.add(page)
    return page


def update_page(page_id: int, attributes: dict) -> Page:
    page = get_page(page_id)
    if "slug" in attributes:
        _check_page_slug(attributes["slug"], exclude_id=page.id)
    for name, value in attributes.items():
        setattr(page, name, value)
    return page


def delete_page(page_id: int) -> None:
    db.session.delete(get_page(page_id))


# ---------- Sections ----------
def list_sections(page_id: int, published_only: bool = False):
    get_page(page_id)
    stmt = select(PageSection).where(PageSection.page_id == page_id)
    if published_only:
        stmt = stmt.where(PageSection.is_published.is_(True))
    stmt = stmt.order_by(PageSection.sort_order, PageSection.id)
    return db.session.execute(stmt).scalars().all()


def get_section(section_id: int) -> PageSection:
    section = db.session.get(PageSection, section_id)
    if section is None:
        raise ResourceNotFound("Section", section_id)
    return section


def create_section(**fields) -> PageSection:
    get_page(fields["page_id"])
    section = PageSection(**fields)
    db.session.add(section)
    return section


def update_section(section_id: int, attributes: dict) -> PageSection:
    section = get_section(section_id)
    if "page_id" in attributes:
        get_page(attributes["page_id"])
    for name, value in attributes.items():
        setattr(section, name, value)
    return section


def delete_section(section_id: int) -> None:
    db.session.delete(get_section(section_id))


# ---------- Settings ----------
def list_settings():
    return db.session.execute(select(Setting).order_by(Setting.key)).scalars().all()


def get_setting(key: str) -> Setting:
    setting = db.session.get(Setting, key)
    if setting is None:
        raise ResourceNotFound("Setting", key)
    return setting


def update_setting(key: str, value: str | None) -> Setting:
    setting = get_setting(key)
    setting.value = value
    return setting


def _decode(setting: Setting):
    if setting.type == "json" and setting.value:
        try:
            return json.loads(setting.value)
        except ValueError:
            current_app.logger.warning("Setting %s holds invalid JSON", setting.key)
    return setting.value


def get_home_settings() -> dict:
    """Homepage texts: stored ``hero_*``/``why_choose_*`` settings over the defaults."""
    data = copy.deepcopy(HOME_DEFAULTS)
    stored = db.session.execute(
        select(Setting).where(
            Setting.key.startswith("hero_", autoescape=True)
            | Setting.key.startswith("why_choose_", autoescape=True)
        )
    ).scalars()
    for setting in stored:
        data[setting.key] = _decode(setting)
    return data


def save_home_settings(values: dict) -> list[str]:
    unknown = [key for key in values if not key.startswith(HOME_PREFIXES)]
    if unknown:
        raise ValidationError(f"Unknown homepage setting: {unknown[0]}")

    for key, value in values.items():
        if isinstance(value, (dict, list)):
            kind, stored = "json", json.dumps(value)
        else:
            kind, stored = "text", None if value is None else str(value)
        setting = db.session.get(Setting, key)
        if setting is None:
            setting = Setting(key=key, description=f"Homepage {key}")
            db.session.add(setting)
        setting.type = kind
        setting.value = stored
    return sorted(values)
