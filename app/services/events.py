# services/events.py
"""One-off events (workshops, open days) and their registrations.

Registrations go through the same locked transaction as course enrollments:
the event row is locked, the registrations are counted, and only then is the
new row inserted.
"""
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ..errors import (
    CapacityExceeded,
    DuplicateRegistration,
    DuplicateSlug,
    EventFull,
    EventNotFound,
    EventRegistrationClosed,
    ValidationError,
)
from ..extensions import db
from ..models import Event, EventRegistration
from .ledger import normalize_email
from .transactions import atomic, lock_row

UPCOMING = "upcoming"
PAST = "past"


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC (SQLite hands them back that way)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def registration_count(event_id: int) -> int:
    return db.session.scalar(
        select(func.count(EventRegistration.id)).where(EventRegistration.event_id == event_id)
    )


# ---------- Reads ----------
def list_events(published_only: bool = True, status: str | None = None, limit: int = 50, offset: int = 0):
    stmt = select(Event)
    if published_only:
        stmt = stmt.where(Event.is_published.is_(True))
    now = datetime.now(timezone.utc)
    if status == UPCOMING:
        stmt = stmt.where(Event.event_date > now)
    elif status == PAST:
        stmt = stmt.where(Event.event_date <= now)
    stmt = stmt.order_by(Event.sort_order, Event.event_date).limit(limit).offset(offset)
    return db.session.execute(stmt).scalars().all()


def get_event(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event


def find_event_by_title(title: str) -> Event:
    """Latest published event with this title, case-insensitive."""
    event = db.session.execute(
        select(Event)
        .where(func.lower(Event.title) == title.strip().lower(), Event.is_published.is_(True))
        .order_by(Event.event_date.desc())
        .limit(1)
    ).scalar_one_or_none()
    if event is None:
        raise EventNotFound(title)
    return event


def get_registrations(event_id: int):
    get_event(event_id)
    return (
        db.session.execute(
            select(EventRegistration)
            .where(EventRegistration.event_id == event_id)
            .order_by(EventRegistration.registered_at.desc())
        )
        .scalars()
        .all()
    )


# ---------- Registration ----------
@atomic
def register(event_id: int, first_name: str, last_name: str, email: str,
             phone: str | None = None, school: str | None = None) -> EventRegistration:
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    event = lock_row(Event, event_id)
    if event is None or not event.is_published:
        raise EventNotFound(event_id)
    if as_utc(event.event_date) <= datetime.now(timezone.utc):
        raise EventRegistrationClosed(event.id)

    taken = registration_count(event.id)
    if taken >= event.capacity:
        current_app.logger.warning(
            "Event %s is full (registrations=%s capacity=%s)", event.id, taken, event.capacity
        )
        raise EventFull(event.id)

    exists = db.session.execute(
        select(EventRegistration.id).where(
            EventRegistration.event_id == event.id, EventRegistration.email == email
        )
    ).first()
    if exists is not None:
        raise DuplicateRegistration(event.id, email)

    registration = EventRegistration(
        event=event,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        phone=phone or None,
        school=school or None,
    )
    db.session.add(registration)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateRegistration(event_id, email) from exc

    current_app.logger.info(
        "Registration %s for event %s (%s), %s/%s taken",
        registration.id,
        event.id,
        email,
        taken + 1,
        event.capacity,
    )
    return registration


def register_by_title(title: str, first_name: str, last_name: str, email: str,
                      school: str | None = None) -> EventRegistration:
    event = find_event_by_title(title)
    return register(event.id, first_name, last_name, email, school=school)


# ---------- Admin ----------
def _check_slug(slug: str, exclude_id: int | None = None) -> None:
    stmt = select(Event.id).where(Event.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Event.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise DuplicateSlug("Event", slug)


def create_event(**fields) -> Event:
    _check_slug(fields["slug"])
    for name in ("event_date", "event_end_date"):
        if fields.get(name) is not None:
            fields[name] = as_utc(fields[name])
    event = Event(**fields)
    db.session.add(event)
    return event


@atomic
def update_event(event_id: int, capacity: int | None = None, attributes: dict | None = None) -> Event:
    """Edit an event; capacity can't drop below the registrations already taken."""
    event = lock_row(Event, event_id)
    if event is None:
        raise EventNotFound(event_id)

    attributes = dict(attributes or {})
    if "slug" in attributes:
        _check_slug(attributes["slug"], exclude_id=event.id)
    for name in ("event_date", "event_end_date"):
        if attributes.get(name) is not None:
            attributes[name] = as_utc(attributes[name])
    for name, value in attributes.items():
        setattr(event, name, value)

    if capacity is not None:
        taken = registration_count(event.id)
        if capacity < taken:
            raise CapacityExceeded(
                event.id,
                f"Capacity cannot be lower than the {taken} registrations already taken",
            )
        event.capacity = capacity

    current_app.logger.info("Event %s updated (capacity=%s)", event.id, event.capacity)
    return event


def delete_event(event: Event) -> None:
    db.session.delete(event)
