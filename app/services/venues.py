# services/venues.py
from sqlalchemy import select

from ..errors import DuplicateSlug, ResourceNotFound
from ..extensions import db
from ..models import Venue


def list_venues(published_only: bool = False):
    stmt = select(Venue)
    if published_only:
        stmt = stmt.where(Venue.is_published.is_(True))
    stmt = stmt.order_by(Venue.sort_order, Venue.name)
    return db.session.execute(stmt).scalars().all()


def get_venue(venue_id: int) -> Venue:
    venue = db.session.get(Venue, venue_id)
    if venue is None:
        raise ResourceNotFound("Venue", venue_id)
    return venue


def get_published_venue_by_slug(slug: str) -> Venue:
    venue = db.session.execute(
        select(Venue).where(Venue.slug == slug, Venue.is_published.is_(True))
    ).scalar_one_or_none()
    if venue is None:
        raise ResourceNotFound("Venue", slug)
    return venue


def _check_slug(slug: str, exclude_id: int | None = None) -> None:
    stmt = select(Venue.id).where(Venue.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Venue.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise DuplicateSlug("Venue", slug)


def create_venue(**fields) -> Venue:
    _check_slug(fields["slug"])
    venue = Venue(**fields)
    db.session.add(venue)
    return venue


def update_venue(venue_id: int, attributes: dict) -> Venue:
    venue = get_venue(venue_id)
    if "slug" in attributes:
        _check_slug(attributes["slug"], exclude_id=venue.id)
    for name, value in attributes.items():
        setattr(venue, name, value)
    return venue


def delete_venue(venue_id: int) -> None:
    db.session.delete(get_venue(venue_id))
