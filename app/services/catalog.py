# services/catalog.py
from sqlalchemy import func, select

from ..errors import SessionNotFound, ValidationError
from ..extensions import db
from ..models import Course, CourseSession, Enrollment, SessionStatus
from . import ledger


def get_published_courses():
    """Published courses ordered by title."""
    return (
        db.session.execute(
            select(Course).where(Course.is_published.is_(True)).order_by(Course.title)
        )
        .scalars()
        .all()
    )


def get_course_by_slug(slug: str) -> Course | None:
    return db.session.execute(select(Course).where(Course.slug == slug)).scalar_one_or_none()


def get_sessions_for_course(course_id: int, published_only: bool = False):
    stmt = select(CourseSession).where(CourseSession.course_id == course_id)
    if published_only:
        stmt = stmt.where(CourseSession.is_published.is_(True))
    stmt = stmt.order_by(CourseSession.start_date, CourseSession.created_at)
    return db.session.execute(stmt).scalars().all()


def get_session(session_id: int) -> CourseSession:
    session = db.session.get(CourseSession, session_id)
    if session is None:
        raise SessionNotFound(session_id)
    return session


# --------- Admin ---------
def create_session(course_id, title, capacity=0, status=SessionStatus.coming_soon,
                   is_published=False, description=None, start_date=None, end_date=None) -> CourseSession:
    if course_id is not None and db.session.get(Course, course_id) is None:
        raise ValidationError("Course not found")
    if capacity < 0:
        raise ValidationError("Capacity cannot be negative")

    session = CourseSession(
        course_id=course_id,
        title=title,
        description=description,
        start_date=start_date,
        end_date=end_date,
        capacity=capacity,
        status=status,
        is_published=is_published,
    )
    # A new session has no taken seats yet.
    session.status = ledger.derive_status(session, 0)
    db.session.add(session)
    return session


def update_session(session_id: int, form) -> CourseSession:
    attributes = {}
    for name in ("title", "description", "start_date", "end_date"):
        field = getattr(form, name)
        if field.raw_data:
            attributes[name] = field.data
    status = SessionStatus(form.status.data) if form.status.data else None
    return ledger.update_session(
        session_id,
        capacity=form.capacity.data,
        status=status,
        is_published=form.is_published.data if form.is_published.raw_data else None,
        attributes=attributes,
    )


def delete_session(session: CourseSession):
    enrollments = db.session.scalar(
        select(func.count(Enrollment.id)).where(Enrollment.session_id == session.id)
    )
    if enrollments:
        raise ValidationError("Session still has enrollments and cannot be deleted")
    db.session.delete(session)
