# services/enrollments.py
from sqlalchemy import select

from ..errors import EnrollmentNotFound
from ..extensions import db
from ..models import Enrollment, EnrollmentStatus
from .ledger import normalize_email


def get_enrollment(enrollment_id: str) -> Enrollment:
    enrollment = db.session.get(Enrollment, str(enrollment_id))
    if enrollment is None:
        raise EnrollmentNotFound(enrollment_id)
    return enrollment


def find_active_enrollment(session_id: int, email: str) -> Enrollment | None:
    """Return the non-cancelled enrollment of ``email`` in the session, if any."""
    return db.session.execute(
        select(Enrollment).where(
            Enrollment.session_id == session_id,
            Enrollment.email == normalize_email(email),
            Enrollment.status != EnrollmentStatus.cancelled,
        )
    ).scalar_one_or_none()


def list_enrollments(status: EnrollmentStatus | None = None, session_id: int | None = None):
    stmt = select(Enrollment).order_by(Enrollment.created_at.desc())
    if status is not None:
        stmt = stmt.where(Enrollment.status == status)
    if session_id is not None:
        stmt = stmt.where(Enrollment.session_id == session_id)
    return db.session.execute(stmt).scalars().all()
