# services/ledger.py
"""Enrollment/capacity ledger.

Single write path for everything that changes how many seats of a session
are taken. Each public write runs in its own transaction that starts by
locking the session row, so the capacity check and the write that depends on
it cannot interleave with another request for the same session.

Seats are counted with an aggregate query inside the transaction; there is no
counter column to drift.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ..errors import (
    CapacityExceeded,
    DuplicateEnrollment,
    EnrollmentNotFound,
    InvalidTransition,
    SessionFull,
    SessionNotAvailable,
    SessionNotFound,
    SessionNotOpen,
    ValidationError,
)
from ..extensions import db
from ..models import (
    SEAT_CONSUMING_STATUSES,
    CourseSession,
    Enrollment,
    EnrollmentStatus,
    Payment,
    PaymentStatus,
    SessionStatus,
)
from .transactions import atomic, lock_row

ALLOWED_TRANSITIONS = {
    EnrollmentStatus.enrolled: {EnrollmentStatus.payment_confirmed, EnrollmentStatus.cancelled},
    EnrollmentStatus.payment_confirmed: {EnrollmentStatus.registered, EnrollmentStatus.cancelled},
    EnrollmentStatus.registered: {EnrollmentStatus.cancelled},
    EnrollmentStatus.cancelled: {EnrollmentStatus.enrolled},
}

DEFAULT_ACTOR = "admin"


@dataclass(frozen=True)
class SessionCapacity:
    session_id: int
    capacity: int
    occupied: int
    status: SessionStatus

    @property
    def available_spots(self) -> int:
        return max(0, self.capacity - self.occupied)

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "capacity": self.capacity,
            "occupied": self.occupied,
            "availableSpots": self.available_spots,
            "status": self.status.value,
        }


def can_transition(current: EnrollmentStatus, target: EnrollmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def derive_status(session: CourseSession, occupied: int) -> SessionStatus:
    """Status a session must carry for the given number of taken seats.

    ``coming_soon`` belongs to scheduling and is never changed here.
    """
    if session.status == SessionStatus.coming_soon:
        return SessionStatus.coming_soon
    if occupied >= session.capacity:
        return SessionStatus.fully_booked
    return SessionStatus.registration_open


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ---------- Locking helpers ----------
def _lock_session(session_id: int) -> CourseSession:
    session = lock_row(CourseSession, session_id)
    if session is None:
        raise SessionNotFound(session_id)
    return session


def _check_session_accepts(session: CourseSession) -> None:
    if not session.is_published:
        raise SessionNotAvailable(session.id)
    if session.status == SessionStatus.coming_soon:
        raise SessionNotOpen(session.id)


def _load_enrollment(enrollment_id: str, for_update: bool = False) -> Enrollment:
    stmt = select(Enrollment).where(Enrollment.id == str(enrollment_id))
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    enrollment = db.session.execute(stmt).scalar_one_or_none()
    if enrollment is None:
        raise EnrollmentNotFound(enrollment_id)
    return enrollment


def _occupied_seats(session_id: int) -> int:
    return db.session.scalar(
        select(func.count(Enrollment.id)).where(
            Enrollment.session_id == session_id,
            Enrollment.status.in_(SEAT_CONSUMING_STATUSES),
        )
    )


def _active_duplicate(session_id: int, email: str, exclude_id: str | None = None):
    stmt = select(Enrollment.id).where(
        Enrollment.session_id == session_id,
        Enrollment.email == email,
        Enrollment.status != EnrollmentStatus.cancelled,
    )
    if exclude_id is not None:
        stmt = stmt.where(Enrollment.id != exclude_id)
    return db.session.execute(stmt.limit(1)).scalar_one_or_none()


def _refresh_session_status(session: CourseSession) -> int:
    occupied = _occupied_seats(session.id)
    derived = derive_status(session, occupied)
    if derived != session.status:
        current_app.logger.info(
            "Session %s status %s -> %s (occupied=%s capacity=%s)",
            session.id,
            session.status.value,
            derived.value,
            occupied,
            session.capacity,
        )
        session.status = derived
    return occupied


def _ensure_payment(enrollment: Enrollment) -> Payment:
    payment = enrollment.payment
    if payment is None:
        payment = Payment(
            enrollment=enrollment,
            amount=Decimal("0"),
            currency=current_app.config.get("DEFAULT_CURRENCY", "EUR"),
            status=PaymentStatus.pending,
        )
        db.session.add(payment)
    return payment


# ---------- Reads ----------
def session_capacity(session_id: int) -> SessionCapacity:
    """Snapshot of a session's seats. Never writes."""
    session = db.session.get(CourseSession, session_id)
    if session is None:
        raise SessionNotFound(session_id)
    return SessionCapacity(
        session_id=session.id,
        capacity=session.capacity,
        occupied=_occupied_seats(session.id),
        status=session.status,
    )


# ---------- Writes ----------
@atomic
def admit_enrollment(session_id: int, email: str, intake: dict | None = None) -> Enrollment:
    """Create an ``enrolled`` enrollment and its pending payment.

    ``intake`` carries the already validated form fields: ``full_name``,
    ``phone``, ``id_card``, ``address``, ``gdpr_consent``, ``course_slug``,
    ``amount`` and ``currency``.
    """
    intake = intake or {}
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    session = _lock_session(session_id)
    _check_session_accepts(session)

    if _active_duplicate(session.id, email) is not None:
        current_app.logger.warning(
            "Duplicate enrollment rejected for session %s (%s)", session.id, email
        )
        raise DuplicateEnrollment(session.id, email)

    # fully_booked is persisted state; the count decides
    occupied = _occupied_seats(session.id)
    if occupied >= session.capacity:
        if session.status != SessionStatus.fully_booked:
            session.status = SessionStatus.fully_booked
            db.session.commit()
        current_app.logger.warning(
            "Session %s is full (occupied=%s capacity=%s), admission rejected",
            session.id,
            occupied,
            session.capacity,
        )
        raise SessionFull(session.id)
    if session.status == SessionStatus.fully_booked:
        current_app.logger.info(
            "Session %s reopened on admission (occupied=%s capacity=%s)",
            session.id,
            occupied,
            session.capacity,
        )
        session.status = SessionStatus.registration_open

    enrollment = Enrollment(
        session=session,
        course_slug=intake.get("course_slug"),
        full_name=intake.get("full_name") or "",
        email=email,
        phone=intake.get("phone"),
        id_card=intake.get("id_card"),
        address=intake.get("address"),
        gdpr_consent=bool(intake.get("gdpr_consent")),
        status=EnrollmentStatus.enrolled,
    )
    payment = Payment(
        enrollment=enrollment,
        amount=intake.get("amount") or Decimal("0"),
        currency=intake.get("currency") or current_app.config.get("DEFAULT_CURRENCY", "EUR"),
        status=PaymentStatus.pending,
    )
    db.session.add_all([enrollment, payment])
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateEnrollment(session_id, email) from exc

    current_app.logger.info(
        "Enrollment %s admitted to session %s (%s)", enrollment.id, session.id, email
    )
    return enrollment


@atomic
def transition_status(enrollment_id: str, target: EnrollmentStatus, actor: str | None = None) -> Enrollment:
    """Move an enrollment along the status machine and re-derive its session."""
    enrollment = _load_enrollment(enrollment_id)
    session = _lock_session(enrollment.session_id)
    enrollment = _load_enrollment(enrollment_id, for_update=True)

    current = enrollment.status
    if not can_transition(current, target):
        raise InvalidTransition(current, target)

    if target == EnrollmentStatus.enrolled:
        # restore is a re-admission
        _check_session_accepts(session)
        if _active_duplicate(session.id, enrollment.email, exclude_id=enrollment.id) is not None:
            raise DuplicateEnrollment(session.id, enrollment.email)
        if _occupied_seats(session.id) >= session.capacity:
            raise CapacityExceeded(session.id)

    if target in SEAT_CONSUMING_STATUSES and not enrollment.consumes_seat:
        if _occupied_seats(session.id) >= session.capacity:
            raise CapacityExceeded(session.id)

    enrollment.status = target
    now = datetime.now(timezone.utc)

    if target == EnrollmentStatus.payment_confirmed:
        payment = _ensure_payment(enrollment)
        payment.status = PaymentStatus.verified
        payment.verified_by = actor or DEFAULT_ACTOR
        payment.payment_date = now
    elif target == EnrollmentStatus.registered:
        payment = _ensure_payment(enrollment)
        payment.status = PaymentStatus.paid
        if payment.payment_date is None:
            payment.payment_date = now

    occupied = _refresh_session_status(session)
    current_app.logger.info(
        "Enrollment %s %s -> %s by %s (session %s occupied=%s/%s)",
        enrollment.id,
        current.value,
        target.value,
        actor or DEFAULT_ACTOR,
        session.id,
        occupied,
        session.capacity,
    )
    return enrollment


@atomic
def delete_enrollment(enrollment_id: str) -> None:
    """Hard delete an enrollment (and its payment), reconciling the session."""
    enrollment = _load_enrollment(enrollment_id)
    session = _lock_session(enrollment.session_id)
    enrollment = _load_enrollment(enrollment_id, for_update=True)

    previous = enrollment.status
    released = enrollment.consumes_seat
    db.session.delete(enrollment)
    db.session.flush()

    # also repairs a status left stale by a non-seat delete
    occupied = _refresh_session_status(session)
    current_app.logger.info(
        "Enrollment %s (%s) deleted from session %s, seat released=%s (occupied=%s/%s)",
        enrollment_id,
        previous.value,
        released,
        session.id,
        occupied,
        session.capacity,
    )


@atomic
def update_enrollment_contact(enrollment_id: str, **fields) -> Enrollment:
    """Edit an enrollee's contact details; an email change is checked for duplicates."""
    enrollment = _load_enrollment(enrollment_id)
    session = _lock_session(enrollment.session_id)
    enrollment = _load_enrollment(enrollment_id, for_update=True)

    if "email" in fields:
        email = normalize_email(fields.pop("email"))
        if not email:
            raise ValidationError("Email is required")
        if (
            email != enrollment.email
            and enrollment.status != EnrollmentStatus.cancelled
            and _active_duplicate(session.id, email, exclude_id=enrollment.id) is not None
        ):
            raise DuplicateEnrollment(session.id, email)
        enrollment.email = email

    for name in ("full_name", "phone", "id_card", "address"):
        if name in fields:
            setattr(enrollment, name, fields[name])

    current_app.logger.info("Enrollment %s contact details updated", enrollment.id)
    return enrollment


@atomic
def update_session(
    session_id: int,
    capacity: int | None = None,
    status: SessionStatus | None = None,
    is_published: bool | None = None,
    attributes: dict | None = None,
) -> CourseSession:
    """Admin edit of a session; capacity can't drop below the seats already taken."""
    session = _lock_session(session_id)

    for name, value in (attributes or {}).items():
        setattr(session, name, value)
    if is_published is not None:
        session.is_published = is_published

    if capacity is not None:
        if capacity < 0:
            raise ValidationError("Capacity cannot be negative")
        occupied = _occupied_seats(session.id)
        if capacity < occupied:
            raise CapacityExceeded(
                session.id,
                f"Capacity cannot be lower than the {occupied} seats already taken",
            )
        session.capacity = capacity

    if status is not None:
        if status == SessionStatus.coming_soon:
            session.status = SessionStatus.coming_soon
        else:
            session.status = SessionStatus.registration_open

    occupied = _refresh_session_status(session)
    current_app.logger.info(
        "Session %s updated (capacity=%s occupied=%s status=%s)",
        session.id,
        session.capacity,
        occupied,
        session.status.value,
    )
    return session
