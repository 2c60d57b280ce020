# app/models.py
import enum
import uuid
from datetime import datetime, timezone
from .extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash


# ---------- Mixins ----------
class UtcTimestampMixin:
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


def _isoformat(value):
    return value.isoformat() if value is not None else None


# ---------- Enums ----------
class SessionStatus(enum.Enum):
    coming_soon = "coming_soon"
    registration_open = "registration_open"
    fully_booked = "fully_booked"

class EnrollmentStatus(enum.Enum):
    enrolled = "enrolled"
    payment_confirmed = "payment_confirmed"
    registered = "registered"
    cancelled = "cancelled"

class PaymentStatus(enum.Enum):
    pending = "pending"
    verified = "verified"
    paid = "paid"
    failed = "failed"


# Statuses that occupy a seat in the session.
SEAT_CONSUMING_STATUSES = (EnrollmentStatus.registered, EnrollmentStatus.payment_confirmed)


# ---------- Core ----------
class User(UserMixin, UtcTimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(512), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    previous_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "is_admin": self.is_admin,
            "last_login_at": _isoformat(self.last_login_at),
        }

    def __repr__(self):
        return f"<User {self.email} admin={self.is_admin}>"


# ---------- Catalog ----------
class Course(UtcTimestampMixin, db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    title = db.Column(db.String(200), nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)

    sessions = db.relationship("CourseSession", back_populates="course")

    def to_dict(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "is_published": self.is_published,
        }

    def __repr__(self):
        return f"<Course {self.slug}>"


class CourseSession(UtcTimestampMixin, db.Model):
    __tablename__ = "sessions"
    __table_args__ = (
        db.CheckConstraint("capacity >= 0", name="ck_sessions_capacity_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=True, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    capacity = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.Enum(SessionStatus),
                       default=SessionStatus.coming_soon, nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)

    course = db.relationship("Course", back_populates="sessions")
    enrollments = db.relationship("Enrollment", back_populates="session")

    def to_dict(self):
        return {
            "id": self.id,
            "course_id": self.course_id,
            "course_slug": self.course.slug if self.course else None,
            "title": self.title,
            "description": self.description,
            "start_date": _isoformat(self.start_date),
            "end_date": _isoformat(self.end_date),
            "capacity": self.capacity,
            "status": self.status.value,
            "is_published": self.is_published,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<CourseSession {self.id} {self.status.name} cap={self.capacity}>"


# ---------- Enrollments / Payments ----------
class Enrollment(UtcTimestampMixin, db.Model):
    __tablename__ = "enrollments"
    __table_args__ = (
        # one active enrollment per email and session
        db.Index(
            "uq_enrollments_session_email_active",
            "session_id",
            "email",
            unique=True,
            postgresql_where=db.text("status != 'cancelled'"),
            sqlite_where=db.text("status != 'cancelled'"),
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = db.Column(db.Integer, db.ForeignKey("sessions.id"),
                           nullable=False, index=True)
    course_slug = db.Column(db.String(120), nullable=True, index=True)

    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False, index=True)
    phone = db.Column(db.String(20), nullable=True)
    id_card = db.Column(db.String(10), nullable=True)
    address = db.Column(db.String(300), nullable=True)
    gdpr_consent = db.Column(db.Boolean, default=False, nullable=False)

    status = db.Column(db.Enum(EnrollmentStatus),
                       default=EnrollmentStatus.enrolled, nullable=False, index=True)

    session = db.relationship("CourseSession", back_populates="enrollments")
    payment = db.relationship("Payment", back_populates="enrollment", uselist=False,
                              cascade="all, delete-orphan")

    @property
    def consumes_seat(self) -> bool:
        return self.status in SEAT_CONSUMING_STATUSES

    def to_dict(self, include_payment: bool = True):
        data = {
            "id": self.id,
            "session_id": self.session_id,
            "course_slug": self.course_slug,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "id_card": self.id_card,
            "address": self.address,
            "gdpr_consent": self.gdpr_consent,
            "status": self.status.value,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }
        if include_payment:
            data["payment"] = self.payment.to_dict() if self.payment else None
        return data

    def __repr__(self):
        return f"<Enrollment {self.id} session={self.session_id} {self.status.name}>"


class Payment(UtcTimestampMixin, db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(
        db.String(36), db.ForeignKey("enrollments.id", ondelete="CASCADE"),
        unique=True, nullable=False
    )

    amount = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    currency = db.Column(db.String(3), default="EUR", nullable=False)
    status = db.Column(db.Enum(PaymentStatus),
                       default=PaymentStatus.pending, nullable=False)
    verified_by = db.Column(db.String(200), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)

    enrollment = db.relationship("Enrollment", back_populates="payment")

    def to_dict(self):
        return {
            "id": self.id,
            "amount": str(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "status": self.status.value,
            "verified_by": self.verified_by,
            "payment_date": _isoformat(self.payment_date),
        }

    def __repr__(self):
        return f"<Payment {self.id} enrollment={self.enrollment_id} {self.status.name}>"


# ---------- Events ----------
class Event(UtcTimestampMixin, db.Model):
    __tablename__ = "events"
    __table_args__ = (
        db.CheckConstraint("capacity >= 0", name="ck_events_capacity_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    event_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    event_end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    location = db.Column(db.String(200), nullable=True)
    capacity = db.Column(db.Integer, default=100, nullable=False)
    price = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    currency = db.Column(db.String(3), default="EUR", nullable=False)
    event_type = db.Column(db.String(50), default="workshop", nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    registrations = db.relationship("EventRegistration", back_populates="event",
                                    cascade="all, delete-orphan")

    def to_dict(self, registrations: int | None = None):
        data = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "event_date": _isoformat(self.event_date),
            "event_end_date": _isoformat(self.event_end_date),
            "location": self.location,
            "capacity": self.capacity,
            "price": str(self.price) if self.price is not None else None,
            "currency": self.currency,
            "event_type": self.event_type,
            "is_published": self.is_published,
            "sort_order": self.sort_order,
            "created_at": _isoformat(self.created_at),
        }
        if registrations is not None:
            data["current_registrations"] = registrations
            data["availableSpots"] = max(0, self.capacity - registrations)
        return data

    def __repr__(self):
        return f"<Event {self.slug} cap={self.capacity}>"


class EventRegistration(db.Model):
    __tablename__ = "event_registrations"
    __table_args__ = (
        db.UniqueConstraint("event_id", "email", name="uq_event_registrations_event_email"),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    school = db.Column(db.String(200), nullable=True)
    registered_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    event = db.relationship("Event", back_populates="registrations")

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "event_title": self.event.title if self.event else None,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "school": self.school,
            "registered_at": _isoformat(self.registered_at),
        }

    def __repr__(self):
        return f"<EventRegistration {self.id} event={self.event_id} {self.email}>"


# ---------- Venues ----------
class Venue(UtcTimestampMixin, db.Model):
    __tablename__ = "venues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    capacity = db.Column(db.Integer, nullable=True)
    location = db.Column(db.String(200), nullable=True)
    amenities = db.Column(db.JSON, default=list, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    gallery_urls = db.Column(db.JSON, default=list, nullable=False)
    is_published = db.Column(db.Boolean, default=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "capacity": self.capacity,
            "location": self.location,
            "amenities": self.amenities or [],
            "image_url": self.image_url,
            "gallery_urls": self.gallery_urls or [],
            "is_published": self.is_published,
            "sort_order": self.sort_order,
        }

    def __repr__(self):
        return f"<Venue {self.slug}>"


# ---------- CMS ----------
class Page(UtcTimestampMixin, db.Model):
    __tablename__ = "pages"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    title = db.Column(db.String(200), nullable=False)
    meta_title = db.Column(db.String(200), nullable=True)
    meta_description = db.Column(db.String(500), nullable=True)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    sections = db.relationship("PageSection", back_populates="page",
                               cascade="all, delete-orphan",
                               order_by="PageSection.sort_order")

    def to_dict(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "is_published": self.is_published,
            "sort_order": self.sort_order,
            "updated_at": _isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Page {self.slug}>"


class PageSection(UtcTimestampMixin, db.Model):
    __tablename__ = "page_sections"

    id = db.Column(db.Integer, primary_key=True)
    page_id = db.Column(db.Integer, db.ForeignKey("pages.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    section_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=True)
    subtitle = db.Column(db.String(300), nullable=True)
    content = db.Column(db.Text, nullable=True)
    data = db.Column(db.JSON, nullable=True)
    background_color = db.Column(db.String(20), nullable=True)
    text_color = db.Column(db.String(20), nullable=True)
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    is_published = db.Column(db.Boolean, default=True, nullable=False)

    page = db.relationship("Page", back_populates="sections")

    def to_dict(self):
        return {
            "id": self.id,
            "page_id": self.page_id,
            "section_type": self.section_type,
            "title": self.title,
            "subtitle": self.subtitle,
            "content": self.content,
            "data": self.data,
            "background_color": self.background_color,
            "text_color": self.text_color,
            "sort_order": self.sort_order,
            "is_published": self.is_published,
        }

    def __repr__(self):
        return f"<PageSection {self.id} page={self.page_id} {self.section_type}>"


class Setting(UtcTimestampMixin, db.Model):
    __tablename__ = "settings"

    key = db.Column(db.String(120), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), default="text", nullable=False)
    description = db.Column(db.String(300), nullable=True)

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "type": self.type,
            "description": self.description,
            "updated_at": _isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Setting {self.key}>"


# ---------- Contact ----------
class InquiryStatus(enum.Enum):
    new = "new"
    in_progress = "in_progress"
    responded = "responded"
    closed = "closed"

class InquiryPriority(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ContactInquiry(UtcTimestampMixin, db.Model):
    __tablename__ = "contact_inquiries"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False, index=True)
    phone = db.Column(db.String(30), nullable=True)
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(InquiryStatus),
                       default=InquiryStatus.new, nullable=False, index=True)
    priority = db.Column(db.Enum(InquiryPriority),
                         default=InquiryPriority.medium, nullable=False)
    admin_notes = db.Column(db.Text, nullable=True)
    responded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "message": self.message,
            "status": self.status.value,
            "priority": self.priority.value,
            "admin_notes": self.admin_notes,
            "responded_at": _isoformat(self.responded_at),
            "created_at": _isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ContactInquiry {self.id} {self.status.name}>"
