# services/contact.py
"""Contact-form inquiries and their admin follow-up."""
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import func, select

from ..errors import ResourceNotFound
from ..extensions import db
from ..models import ContactInquiry, InquiryPriority, InquiryStatus


def submit_inquiry(name, email, subject, message, phone=None) -> ContactInquiry:
    inquiry = ContactInquiry(
        name=name.strip(),
        email=email.strip().lower(),
        phone=phone or None,
        subject=subject.strip(),
        message=message,
        status=InquiryStatus.new,
        priority=InquiryPriority.medium,
    )
    db.session.add(inquiry)
    return inquiry


def list_inquiries(status: InquiryStatus | None = None, limit: int = 50, offset: int = 0):
    """Newest first, with the total matching count for pagination."""
    stmt = select(ContactInquiry)
    count = select(func.count(ContactInquiry.id))
    if status is not None:
        stmt = stmt.where(ContactInquiry.status == status)
        count = count.where(ContactInquiry.status == status)
    stmt = stmt.order_by(ContactInquiry.created_at.desc(), ContactInquiry.id.desc())
    inquiries = db.session.execute(stmt.limit(limit).offset(offset)).scalars().all()
    return inquiries, db.session.scalar(count)


def get_inquiry(inquiry_id: int) -> ContactInquiry:
    inquiry = db.session.get(ContactInquiry, inquiry_id)
    if inquiry is None:
        raise ResourceNotFound("Contact inquiry", inquiry_id)
    return inquiry


def update_inquiry(inquiry_id: int, status: InquiryStatus | None = None,
                   priority: InquiryPriority | None = None, admin_notes: str | None = None) -> ContactInquiry:
    inquiry = get_inquiry(inquiry_id)
    if status is not None and status != inquiry.status:
        current_app.logger.info(
            "Inquiry %s status %s -> %s", inquiry.id, inquiry.status.value, status.value
        )
        if status == InquiryStatus.responded:
            inquiry.responded_at = datetime.now(timezone.utc)
        inquiry.status = status
    if priority is not None:
        inquiry.priority = priority
    if admin_notes is not None:
        inquiry.admin_notes = admin_notes
    return inquiry
