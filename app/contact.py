# app/contact.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .errors import ValidationError
from .extensions import db
from .forms import ContactForm, InquiryUpdateForm, form_error, json_formdata
from .models import InquiryPriority, InquiryStatus
from .services import contact as contact_service
from .utils.rate_limit import rate_limited

bp = Blueprint("contact", __name__)


@bp.route("/submit", methods=["POST"])
@rate_limited(
    "contact",
    "CONTACT_RATE_LIMIT",
    "CONTACT_RATE_WINDOW_SECONDS",
    "Too many requests from this IP, please try again later.",
)
def submit():
    form = ContactForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    inquiry = contact_service.submit_inquiry(
        form.name.data,
        form.email.data,
        form.subject.data,
        form.message.data,
        phone=form.phone.data,
    )
    db.session.commit()
    current_app.logger.info("Contact inquiry %s received (%s)", inquiry.id, inquiry.email)
    return (
        jsonify(
            {
                "success": True,
                "message": "Thank you for your inquiry! We'll get back to you within 24 hours.",
                "inquiryId": inquiry.id,
            }
        ),
        201,
    )


# --- Admin ---
@bp.route("/inquiries")
@admin_required
def list_inquiries():
    status = request.args.get("status")
    if status:
        try:
            status = InquiryStatus(status)
        except ValueError:
            raise ValidationError("Invalid status") from None
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)

    inquiries, total = contact_service.list_inquiries(status or None, limit=limit, offset=offset)
    return jsonify(
        {
            "success": True,
            "data": [i.to_dict() for i in inquiries],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "pages": -(-total // limit),
            },
        }
    )


@bp.route("/inquiries/<int:inquiry_id>")
@admin_required
def get_inquiry(inquiry_id):
    return jsonify({"success": True, "data": contact_service.get_inquiry(inquiry_id).to_dict()})


@bp.route("/inquiries/<int:inquiry_id>", methods=["PUT"])
@admin_required
def update_inquiry(inquiry_id):
    form = InquiryUpdateForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    inquiry = contact_service.update_inquiry(
        inquiry_id,
        status=InquiryStatus(form.status.data) if form.status.data else None,
        priority=InquiryPriority(form.priority.data) if form.priority.data else None,
        admin_notes=form.admin_notes.data if form.admin_notes.raw_data else None,
    )
    db.session.commit()
    current_app.logger.info("Admin %s updated inquiry %s", current_user.email, inquiry.id)
    return jsonify({"success": True, "data": inquiry.to_dict(), "message": "Inquiry updated successfully"})
