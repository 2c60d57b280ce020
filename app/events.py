# app/events.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .extensions import db
from .forms import (
    EventForm,
    EventRegistrationByTitleForm,
    EventRegistrationForm,
    EventUpdateForm,
    form_error,
    json_formdata,
    submitted,
)
from .services import events as event_service
from .utils.rate_limit import rate_limited

bp = Blueprint("events", __name__)

EVENT_FIELDS = (
    "title",
    "slug",
    "description",
    "event_date",
    "event_end_date",
    "location",
    "price",
    "currency",
    "event_type",
    "is_published",
    "sort_order",
)


def _event_payload(event):
    return event.to_dict(registrations=event_service.registration_count(event.id))


def _listing(published_only):
    status = request.args.get("status")
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)
    events = event_service.list_events(
        published_only=published_only, status=status, limit=limit, offset=offset
    )
    return jsonify(
        {"success": True, "data": [_event_payload(e) for e in events], "count": len(events)}
    )


# --- Public ---
@bp.route("")
def list_events():
    return _listing(published_only=True)


@bp.route("/<int:event_id>")
def get_event(event_id):
    event = event_service.get_event(event_id)
    if not event.is_published and not (
        current_user.is_authenticated and current_user.is_admin
    ):
        return jsonify({"success": False, "error": "Event not found"}), 404
    return jsonify({"success": True, "data": _event_payload(event)})


@bp.route("/<int:event_id>/register", methods=["POST"])
@rate_limited(
    "event-register",
    "INTAKE_RATE_LIMIT",
    "INTAKE_RATE_WINDOW_SECONDS",
    "Too many requests from this IP, please try again later.",
)
def register(event_id):
    form = EventRegistrationForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    registration = event_service.register(
        event_id,
        form.firstName.data,
        form.lastName.data,
        form.email.data,
        phone=form.phone.data,
    )
    return (
        jsonify(
            {
                "success": True,
                "message": "Registration successful",
                "registrationId": registration.id,
                "eventTitle": registration.event.title,
            }
        ),
        201,
    )


@bp.route("/register", methods=["POST"])
@rate_limited(
    "event-register",
    "INTAKE_RATE_LIMIT",
    "INTAKE_RATE_WINDOW_SECONDS",
    "Too many requests from this IP, please try again later.",
)
def register_by_title():
    form = EventRegistrationByTitleForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    registration = event_service.register_by_title(
        form.eventTitle.data,
        form.firstName.data,
        form.lastName.data,
        form.email.data,
        school=form.school.data,
    )
    return (
        jsonify(
            {
                "success": True,
                "message": "Registration successful",
                "registrationId": registration.id,
                "data": registration.to_dict(),
            }
        ),
        201,
    )


# --- Admin ---
@bp.route("/all")
@admin_required
def list_all_events():
    return _listing(published_only=False)


@bp.route("/<int:event_id>/registrations")
@admin_required
def list_registrations(event_id):
    registrations = event_service.get_registrations(event_id)
    return jsonify(
        {
            "success": True,
            "data": [r.to_dict() for r in registrations],
            "count": len(registrations),
        }
    )


@bp.route("", methods=["POST"])
@admin_required
def create_event():
    form = EventForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    fields = submitted(form, *EVENT_FIELDS)
    fields["capacity"] = form.capacity.data if form.capacity.data is not None else 100
    if fields.get("currency"):
        fields["currency"] = fields["currency"].upper()
    event = event_service.create_event(**fields)
    db.session.commit()
    current_app.logger.info(
        "Admin %s created event %s (capacity=%s)", current_user.email, event.id, event.capacity
    )
    return (
        jsonify({"success": True, "data": _event_payload(event), "message": "Event created successfully"}),
        201,
    )


@bp.route("/<int:event_id>", methods=["PUT"])
@admin_required
def update_event(event_id):
    form = EventUpdateForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    attributes = submitted(form, *EVENT_FIELDS)
    if attributes.get("currency"):
        attributes["currency"] = attributes["currency"].upper()
    event = event_service.update_event(event_id, capacity=form.capacity.data, attributes=attributes)
    return jsonify({"success": True, "data": _event_payload(event), "message": "Event updated successfully"})


@bp.route("/<int:event_id>", methods=["DELETE"])
@admin_required
def delete_event(event_id):
    event = event_service.get_event(event_id)
    event_service.delete_event(event)
    db.session.commit()
    current_app.logger.info("Admin %s deleted event %s", current_user.email, event_id)
    return jsonify({"success": True, "message": "Event deleted successfully"})
