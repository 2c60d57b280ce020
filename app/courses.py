# app/courses.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .extensions import db
from .forms import SessionForm, SessionUpdateForm, form_error, json_formdata
from .models import SessionStatus
from .services import catalog
from .services import ledger

bp = Blueprint("courses", __name__)


def _session_payload(session):
    capacity = ledger.session_capacity(session.id)
    data = session.to_dict()
    data["occupied"] = capacity.occupied
    data["availableSpots"] = capacity.available_spots
    return data


@bp.route("")
def list_courses():
    courses = catalog.get_published_courses()
    return jsonify({"success": True, "data": [c.to_dict() for c in courses], "count": len(courses)})


@bp.route("/slug/<slug>")
def get_course(slug):
    course = catalog.get_course_by_slug(slug)
    if course is None:
        return jsonify({"success": False, "error": "Course not found"}), 404
    return jsonify({"success": True, "data": course.to_dict()})


@bp.route("/<int:course_id>/sessions")
def list_sessions(course_id):
    published_only = request.args.get("published_only") == "true"
    sessions = catalog.get_sessions_for_course(course_id, published_only=published_only)
    return jsonify(
        {
            "success": True,
            "data": [_session_payload(s) for s in sessions],
            "count": len(sessions),
        }
    )


@bp.route("/sessions/<int:session_id>")
def get_session(session_id):
    session = catalog.get_session(session_id)
    return jsonify({"success": True, "data": _session_payload(session)})


# --- Admin ---
@bp.route("/sessions", methods=["POST"])
@admin_required
def create_session():
    form = SessionForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    session = catalog.create_session(
        course_id=form.course_id.data,
        title=form.title.data,
        description=form.description.data or None,
        start_date=form.start_date.data,
        end_date=form.end_date.data,
        capacity=form.capacity.data or 0,
        status=SessionStatus(form.status.data) if form.status.data else SessionStatus.coming_soon,
        is_published=bool(form.is_published.data),
    )
    db.session.commit()
    current_app.logger.info(
        "Admin %s created session %s (capacity=%s)", current_user.email, session.id, session.capacity
    )
    return (
        jsonify({"success": True, "data": _session_payload(session), "message": "Session created successfully"}),
        201,
    )


@bp.route("/sessions/<int:session_id>", methods=["PUT"])
@admin_required
def update_session(session_id):
    form = SessionUpdateForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    session = catalog.update_session(session_id, form)
    return jsonify({"success": True, "data": _session_payload(session), "message": "Session updated successfully"})


@bp.route("/sessions/<int:session_id>", methods=["DELETE"])
@admin_required
def delete_session(session_id):
    session = catalog.get_session(session_id)
    catalog.delete_session(session)
    db.session.commit()
    current_app.logger.info("Admin %s deleted session %s", current_user.email, session_id)
    return jsonify({"success": True, "message": "Session deleted successfully"})
