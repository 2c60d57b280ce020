# app/enrollments.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .errors import ValidationError
from .forms import (
    EnrollmentIntakeForm,
    EnrollmentUpdateForm,
    StatusChangeForm,
    form_error,
    json_formdata,
)
from .models import EnrollmentStatus
from .services import enrollments as enrollment_service
from .services import ledger
from .utils.rate_limit import rate_limited

bp = Blueprint("enrollments", __name__)


@bp.route("/check/<int:session_id>/<email>")
def check_enrollment(session_id, email):
    enrollment = enrollment_service.find_active_enrollment(session_id, email)
    return jsonify(
        {
            "success": True,
            "isEnrolled": enrollment is not None,
            "enrollment": (
                {"id": enrollment.id, "status": enrollment.status.value}
                if enrollment is not None
                else None
            ),
        }
    )


# --- Intake ---
@bp.route("", methods=["POST"])
@rate_limited(
    "intake",
    "INTAKE_RATE_LIMIT",
    "INTAKE_RATE_WINDOW_SECONDS",
    "Too many requests from this IP, please try again later.",
)
def create_enrollment():
    form = EnrollmentIntakeForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    session_id = form.sessionId.data
    enrollment = ledger.admit_enrollment(
        session_id, form.studentEmail.data, form.intake_data()
    )
    capacity = ledger.session_capacity(session_id)

    return (
        jsonify(
            {
                "success": True,
                "enrollmentId": enrollment.id,
                "status": enrollment.status.value,
                "message": "Enrollment created successfully",
                "availableSpots": capacity.available_spots,
            }
        ),
        201,
    )


@bp.route("/<enrollment_id>")
def get_enrollment(enrollment_id):
    enrollment = enrollment_service.get_enrollment(enrollment_id)
    return jsonify({"success": True, "enrollment": enrollment.to_dict()})


# --- Admin ---
@bp.route("", methods=["GET"])
@admin_required
def list_enrollments():
    status_param = request.args.get("status")
    session_param = request.args.get("sessionId")

    status = None
    if status_param and status_param != "all":
        try:
            status = EnrollmentStatus(status_param)
        except ValueError:
            raise ValidationError("Invalid status") from None

    session_id = None
    if session_param:
        try:
            session_id = int(session_param)
        except ValueError:
            raise ValidationError("Invalid session id") from None

    enrollments = enrollment_service.list_enrollments(status=status, session_id=session_id)
    return jsonify(
        {
            "success": True,
            "enrollments": [e.to_dict() for e in enrollments],
            "count": len(enrollments),
        }
    )


@bp.route("/<enrollment_id>/status", methods=["PATCH"])
@admin_required
def update_status(enrollment_id):
    form = StatusChangeForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    target = form.target_status()
    enrollment = ledger.transition_status(
        enrollment_id, target, actor=form.actor() or current_user.email
    )
    return jsonify(
        {
            "success": True,
            "enrollment": enrollment.to_dict(),
            "message": f"Enrollment status updated to {target.value}",
        }
    )


@bp.route("/<enrollment_id>", methods=["PUT"])
@admin_required
def update_enrollment(enrollment_id):
    form = EnrollmentUpdateForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    enrollment = ledger.update_enrollment_contact(
        enrollment_id,
        full_name=form.full_name.data.strip(),
        email=form.email.data,
        phone=form.phone.data or None,
        id_card=form.id_card.data or None,
        address=form.address.data or None,
    )
    return jsonify(
        {
            "success": True,
            "message": "Enrollment updated successfully",
            "data": enrollment.to_dict(),
        }
    )


@bp.route("/<enrollment_id>", methods=["DELETE"])
@admin_required
def delete_enrollment(enrollment_id):
    ledger.delete_enrollment(enrollment_id)
    current_app.logger.info(
        "Admin %s deleted enrollment %s", current_user.email, enrollment_id
    )
    return jsonify({"success": True, "message": "Enrollment deleted successfully"})
