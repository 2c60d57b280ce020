# app/admin.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .forms import StatusActionForm, StatusChangeForm, form_error, json_formdata
from .services import ledger

bp = Blueprint("admin", __name__)


def _status_response(enrollment, target):
    return jsonify(
        {
            "success": True,
            "message": "Enrollment status updated successfully",
            "enrollmentId": enrollment.id,
            "status": target.value,
            "enrollment": enrollment.to_dict(),
        }
    )


# --- Dashboard buttons (?action=paid|registered|cancelled|restore) ---
@bp.route("/enrollment/<enrollment_id>/status", methods=["GET"])
@admin_required
def enrollment_status_action(enrollment_id):
    form = StatusActionForm(formdata=request.args)
    if not form.validate():
        raise form_error(form)

    target = form.target_status()
    enrollment = ledger.transition_status(enrollment_id, target, actor=current_user.email)
    current_app.logger.info(
        "Admin %s applied action %s to enrollment %s",
        current_user.email,
        form.action.data,
        enrollment_id,
    )
    return _status_response(enrollment, target)


# --- Console API calls ---
@bp.route("/enrollment/<enrollment_id>/status", methods=["PUT"])
@admin_required
def update_enrollment_status(enrollment_id):
    form = StatusChangeForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    target = form.target_status()
    enrollment = ledger.transition_status(
        enrollment_id, target, actor=form.actor() or current_user.email
    )
    return _status_response(enrollment, target)


@bp.route("/sessions/<int:session_id>/capacity")
@admin_required
def session_capacity(session_id):
    capacity = ledger.session_capacity(session_id)
    return jsonify({"success": True, "data": capacity.to_dict()})
