# app/auth.py
import functools
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import select

from .extensions import db
from .forms import LoginForm, form_error, json_formdata
from .models import User
from .utils.rate_limit import rate_limited

bp = Blueprint("auth", __name__)


def admin_required(view):
    """Like ``login_required`` but also rejects non-admin users with 403."""

    @functools.wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user.is_admin:
            current_app.logger.warning(
                "User %s tried to reach an admin endpoint", current_user.email
            )
            return jsonify({"success": False, "error": "Admin access required"}), 403
        return view(*args, **kwargs)

    return wrapper


def _finalize_login(user: User) -> None:
    login_user(user)
    user.previous_login_at = user.last_login_at
    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()


@bp.route("/login", methods=["POST"])
@rate_limited(
    "login",
    "LOGIN_RATE_LIMIT",
    "LOGIN_RATE_WINDOW_SECONDS",
    "Too many login attempts from this IP, please try again after 15 minutes.",
)
def login():
    form = LoginForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    email = form.email.data.strip().lower()
    user = db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None or not user.check_password(form.password.data):
        current_app.logger.warning("Failed login attempt for %s", email)
        return jsonify({"success": False, "error": "Invalid credentials"}), 401

    try:
        _finalize_login(user)
    except Exception as exc:
        current_app.logger.error(
            "Error completing login for %s: %s",
            user.email,
            exc,
            exc_info=True,
        )
        db.session.rollback()
        return jsonify({"success": False, "error": "Login failed, please try again"}), 500

    current_app.logger.info("User %s logged in", user.email)
    return jsonify({"success": True, "message": "Login successful", "user": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True, "message": "Logged out successfully"})


@bp.route("/me")
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})
