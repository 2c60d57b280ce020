import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from .errors import LedgerError
from .extensions import db, migrate, csrf, login_manager
from .models import User
from .services.transactions import configure_sqlite_locking
from .utils.rate_limit import InMemoryRateLimiter
from . import admin, auth, cms, contact, courses, enrollments, events, venues

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env", override=False)
load_dotenv(BASE_DIR / "instance" / ".env", override=False)

def create_app(config_class="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            configure_sqlite_locking(db.engine, app.config.get("LEDGER_LOCK_TIMEOUT_MS", 5000))
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)
    InMemoryRateLimiter().init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        if not user_id:
            return None
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    # JSON API: session cookie auth, no CSRF tokens
    for blueprint in (
        auth.bp, admin.bp, courses.bp, enrollments.bp, events.bp, cms.bp, venues.bp, contact.bp
    ):
        csrf.exempt(blueprint)

    app.register_blueprint(auth.bp, url_prefix="/api/auth")
    app.register_blueprint(admin.bp, url_prefix="/api/admin")
    app.register_blueprint(courses.bp, url_prefix="/api/courses")
    app.register_blueprint(enrollments.bp, url_prefix="/api/enrollments")
    app.register_blueprint(events.bp, url_prefix="/api/events")
    app.register_blueprint(cms.bp, url_prefix="/api/cms")
    app.register_blueprint(venues.bp, url_prefix="/api/venues")
    app.register_blueprint(contact.bp, url_prefix="/api/contact")

    _register_error_handlers(app)

    @app.route("/api/health")
    def health():
        return jsonify({"success": True, "status": "ok"})

    return app


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(LedgerError)
    def handle_ledger_error(exc):
        level = logging.WARNING if exc.retryable else logging.INFO
        app.logger.log(level, "Request rejected: %s", exc)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(404)
    def handle_not_found(_exc):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_exc):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_internal_error(exc):
        app.logger.error("Unhandled error: %s", exc, exc_info=True)
        return jsonify({"success": False, "error": "Internal server error"}), 500
