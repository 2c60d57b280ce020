import os


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None or value.strip() == "":
        return default
    return int(value)


BASE_DIR = os.path.abspath(os.path.dirname(__file__))

_DEFAULT_PRODUCTION = os.environ.get("FLASK_ENV") == "production"

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    SQLALCHEMY_DATABASE_URI = (
        os.environ.get("SQLALCHEMY_DATABASE_URI")
        or os.environ.get("DATABASE_URL")
        or "sqlite:///" + os.path.join(BASE_DIR, "academy.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Ledger
    LEDGER_MAX_RETRIES = _env_int("LEDGER_MAX_RETRIES", 1)
    LEDGER_LOCK_TIMEOUT_MS = _env_int("LEDGER_LOCK_TIMEOUT_MS", 5000)
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "EUR")

    # Rate limiting
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    INTAKE_RATE_LIMIT = _env_int("INTAKE_RATE_LIMIT", 20)
    INTAKE_RATE_WINDOW_SECONDS = _env_int("INTAKE_RATE_WINDOW_SECONDS", 15 * 60)
    LOGIN_RATE_LIMIT = _env_int("LOGIN_RATE_LIMIT", 5)
    LOGIN_RATE_WINDOW_SECONDS = _env_int("LOGIN_RATE_WINDOW_SECONDS", 15 * 60)
    CONTACT_RATE_LIMIT = _env_int("CONTACT_RATE_LIMIT", 10)
    CONTACT_RATE_WINDOW_SECONDS = _env_int("CONTACT_RATE_WINDOW_SECONDS", 15 * 60)

    SESSION_COOKIE_SECURE = _env_bool(
        "SESSION_COOKIE_SECURE", _DEFAULT_PRODUCTION
    )
    SESSION_COOKIE_SAMESITE = os.environ.get(
        "SESSION_COOKIE_SAMESITE",
        "None" if SESSION_COOKIE_SECURE else "Lax",
    )


if _DEFAULT_PRODUCTION and Config.SECRET_KEY == "dev-secret-key":
    raise RuntimeError("SECRET_KEY must be set to a non-default value in production")
