import importlib
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@pytest.mark.usefixtures("reset_config_module")
def test_ledger_and_rate_limit_defaults():
    config_module = importlib.import_module("config")

    assert config_module.Config.LEDGER_MAX_RETRIES == 1
    assert config_module.Config.LEDGER_LOCK_TIMEOUT_MS == 5000
    assert config_module.Config.DEFAULT_CURRENCY == "EUR"
    assert config_module.Config.RATELIMIT_ENABLED is True
    assert config_module.Config.INTAKE_RATE_LIMIT == 20
    assert config_module.Config.INTAKE_RATE_WINDOW_SECONDS == 900
    assert config_module.Config.LOGIN_RATE_LIMIT == 5
    assert config_module.Config.CONTACT_RATE_LIMIT == 10
    assert config_module.Config.CONTACT_RATE_WINDOW_SECONDS == 900
    assert config_module.Config.SESSION_COOKIE_SECURE is False
    assert config_module.Config.SESSION_COOKIE_SAMESITE == "Lax"


@pytest.mark.usefixtures("reset_config_module")
def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_MAX_RETRIES", "3")
    monkeypatch.setenv("RATELIMIT_ENABLED", "false")
    monkeypatch.setenv("DATABASE_URL", "postgresql://academy@db/academy")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config_module = importlib.import_module("config")

    assert config_module.Config.LEDGER_MAX_RETRIES == 3
    assert config_module.Config.RATELIMIT_ENABLED is False
    assert config_module.Config.SQLALCHEMY_DATABASE_URI == "postgresql://academy@db/academy"
    assert config_module.Config.LOG_LEVEL == "DEBUG"


@pytest.mark.usefixtures("reset_config_module")
def test_production_requires_secret_key(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "production")

    with pytest.raises(RuntimeError):
        importlib.import_module("config")


@pytest.mark.usefixtures("reset_config_module")
def test_production_cookie_defaults(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "a-real-secret")

    config_module = importlib.import_module("config")

    assert config_module.Config.SESSION_COOKIE_SECURE is True
    assert config_module.Config.SESSION_COOKIE_SAMESITE == "None"


@pytest.fixture
def reset_config_module(monkeypatch):
    for key in [
        "FLASK_ENV",
        "SECRET_KEY",
        "SQLALCHEMY_DATABASE_URI",
        "DATABASE_URL",
        "LOG_LEVEL",
        "LEDGER_MAX_RETRIES",
        "LEDGER_LOCK_TIMEOUT_MS",
        "DEFAULT_CURRENCY",
        "RATELIMIT_ENABLED",
        "INTAKE_RATE_LIMIT",
        "INTAKE_RATE_WINDOW_SECONDS",
        "LOGIN_RATE_LIMIT",
        "CONTACT_RATE_LIMIT",
        "CONTACT_RATE_WINDOW_SECONDS",
        "SESSION_COOKIE_SECURE",
        "SESSION_COOKIE_SAMESITE",
    ]:
        monkeypatch.delenv(key, raising=False)
    sys.modules.pop("config", None)
    yield
    sys.modules.pop("config", None)
