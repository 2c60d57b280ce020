# services/transactions.py
"""Transaction plumbing shared by the services that guard a capacity.

Writers take a row lock on the row that owns the capacity (a course session
or an event) before counting, so the count and the write that depends on it
happen in one serialized unit. PostgreSQL gets ``SELECT ... FOR UPDATE`` with
a bounded ``lock_timeout``. SQLite has no row locks, so every transaction on
it is opened with ``BEGIN IMMEDIATE``, which takes the database write lock up
front and makes concurrent writers wait their turn.
"""
import functools

from flask import current_app
from sqlalchemy import event, select, text
from sqlalchemy.exc import OperationalError

from ..errors import StorageConflict
from ..extensions import db


def configure_sqlite_locking(engine, busy_timeout_ms: int = 5000) -> None:
    """Let SQLAlchemy, not pysqlite, open SQLite transactions, and open them IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        # pysqlite would otherwise defer BEGIN until the first write
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def atomic(fn):
    """Run ``fn`` as one transaction and commit it.

    Driver-level conflicts (serialization failures, deadlocks, lock timeouts,
    SQLite busy errors) roll back and re-run the whole unit up to
    ``LEDGER_MAX_RETRIES`` more times before surfacing as
    :class:`StorageConflict`.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        max_retries = max(0, int(current_app.config.get("LEDGER_MAX_RETRIES", 1)))
        attempts = 0
        while True:
            attempts += 1
            try:
                result = fn(*args, **kwargs)
                db.session.commit()
            except OperationalError as exc:
                db.session.rollback()
                if attempts > max_retries:
                    current_app.logger.error(
                        "%s gave up after %s attempts: %s", fn.__name__, attempts, exc
                    )
                    raise StorageConflict(attempts) from exc
                current_app.logger.warning(
                    "%s conflicted (attempt %s), retrying: %s", fn.__name__, attempts, exc
                )
                continue
            except Exception:
                db.session.rollback()
                raise
            return result

    return wrapper


def apply_lock_timeout() -> None:
    if db.engine.dialect.name != "postgresql":
        return
    timeout_ms = int(current_app.config.get("LEDGER_LOCK_TIMEOUT_MS", 5000))
    db.session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))


def lock_row(model, pk):
    """Load ``model`` by primary key with a row lock, or ``None`` when missing."""
    apply_lock_timeout()
    return db.session.execute(
        select(model)
        .where(model.id == pk)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
