"""Database configuration, pooled connections and query execution."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from sqlalchemy import create_engine, event, func, insert, select, text
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.sql.expression import Executable

from payroll_api.config import settings
from payroll_api.errors import StoreError, StoreErrorKind
from payroll_api.models import Base, Department

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]

# sqlite3 raises OverflowError for out-of-range integers without DBAPI wrapping
STORE_EXCEPTIONS = (SQLAlchemyError, OverflowError)

# Reference departments seeded when the table is empty
DEFAULT_DEPARTMENTS = [
    {"name": "Human Resources", "description": "Manages employee relations and policies"},
    {
        "name": "Information Technology",
        "description": "Handles technology infrastructure and development",
    },
    {"name": "Finance", "description": "Manages financial operations and accounting"},
    {"name": "Marketing", "description": "Handles marketing and promotional activities"},
    {"name": "Operations", "description": "Manages day-to-day business operations"},
]

MYSQL_ERROR_KINDS = {
    1062: StoreErrorKind.DUPLICATE_ENTRY,
    1451: StoreErrorKind.FOREIGN_KEY_VIOLATION,
    1452: StoreErrorKind.FOREIGN_KEY_VIOLATION,
    1146: StoreErrorKind.NO_SUCH_TABLE,
    1045: StoreErrorKind.CONNECTION_REFUSED,
    1049: StoreErrorKind.CONNECTION_REFUSED,
    2002: StoreErrorKind.CONNECTION_REFUSED,
    2003: StoreErrorKind.CONNECTION_REFUSED,
    2006: StoreErrorKind.CONNECTION_REFUSED,
    1205: StoreErrorKind.TIMEOUT,
    2013: StoreErrorKind.TIMEOUT,
    3024: StoreErrorKind.TIMEOUT,
}

# Driver messages for backends that report errors without a numeric code (SQLite)
MESSAGE_ERROR_KINDS = [
    ("unique constraint failed", StoreErrorKind.DUPLICATE_ENTRY),
    ("duplicate entry", StoreErrorKind.DUPLICATE_ENTRY),
    ("foreign key constraint failed", StoreErrorKind.FOREIGN_KEY_VIOLATION),
    ("no such table", StoreErrorKind.NO_SUCH_TABLE),
    ("doesn't exist", StoreErrorKind.NO_SUCH_TABLE),
    ("unable to open database", StoreErrorKind.CONNECTION_REFUSED),
    ("connection refused", StoreErrorKind.CONNECTION_REFUSED),
    ("can't connect", StoreErrorKind.CONNECTION_REFUSED),
    ("database is locked", StoreErrorKind.TIMEOUT),
    ("timed out", StoreErrorKind.TIMEOUT),
    ("timeout", StoreErrorKind.TIMEOUT),
]


def classify_error(exc: Exception) -> StoreErrorKind:
    """Map a SQLAlchemy/driver exception to a StoreErrorKind."""
    if isinstance(exc, PoolTimeoutError):
        return StoreErrorKind.TIMEOUT

    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int) and args[0] in MYSQL_ERROR_KINDS:
        return MYSQL_ERROR_KINDS[args[0]]

    message = str(orig if orig is not None else exc).lower()
    for fragment, kind in MESSAGE_ERROR_KINDS:
        if fragment in message:
            return kind
    return StoreErrorKind.UNKNOWN


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@dataclass
class ExecuteResult:
    rowcount: int
    last_insert_id: Optional[int] = None


class Database:
    """Pooled access to the relational store.

    Every call borrows one connection from a bounded pool. Callers beyond
    ``pool_size`` wait up to ``pool_timeout`` seconds; once ``queue_limit``
    callers are already waiting, further calls fail immediately with a
    ``POOL_EXHAUSTED`` StoreError. All driver errors surface as StoreError.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        queue_limit: int = 100,
        pool_timeout: float = 30.0,
        connect_timeout: int = 10,
    ):
        self.url = url
        is_sqlite = url.startswith("sqlite")

        connect_args: dict[str, Any] = {}
        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if is_sqlite:
            connect_args["check_same_thread"] = False
        else:
            connect_args["connect_timeout"] = connect_timeout
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_recycle=3600,
            )

        self.engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self._admission = threading.Semaphore(pool_size + queue_limit)

    @contextmanager
    def _admitted(self):
        if not self._admission.acquire(blocking=False):
            raise StoreError(StoreErrorKind.POOL_EXHAUSTED, "Connection queue is full")
        try:
            yield
        finally:
            self._admission.release()

    @staticmethod
    def _translate(exc: Exception) -> StoreError:
        kind = classify_error(exc)
        logger.debug("Store error classified as %s: %s", kind.value, exc)
        return StoreError(kind, str(getattr(exc, "orig", None) or exc))

    @staticmethod
    def _statement(statement: Statement) -> Executable:
        return text(statement) if isinstance(statement, str) else statement

    def query(self, statement: Statement, params: Optional[Mapping[str, Any]] = None) -> list[dict]:
        """Run a read statement and return its rows as dicts."""
        with self._admitted():
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(self._statement(statement), dict(params or {}))
                    return [dict(row) for row in result.mappings()]
            except STORE_EXCEPTIONS as exc:
                raise self._translate(exc) from exc

    def execute(self, statement: Statement, params: Optional[Mapping[str, Any]] = None) -> ExecuteResult:
        """Run a mutating statement in its own transaction."""
        with self._admitted():
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(self._statement(statement), dict(params or {}))
                    return ExecuteResult(
                        rowcount=result.rowcount,
                        last_insert_id=_last_insert_id(result),
                    )
            except STORE_EXCEPTIONS as exc:
                raise self._translate(exc) from exc

    def provision(self) -> None:
        """Create missing tables and seed reference departments.

        Safe to run on every startup: existing tables are left alone and
        departments are only seeded into an empty table.
        """
        try:
            Base.metadata.create_all(bind=self.engine)
            with self.engine.begin() as conn:
                count = conn.execute(
                    select(func.count()).select_from(Department.__table__)
                ).scalar_one()
                if count == 0:
                    conn.execute(insert(Department.__table__), DEFAULT_DEPARTMENTS)
                    logger.info("Seeded %d departments", len(DEFAULT_DEPARTMENTS))
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc
        logger.info("Database tables are ready")

    def check_connection(self) -> bool:
        try:
            with self.engine.connect():
                pass
        except SQLAlchemyError as exc:
            logger.error("Database connection failed: %s", exc)
            if classify_error(exc) is StoreErrorKind.CONNECTION_REFUSED:
                logger.error("Check the DB_* settings or DATABASE_URL")
            return False
        logger.info("Database connection established")
        return True

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()


def _last_insert_id(result) -> Optional[int]:
    try:
        key = result.inserted_primary_key
    except SQLAlchemyError:
        # Textual statements carry no compiled primary key
        return result.lastrowid or None
    return key[0] if key else None


_database: Optional[Database] = None
_database_lock = threading.Lock()


def build_database() -> Database:
    return Database(
        settings.database_url,
        pool_size=settings.DB_POOL_SIZE,
        queue_limit=settings.DB_QUEUE_LIMIT,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
    )


def get_database() -> Database:
    """Return the process-wide Database, provisioning it on first access.

    A failed provisioning is logged and the instance is returned anyway, so
    the process keeps running and later queries report the store error.
    """
    global _database
    if _database is None:
        with _database_lock:
            if _database is None:
                database = build_database()
                try:
                    database.provision()
                except StoreError as exc:
                    logger.error("Database initialization failed: %s", exc)
                _database = database
    return _database


def close_database() -> None:
    global _database
    with _database_lock:
        if _database is not None:
            _database.dispose()
            logger.info("Database connections closed")
            _database = None
