"""Tests for the persistence gateway."""

import sqlite3

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from payroll_api import database as database_module
from payroll_api.database import Database, classify_error
from payroll_api.errors import StoreError, StoreErrorKind
from payroll_api.models import Department, Employee


class DriverError(Exception):
    """Stands in for a PyMySQL error carrying a numeric code."""


def wrapped(exc_class, *args):
    return exc_class("SELECT 1", {}, DriverError(*args))


class TestProvisioning:
    def test_seeds_departments(self, db):
        rows = db.query("SELECT name FROM departments ORDER BY id")
        assert [row["name"] for row in rows] == [
            "Human Resources",
            "Information Technology",
            "Finance",
            "Marketing",
            "Operations",
        ]

    def test_provision_is_idempotent(self, db):
        db.provision()
        db.provision()
        assert db.query("SELECT COUNT(*) AS count FROM departments")[0]["count"] == 5

    def test_provision_keeps_existing_rows(self, db):
        db.execute("DELETE FROM departments WHERE id > 1")
        db.provision()
        assert db.query("SELECT COUNT(*) AS count FROM departments")[0]["count"] == 1


class TestQueryAndExecute:
    def test_query_returns_dicts(self, db):
        rows = db.query("SELECT id, name FROM departments WHERE id = :id", {"id": 3})
        assert rows == [{"id": 3, "name": "Finance"}]

    def test_execute_reports_last_insert_id(self, db):
        result = db.execute(insert(Department.__table__).values(name="Legal"))
        assert result.rowcount == 1
        assert result.last_insert_id == 6

    def test_execute_reports_rowcount(self, db):
        result = db.execute(
            "UPDATE departments SET description = :description WHERE id IN (1, 2)",
            {"description": "Updated"},
        )
        assert result.rowcount == 2

    def test_duplicate_insert_raises_duplicate_entry(self, db):
        with pytest.raises(StoreError) as excinfo:
            db.execute(insert(Department.__table__).values(name="Finance"))
        assert excinfo.value.kind is StoreErrorKind.DUPLICATE_ENTRY

    def test_missing_department_reference_raises_foreign_key_violation(self, db):
        stmt = insert(Employee.__table__).values(
            employee_id="EMP900",
            first_name="Ana",
            last_name="Garcia",
            email="ana@manilapayroll.com",
            department_id=999,
        )
        with pytest.raises(StoreError) as excinfo:
            db.execute(stmt)
        assert excinfo.value.kind is StoreErrorKind.FOREIGN_KEY_VIOLATION

    def test_department_delete_sets_employee_reference_null(self, db):
        db.execute(
            insert(Employee.__table__).values(
                employee_id="EMP901",
                first_name="Pedro",
                last_name="Morales",
                email="pedro@manilapayroll.com",
                department_id=5,
            )
        )
        db.execute("DELETE FROM departments WHERE id = 5")
        row = db.query("SELECT department_id FROM employees WHERE employee_id = 'EMP901'")[0]
        assert row["department_id"] is None

    def test_missing_table_raises_no_such_table(self, db):
        with pytest.raises(StoreError) as excinfo:
            db.query("SELECT * FROM payslips")
        assert excinfo.value.kind is StoreErrorKind.NO_SUCH_TABLE

    def test_out_of_range_parameter_raises_store_error(self, db):
        with pytest.raises(StoreError) as excinfo:
            db.query("SELECT :n AS n", {"n": 2**70})
        assert excinfo.value.kind is StoreErrorKind.UNKNOWN

    def test_full_queue_fails_fast(self):
        db = Database("sqlite:///./test.db", pool_size=1, queue_limit=0)
        try:
            with db._admitted():
                with pytest.raises(StoreError) as excinfo:
                    db.query("SELECT 1")
            assert excinfo.value.kind is StoreErrorKind.POOL_EXHAUSTED
            assert db.query("SELECT 1 AS one") == [{"one": 1}]
        finally:
            db.dispose()


class TestClassifyError:
    @pytest.mark.parametrize(
        "code, kind",
        [
            (1062, StoreErrorKind.DUPLICATE_ENTRY),
            (1452, StoreErrorKind.FOREIGN_KEY_VIOLATION),
            (1146, StoreErrorKind.NO_SUCH_TABLE),
            (2003, StoreErrorKind.CONNECTION_REFUSED),
            (3024, StoreErrorKind.TIMEOUT),
            (1064, StoreErrorKind.UNKNOWN),
        ],
    )
    def test_mysql_error_codes(self, code, kind):
        assert classify_error(wrapped(OperationalError, code, "driver message")) is kind

    def test_sqlite_messages(self):
        exc = IntegrityError(
            "INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed: employees.email")
        )
        assert classify_error(exc) is StoreErrorKind.DUPLICATE_ENTRY

    def test_pool_timeout(self):
        assert classify_error(PoolTimeoutError("QueuePool limit reached")) is StoreErrorKind.TIMEOUT


class TestGetDatabase:
    def test_failed_provisioning_returns_degraded_instance(self, monkeypatch):
        monkeypatch.setattr(database_module, "_database", None)
        monkeypatch.setattr(
            database_module,
            "build_database",
            lambda: Database("sqlite:////nonexistent-directory/payroll.db"),
        )

        degraded = database_module.get_database()
        try:
            assert database_module.get_database() is degraded
            assert degraded.check_connection() is False
            with pytest.raises(StoreError) as excinfo:
                degraded.query("SELECT 1")
            assert excinfo.value.kind is StoreErrorKind.CONNECTION_REFUSED
        finally:
            degraded.dispose()
