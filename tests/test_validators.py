"""Tests for payload validation (no database access involved)."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_api.errors import ValidationFailed
from payroll_api.validators import parse_id, parse_ids, validate_department, validate_employee

VALID_EMPLOYEE = {
    "employee_id": "EMP010",
    "first_name": "Jose",
    "last_name": "Rizal",
    "email": "jose.rizal@manilapayroll.com",
    "department_id": "3",
    "position": "Finance Analyst",
    "salary": "65000.00",
    "hire_date": "2023-03-10",
}


class TestValidateEmployee:
    def test_normalizes_valid_payload(self):
        result = validate_employee(VALID_EMPLOYEE)
        assert result.ok
        assert result.data["department_id"] == 3
        assert result.data["salary"] == Decimal("65000.00")
        assert result.data["hire_date"] == date(2023, 3, 10)
        assert result.data["status"] == "active"
        assert result.data["phone"] is None

    def test_collects_every_field_error(self):
        payload = dict(VALID_EMPLOYEE, email="bad", salary="-1", status="on leave")
        result = validate_employee(payload)
        assert not result.ok
        assert {error.field for error in result.errors} == {"email", "salary", "status"}

    def test_rejects_more_than_two_decimals(self):
        result = validate_employee(dict(VALID_EMPLOYEE, salary="100.123"))
        assert [error.field for error in result.errors] == ["salary"]

    def test_rejects_overlong_email(self):
        email = "a" * 60 + "@" + "b" * 40 + ".com"
        result = validate_employee(dict(VALID_EMPLOYEE, email=email))
        assert result.errors[0].field == "email"
        assert result.errors[0].message == "Email must be at most 100 characters"

    def test_ignores_unknown_fields(self):
        result = validate_employee(dict(VALID_EMPLOYEE, is_admin=True))
        assert "is_admin" not in result.data

    def test_null_status_takes_default(self):
        result = validate_employee(dict(VALID_EMPLOYEE, status=None))
        assert result.data["status"] == "active"

    def test_rejects_department_beyond_int_range(self):
        result = validate_employee(dict(VALID_EMPLOYEE, department_id=2**31))
        assert [error.field for error in result.errors] == ["department_id"]

    def test_partial_keeps_only_supplied_fields(self):
        result = validate_employee({"position": "  Senior Analyst "}, partial=True)
        assert result.data == {"position": "Senior Analyst"}

    def test_partial_rejects_null_for_required_column(self):
        result = validate_employee({"salary": None}, partial=True)
        assert result.errors[0].field == "salary"

    def test_partial_allows_null_department(self):
        result = validate_employee({"department_id": None}, partial=True)
        assert result.data == {"department_id": None}

    def test_non_mapping_payload(self):
        result = validate_employee(["not", "a", "dict"])
        assert result.errors[0].field == "body"

    def test_unwrap_raises_validation_failed(self):
        with pytest.raises(ValidationFailed) as excinfo:
            validate_employee({}).unwrap()
        assert excinfo.value.status_code == 400
        assert excinfo.value.errors


class TestValidateDepartment:
    def test_valid_department(self):
        result = validate_department({"name": " Legal ", "description": "Contracts"})
        assert result.data == {"name": "Legal", "description": "Contracts"}

    def test_name_too_long(self):
        result = validate_department({"name": "x" * 101})
        assert result.errors[0].field == "name"

    def test_partial_requires_a_field(self):
        result = validate_department({}, partial=True)
        assert result.errors[0].message == "No fields to update"


class TestIdentifiers:
    @pytest.mark.parametrize(
        "raw, expected",
        [("7", 7), (" 12 ", 12), (3, 3), (4.0, 4), (2**31 - 1, 2**31 - 1)],
    )
    def test_parse_id_accepts_positive_integers(self, raw, expected):
        assert parse_id(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["abc", "0", "-3", "1.5", "", None, True, 2.5, 2**31, "99999999999999999999", 1e20],
    )
    def test_parse_id_rejects_everything_else(self, raw):
        with pytest.raises(ValidationFailed) as excinfo:
            parse_id(raw, "employee")
        assert excinfo.value.message == "Invalid employee ID"

    def test_parse_ids_filters_and_deduplicates(self):
        assert parse_ids([3, "4", "x", -1, 0, None, False, 3, 5.0, 6.5, 10**20, "7"]) == [3, 4, 5, 7]
