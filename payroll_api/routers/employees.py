"""Employee endpoints."""

import logging
import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, insert, or_, select, update

from payroll_api.database import Database, get_database
from payroll_api.errors import ConflictError, NotFoundError, ValidationFailed
from payroll_api.queries import count_of, departments, employee_select, employees, employees_with_department
from payroll_api.routers.payload import read_payload
from payroll_api.schemas import (
    ApiResponse,
    BulkDeleteResult,
    EmployeeResponse,
    EmployeeStatus,
    FieldError,
    MAX_ID,
    Pagination,
)
from payroll_api.validators import parse_id, parse_ids, validate_employee

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/employees", tags=["Employees"])

SEARCH_COLUMNS = (
    employees.c.employee_id,
    employees.c.first_name,
    employees.c.last_name,
    employees.c.email,
    employees.c.position,
)

SORTABLE_COLUMNS = {
    "id": employees.c.id,
    "employee_id": employees.c.employee_id,
    "first_name": employees.c.first_name,
    "last_name": employees.c.last_name,
    "email": employees.c.email,
    "position": employees.c.position,
    "salary": employees.c.salary,
    "hire_date": employees.c.hire_date,
    "status": employees.c.status,
    "created_at": employees.c.created_at,
    "updated_at": employees.c.updated_at,
    "department_name": departments.c.name,
}
DEFAULT_SORT = "created_at"

UNIQUE_FIELDS = (("employee_id", "Employee ID"), ("email", "Email"))


def fetch_employee(db: Database, employee_id: int) -> Optional[dict]:
    rows = db.query(employee_select().where(employees.c.id == employee_id))
    return rows[0] if rows else None


def _get_or_404(db: Database, employee_id: int) -> dict:
    employee = fetch_employee(db, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def _ensure_unique(db: Database, data: dict, exclude_id: Optional[int] = None) -> None:
    for column, label in UNIQUE_FIELDS:
        value = data.get(column)
        if value is None:
            continue
        stmt = select(employees.c.id).where(employees.c[column] == value)
        if exclude_id is not None:
            stmt = stmt.where(employees.c.id != exclude_id)
        if db.query(stmt.limit(1)):
            raise ConflictError(f"{label} {value} already exists")


def _ensure_department_exists(db: Database, department_id: Optional[int]) -> None:
    if department_id is None:
        return
    if not db.query(select(departments.c.id).where(departments.c.id == department_id)):
        raise ConflictError(f"Department {department_id} does not exist")


@router.get(
    "",
    response_model=ApiResponse[list[EmployeeResponse]],
    response_model_exclude_unset=True,
    summary="List Employees",
    description="Get a filtered, sorted and paginated list of employees.",
)
def list_employees(
    search: Optional[str] = Query(None, description="Search code, name, email or position"),
    department_id: Optional[int] = Query(None, alias="departmentId", ge=1, le=MAX_ID),
    status_filter: Optional[EmployeeStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, le=MAX_ID, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    sort_by: str = Query(DEFAULT_SORT, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Database = Depends(get_database),
):
    filters = []
    if search and search.strip():
        term = f"%{search.strip()}%"
        filters.append(or_(*(column.ilike(term) for column in SEARCH_COLUMNS)))
    if department_id is not None:
        filters.append(employees.c.department_id == department_id)
    if status_filter is not None:
        filters.append(employees.c.status == status_filter)

    column = SORTABLE_COLUMNS.get(sort_by, SORTABLE_COLUMNS[DEFAULT_SORT])
    if sort_order.lower() == "asc":
        ordering = (column.asc(), employees.c.id.asc())
    else:
        ordering = (column.desc(), employees.c.id.desc())

    rows = db.query(
        employee_select()
        .where(*filters)
        .order_by(*ordering)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    total = db.query(count_of(employees_with_department, *filters))[0]["count"]

    return ApiResponse(
        success=True,
        data=rows,
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get(
    "/{employee_id}",
    response_model=ApiResponse[EmployeeResponse],
    response_model_exclude_unset=True,
    summary="Get Employee",
)
def get_employee(employee_id: str, db: Database = Depends(get_database)):
    employee = _get_or_404(db, parse_id(employee_id, "employee"))
    return ApiResponse(success=True, data=employee)


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[EmployeeResponse],
    response_model_exclude_unset=True,
    summary="Create Employee",
)
def create_employee(payload: Any = Depends(read_payload), db: Database = Depends(get_database)):
    data = validate_employee(payload).unwrap()

    _ensure_unique(db, data)
    _ensure_department_exists(db, data.get("department_id"))

    result = db.execute(insert(employees).values(**data))
    employee = fetch_employee(db, result.last_insert_id)
    logger.info("Created employee %s (id=%s)", data["employee_id"], result.last_insert_id)

    return ApiResponse(success=True, data=employee, message="Employee created successfully")


@router.put(
    "/{employee_id}",
    response_model=ApiResponse[EmployeeResponse],
    response_model_exclude_unset=True,
    summary="Update Employee",
    description="Update an existing employee. Only provided fields are changed.",
)
def update_employee(
    employee_id: str,
    payload: Any = Depends(read_payload),
    db: Database = Depends(get_database),
):
    pk = parse_id(employee_id, "employee")
    data = validate_employee(payload, partial=True).unwrap()

    _get_or_404(db, pk)
    _ensure_unique(db, data, exclude_id=pk)
    _ensure_department_exists(db, data.get("department_id"))

    db.execute(update(employees).where(employees.c.id == pk).values(**data))
    logger.info("Updated employee id=%s fields=%s", pk, sorted(data))

    return ApiResponse(
        success=True,
        data=fetch_employee(db, pk),
        message="Employee updated successfully",
    )


@router.delete(
    "",
    response_model=ApiResponse[BulkDeleteResult],
    response_model_exclude_unset=True,
    summary="Delete Employees",
    description='Delete several employees at once. Body: {"ids": [1, 2, 3]}.',
)
def bulk_delete_employees(payload: Any = Depends(read_payload), db: Database = Depends(get_database)):
    raw_ids = payload.get("ids") if isinstance(payload, dict) else None
    if not isinstance(raw_ids, list):
        raise ValidationFailed(
            [FieldError(field="ids", message="Must be a list of employee IDs")],
            message="Employee IDs array is required",
        )

    ids = parse_ids(raw_ids)
    if not ids:
        raise ValidationFailed(
            [FieldError(field="ids", message="No positive integer IDs found")],
            message="No valid employee IDs provided",
        )

    result = db.execute(delete(employees).where(employees.c.id.in_(ids)))
    logger.info("Bulk deleted %d employee(s) of %d requested", result.rowcount, len(ids))

    return ApiResponse(
        success=True,
        data=BulkDeleteResult(deletedCount=result.rowcount),
        message=f"{result.rowcount} employee(s) deleted successfully",
    )


@router.delete(
    "/{employee_id}",
    response_model=ApiResponse[Any],
    response_model_exclude_unset=True,
    summary="Delete Employee",
)
def delete_employee(employee_id: str, db: Database = Depends(get_database)):
    pk = parse_id(employee_id, "employee")
    _get_or_404(db, pk)

    db.execute(delete(employees).where(employees.c.id == pk))
    logger.info("Deleted employee id=%s", pk)

    return ApiResponse(success=True, message="Employee deleted successfully")
