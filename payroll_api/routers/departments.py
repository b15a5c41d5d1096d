"""Department endpoints."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, insert, select, update

from payroll_api.database import Database, get_database
from payroll_api.errors import ConflictError, NotFoundError
from payroll_api.queries import count_of, department_select, departments, employees
from payroll_api.routers.payload import read_payload
from payroll_api.schemas import ApiResponse, DepartmentResponse
from payroll_api.validators import parse_id, validate_department

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/departments", tags=["Departments"])


def fetch_department(db: Database, department_id: int) -> Optional[dict]:
    rows = db.query(department_select().where(departments.c.id == department_id))
    return rows[0] if rows else None


def _get_or_404(db: Database, department_id: int) -> dict:
    department = fetch_department(db, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def _ensure_name_available(db: Database, name: Optional[str], exclude_id: Optional[int] = None) -> None:
    if name is None:
        return
    stmt = select(departments.c.id).where(departments.c.name == name)
    if exclude_id is not None:
        stmt = stmt.where(departments.c.id != exclude_id)
    if db.query(stmt.limit(1)):
        raise ConflictError("Department already exists")


@router.get(
    "",
    response_model=ApiResponse[list[DepartmentResponse]],
    response_model_exclude_unset=True,
    summary="List Departments",
    description="Get all departments with their employee count.",
)
def list_departments(
    search: Optional[str] = Query(None, description="Filter by department name"),
    db: Database = Depends(get_database),
):
    stmt = department_select().order_by(departments.c.name)
    if search and search.strip():
        stmt = stmt.where(departments.c.name.ilike(f"%{search.strip()}%"))
    return ApiResponse(success=True, data=db.query(stmt))


@router.get(
    "/{department_id}",
    response_model=ApiResponse[DepartmentResponse],
    response_model_exclude_unset=True,
    summary="Get Department",
)
def get_department(department_id: str, db: Database = Depends(get_database)):
    department = _get_or_404(db, parse_id(department_id, "department"))
    return ApiResponse(success=True, data=department)


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[DepartmentResponse],
    response_model_exclude_unset=True,
    summary="Create Department",
)
def create_department(payload: Any = Depends(read_payload), db: Database = Depends(get_database)):
    data = validate_department(payload).unwrap()
    _ensure_name_available(db, data["name"])

    result = db.execute(insert(departments).values(**data))
    logger.info("Created department %r (id=%s)", data["name"], result.last_insert_id)

    return ApiResponse(
        success=True,
        data=fetch_department(db, result.last_insert_id),
        message="Department created successfully",
    )


@router.put(
    "/{department_id}",
    response_model=ApiResponse[DepartmentResponse],
    response_model_exclude_unset=True,
    summary="Update Department",
)
def update_department(
    department_id: str,
    payload: Any = Depends(read_payload),
    db: Database = Depends(get_database),
):
    pk = parse_id(department_id, "department")
    data = validate_department(payload, partial=True).unwrap()

    _get_or_404(db, pk)
    _ensure_name_available(db, data.get("name"), exclude_id=pk)

    db.execute(update(departments).where(departments.c.id == pk).values(**data))
    logger.info("Updated department id=%s", pk)

    return ApiResponse(
        success=True,
        data=fetch_department(db, pk),
        message="Department updated successfully",
    )


@router.delete(
    "/{department_id}",
    response_model=ApiResponse[Any],
    response_model_exclude_unset=True,
    summary="Delete Department",
    description="Delete a department. Refused while employees are still assigned to it.",
)
def delete_department(department_id: str, db: Database = Depends(get_database)):
    pk = parse_id(department_id, "department")
    _get_or_404(db, pk)

    assigned = db.query(count_of(employees, employees.c.department_id == pk))[0]["count"]
    if assigned > 0:
        raise ConflictError("Cannot delete department that is assigned to employees")

    db.execute(delete(departments).where(departments.c.id == pk))
    logger.info("Deleted department id=%s", pk)

    return ApiResponse(success=True, message="Department deleted successfully")
