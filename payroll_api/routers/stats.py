"""Aggregate statistics endpoint."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select

from payroll_api.database import Database, get_database
from payroll_api.errors import ApiError, StoreError
from payroll_api.queries import count_of, departments, employee_select, employees
from payroll_api.schemas import ApiResponse, StatsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Stats"])

RECENT_EMPLOYEES = 5


def round_half_up(value) -> int:
    if value is None:
        return 0
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def collect_stats(db: Database) -> StatsResponse:
    active = employees.c.status == "active"
    employee_count = func.count(employees.c.id).label("count")

    total = db.query(count_of(employees))[0]["count"]
    active_total = db.query(count_of(employees, active))[0]["count"]
    average = db.query(select(func.avg(employees.c.salary).label("average")).where(active))[0]["average"]
    breakdown = db.query(
        select(departments.c.name.label("department"), employee_count)
        .select_from(departments.outerjoin(employees, employees.c.department_id == departments.c.id))
        .group_by(departments.c.id, departments.c.name)
        .order_by(employee_count.desc(), departments.c.name)
    )
    recent = db.query(
        employee_select()
        .order_by(employees.c.created_at.desc(), employees.c.id.desc())
        .limit(RECENT_EMPLOYEES)
    )

    return StatsResponse(
        totalEmployees=total,
        activeEmployees=active_total,
        averageSalary=round_half_up(average),
        departmentBreakdown=breakdown,
        recentEmployees=recent,
    )


@router.get(
    "/stats",
    response_model=ApiResponse[StatsResponse],
    response_model_exclude_unset=True,
    summary="Statistics",
    description="Employee totals, average active salary, per-department counts and recent hires.",
)
def get_stats(db: Database = Depends(get_database)):
    try:
        stats = collect_stats(db)
    except StoreError as exc:
        logger.exception("Error fetching stats (%s)", exc.kind.value)
        raise ApiError("Failed to fetch statistics") from exc
    return ApiResponse(success=True, data=stats)
