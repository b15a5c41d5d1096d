"""Reusable SQLAlchemy Core selects over the employee and department tables."""

from sqlalchemy import func, select

from payroll_api.models import Department, Employee

employees = Employee.__table__
departments = Department.__table__

employees_with_department = employees.outerjoin(
    departments, employees.c.department_id == departments.c.id
)


def employee_select():
    """Employee columns plus the joined ``department_name``."""
    return select(employees, departments.c.name.label("department_name")).select_from(
        employees_with_department
    )


def department_select():
    """Department columns plus the number of employees assigned to each."""
    return (
        select(departments, func.count(employees.c.id).label("employee_count"))
        .select_from(
            departments.outerjoin(employees, employees.c.department_id == departments.c.id)
        )
        .group_by(*departments.c)
    )


def count_of(table, *criteria):
    return select(func.count().label("count")).select_from(table).where(*criteria)
