"""Payload validation for employees and departments.

Validators never touch the store. They return a ValidationResult holding
either the normalized payload or a list of field-level errors, so routers can
reject bad input before any query runs.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from payroll_api.errors import ValidationFailed
from payroll_api.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    FieldError,
    MAX_ID,
)

# Columns that may be omitted on update but never set to null
EMPLOYEE_NOT_NULL = {"employee_id", "first_name", "last_name", "email", "position", "salary",
                     "hire_date", "status"}
DEPARTMENT_NOT_NULL = {"name"}


@dataclass
class ValidationResult:
    data: Optional[dict] = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> dict:
        """Return the normalized payload or raise ValidationFailed."""
        if self.errors:
            raise ValidationFailed(self.errors)
        return self.data


def field_errors(raw_errors: Iterable[Mapping[str, Any]]) -> list[FieldError]:
    """Flatten pydantic error dicts into FieldError entries."""
    errors = []
    for error in raw_errors:
        location = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append(FieldError(field=location or "body", message=message))
    return errors


def _validate(
    payload: Any,
    model: type[BaseModel],
    partial: bool,
    not_null: Iterable[str],
) -> ValidationResult:
    if not isinstance(payload, Mapping):
        return ValidationResult(errors=[FieldError(field="body", message="Request body must be an object")])

    try:
        parsed = model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        return ValidationResult(errors=field_errors(exc.errors()))

    if not partial:
        return ValidationResult(data=parsed.model_dump())

    data = parsed.model_dump(exclude_unset=True)
    errors = [
        FieldError(field=name, message="Field cannot be null")
        for name in sorted(not_null)
        if name in data and data[name] is None
    ]
    if errors:
        return ValidationResult(errors=errors)
    if not data:
        return ValidationResult(errors=[FieldError(field="body", message="No fields to update")])
    return ValidationResult(data=data)


def validate_employee(payload: Any, partial: bool = False) -> ValidationResult:
    model = EmployeeUpdate if partial else EmployeeCreate
    return _validate(payload, model, partial, EMPLOYEE_NOT_NULL)


def validate_department(payload: Any, partial: bool = False) -> ValidationResult:
    model = DepartmentUpdate if partial else DepartmentCreate
    return _validate(payload, model, partial, DEPARTMENT_NOT_NULL)


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        number = int(value.strip())
    else:
        return None
    return number if 0 < number <= MAX_ID else None


def parse_id(raw: Any, entity: str = "record") -> int:
    """Validate a path identifier; raises ValidationFailed unless it is a positive INT."""
    number = _positive_int(raw)
    if number is None:
        raise ValidationFailed(
            [FieldError(field="id", message="Must be a positive integer")],
            message=f"Invalid {entity} ID",
        )
    return number


def parse_ids(values: Iterable[Any]) -> list[int]:
    """Keep the distinct positive INT values of a bulk id list, in order."""
    ids = []
    for value in values:
        number = _positive_int(value)
        if number is not None and number not in ids:
            ids.append(number)
    return ids
