"""Pydantic models for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

T = TypeVar("T")

EmployeeStatus = Literal["active", "inactive"]

EMAIL_MAX_LENGTH = 100

# Upper bound of the INT primary and foreign key columns
MAX_ID = 2**31 - 1


def _check_email_length(value):
    if value is not None and len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


# --- Employee Models ---

class EmployeeCreate(BaseModel):
    """Schema for creating an employee."""
    model_config = ConfigDict(str_strip_whitespace=True)

    employee_id: str = Field(..., min_length=1, max_length=20, examples=["EMP006"])
    first_name: str = Field(..., min_length=1, max_length=50, examples=["Juan"])
    last_name: str = Field(..., min_length=1, max_length=50, examples=["Dela Cruz"])
    email: EmailStr = Field(..., examples=["juan.delacruz@manilapayroll.com"])
    phone: Optional[str] = Field(None, max_length=20, examples=["+63-912-345-6789"])
    department_id: Optional[int] = Field(None, ge=1, le=MAX_ID, examples=[1])
    position: str = Field(..., min_length=1, max_length=100, examples=["HR Manager"])
    salary: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, examples=[75000.00])
    hire_date: date = Field(..., examples=["2023-01-15"])
    status: EmployeeStatus = "active"

    @field_validator("email")
    @classmethod
    def email_length(cls, value: str) -> str:
        return _check_email_length(value)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return "active" if value is None else value


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee (all fields optional)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    employee_id: Optional[str] = Field(None, min_length=1, max_length=20)
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    department_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    position: Optional[str] = Field(None, min_length=1, max_length=100)
    salary: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    hire_date: Optional[date] = None
    status: Optional[EmployeeStatus] = None

    @field_validator("email")
    @classmethod
    def email_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_email_length(value)


class EmployeeResponse(BaseModel):
    """Employee row joined with its department name."""
    id: int
    employee_id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    position: Optional[str] = None
    salary: Optional[Decimal] = None
    hire_date: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# --- Department Models ---

class DepartmentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100, examples=["Engineering"])
    description: Optional[str] = Field(None, max_length=1000)


class DepartmentUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class DepartmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    employee_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# --- Stats ---

class DepartmentBreakdown(BaseModel):
    department: str
    count: int


class StatsResponse(BaseModel):
    totalEmployees: int
    activeEmployees: int
    averageSalary: int
    departmentBreakdown: list[DepartmentBreakdown]
    recentEmployees: list[EmployeeResponse]


# --- Envelope ---

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class FieldError(BaseModel):
    field: str
    message: str


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope; unset fields are left out of the JSON."""
    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    pagination: Optional[Pagination] = None
    details: Optional[list[FieldError]] = None


class BulkDeleteResult(BaseModel):
    deletedCount: int


# --- Health Check ---

class HealthResponse(BaseModel):
    """Health check response."""
    success: bool = True
    message: str
    timestamp: datetime
    version: str


class ApiInfoResponse(BaseModel):
    message: str
    version: str
    endpoints: dict[str, Any]
