"""Pydantic schemas for the read-only view endpoints."""

from datetime import date
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


# EMPLOYEE SCHEMAS

class EmpDetailResponse(BaseModel):
    """One emp_details row: an employee with hire-time and end-time facts."""
    model_config = ConfigDict(from_attributes=True)

    emp_no: int
    birth_date: Optional[date] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    hire_date: Optional[date] = None
    end_date: Optional[date] = Field(None, description="Latest salary to_date (9999-01-01 while current)")
    dept_no_hire: Optional[str] = None
    title_hire: Optional[str] = None
    dept_no_end: Optional[str] = None
    title_end: Optional[str] = None


class EmpDetailListResponse(BaseModel):
    """Paginated list of employees."""
    total: int
    page: int
    page_size: int
    employees: List[EmpDetailResponse]


# SALARY SCHEMAS

class EmpSalaryResponse(BaseModel):
    """One emp_salaries row: a salary period with the department and title at its start."""
    model_config = ConfigDict(from_attributes=True)

    emp_no: int
    salary: Optional[int] = None
    from_date: date
    to_date: Optional[date] = None
    dept_no: Optional[str] = None
    title: Optional[str] = None


class EmpSalaryListResponse(BaseModel):
    """Paginated list of salary periods."""
    total: int
    page: int
    page_size: int
    salaries: List[EmpSalaryResponse]
