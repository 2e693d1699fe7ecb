# api/employees.py
"""Employee read-only endpoints backed by the emp_details view."""

from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.database import get_db
from api.schemas import (
    EmpDetailResponse,
    EmpDetailListResponse,
    EmpSalaryListResponse,
)
from db.models import EmpDetail, EmpSalary

router = APIRouter(prefix="/employees", tags=["Employees"])


@router.get("", response_model=EmpDetailListResponse)
def list_employees(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    dept_no_end: Optional[str] = Query(None, description="Filter by current department"),
    title_end: Optional[str] = Query(None, description="Filter by current title"),
    search: Optional[str] = Query(None, description="Search by name or emp_no"),
    db: Session = Depends(get_db)
):
    """
    List employees with pagination and filtering.

    - **page**: Page number (default: 1)
    - **page_size**: Items per page (default: 20, max: 100)
    - **dept_no_end**: Filter by department at the end of the record
    - **title_end**: Filter by title at the end of the record
    - **search**: Search in first_name, last_name, or an exact emp_no
    """
    query = db.query(EmpDetail)

    if dept_no_end is not None:
        query = query.filter(EmpDetail.dept_no_end == dept_no_end)
    if title_end is not None:
        query = query.filter(EmpDetail.title_end == title_end)
    if search:
        search_pattern = f"%{search}%"
        condition = (EmpDetail.first_name.ilike(search_pattern)) | (EmpDetail.last_name.ilike(search_pattern))
        if search.isdigit():
            condition = condition | (EmpDetail.emp_no == int(search))
        query = query.filter(condition)

    query = query.order_by(EmpDetail.emp_no)
    total = query.count()

    offset = (page - 1) * page_size
    employees = query.offset(offset).limit(page_size).all()

    return EmpDetailListResponse(
        total=total,
        page=page,
        page_size=page_size,
        employees=employees
    )


@router.get("/{emp_no}", response_model=EmpDetailResponse)
def get_employee(emp_no: int, db: Session = Depends(get_db)):
    """
    Get one employee's summary row.

    - **emp_no**: Employee number
    """
    employee = db.query(EmpDetail).filter(EmpDetail.emp_no == emp_no).first()
    if not employee:
        raise HTTPException(status_code=404, detail=f"Employee {emp_no} not found")
    return employee


@router.get("/{emp_no}/salaries", response_model=EmpSalaryListResponse)
def get_employee_salaries(
    emp_no: int,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    date_from: Optional[date] = Query(None, description="Filter by from_date >= date_from"),
    date_to: Optional[date] = Query(None, description="Filter by from_date <= date_to"),
    db: Session = Depends(get_db)
):
    """
    Get the salary history of one employee, oldest period first.

    - **emp_no**: Employee number
    - **date_from**: Filter periods starting on or after this date
    - **date_to**: Filter periods starting on or before this date
    """
    employee = db.query(EmpDetail).filter(EmpDetail.emp_no == emp_no).first()
    if not employee:
        raise HTTPException(status_code=404, detail=f"Employee {emp_no} not found")

    query = db.query(EmpSalary).filter(EmpSalary.emp_no == emp_no)
    if date_from is not None:
        query = query.filter(EmpSalary.from_date >= date_from)
    if date_to is not None:
        query = query.filter(EmpSalary.from_date <= date_to)

    query = query.order_by(EmpSalary.from_date)
    total = query.count()

    offset = (page - 1) * page_size
    salaries = query.offset(offset).limit(page_size).all()

    return EmpSalaryListResponse(
        total=total,
        page=page,
        page_size=page_size,
        salaries=salaries
    )
