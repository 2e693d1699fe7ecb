# api/salaries.py
"""Salary read-only endpoints backed by the emp_salaries view."""

from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.database import get_db
from api.schemas import EmpSalaryListResponse
from db.models import EmpSalary

router = APIRouter(prefix="/salaries", tags=["Salaries"])


@router.get("", response_model=EmpSalaryListResponse)
def list_salaries(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    emp_no: Optional[int] = Query(None, description="Filter by employee"),
    dept_no: Optional[str] = Query(None, description="Filter by department at period start"),
    title: Optional[str] = Query(None, description="Filter by title at period start"),
    date_from: Optional[date] = Query(None, description="Filter by from_date >= date_from"),
    date_to: Optional[date] = Query(None, description="Filter by from_date <= date_to"),
    db: Session = Depends(get_db)
):
    """
    List salary periods with pagination and filtering.

    - **page**: Page number (default: 1)
    - **page_size**: Items per page (default: 20, max: 100)
    - **emp_no**: Filter by specific employee
    - **dept_no**: Filter by department in effect at the period start
    - **title**: Filter by title in effect at the period start
    - **date_from**: Filter periods starting on or after this date
    - **date_to**: Filter periods starting on or before this date
    """
    query = db.query(EmpSalary)

    if emp_no is not None:
        query = query.filter(EmpSalary.emp_no == emp_no)
    if dept_no is not None:
        query = query.filter(EmpSalary.dept_no == dept_no)
    if title is not None:
        query = query.filter(EmpSalary.title == title)
    if date_from is not None:
        query = query.filter(EmpSalary.from_date >= date_from)
    if date_to is not None:
        query = query.filter(EmpSalary.from_date <= date_to)

    # Most recent first
    query = query.order_by(EmpSalary.from_date.desc(), EmpSalary.emp_no)
    total = query.count()

    offset = (page - 1) * page_size
    salaries = query.offset(offset).limit(page_size).all()

    return EmpSalaryListResponse(
        total=total,
        page=page,
        page_size=page_size,
        salaries=salaries
    )
