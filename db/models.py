# db/models.py
"""
Employee records models.

Base tables (employees, salaries, dept_emp, titles) hold the source history.
emp_details and emp_salaries are the derived views, materialized as tables
by emp_pipeline.views.refresh. correction_audit records every row rewritten
by the corrector.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# BASE TABLES

class Employee(Base):
    __tablename__ = "employees"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    birth_date = Column(Date)
    first_name = Column(String(14))
    last_name = Column(String(16))
    gender = Column(String(1))
    hire_date = Column(Date, nullable=False)

    def __repr__(self):
        return f"<Employee(emp_no={self.emp_no}, hire_date={self.hire_date})>"


class Salary(Base):
    __tablename__ = "salaries"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    salary = Column(Integer, nullable=False)
    from_date = Column(Date, primary_key=True)
    to_date = Column(Date, nullable=False)

    def __repr__(self):
        return f"<Salary(emp_no={self.emp_no}, from={self.from_date}, to={self.to_date})>"


class DeptEmp(Base):
    __tablename__ = "dept_emp"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    dept_no = Column(String(4), primary_key=True)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False)

    def __repr__(self):
        return f"<DeptEmp(emp_no={self.emp_no}, dept={self.dept_no}, from={self.from_date})>"


class Title(Base):
    __tablename__ = "titles"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String(50), primary_key=True)
    from_date = Column(Date, primary_key=True)
    to_date = Column(Date)

    def __repr__(self):
        return f"<Title(emp_no={self.emp_no}, title={self.title}, from={self.from_date})>"


# DERIVED VIEWS

class EmpDetail(Base):
    """One row per employee with hire-time and end-time facts."""

    __tablename__ = "emp_details"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    birth_date = Column(Date)
    first_name = Column(String(14))
    last_name = Column(String(16))
    gender = Column(String(1))
    hire_date = Column(Date)
    end_date = Column(Date)
    dept_no_hire = Column(String(4))
    title_hire = Column(String(50))
    dept_no_end = Column(String(4))
    title_end = Column(String(50))


class EmpSalary(Base):
    """Salary history with the department and title in effect at each period start."""

    __tablename__ = "emp_salaries"

    emp_no = Column(Integer, primary_key=True, autoincrement=False)
    from_date = Column(Date, primary_key=True)
    salary = Column(Integer)
    to_date = Column(Date)
    dept_no = Column(String(4))
    title = Column(String(50))


# AUDIT

class CorrectionAudit(Base):
    """One row per base-table row rewritten by a correction run."""

    __tablename__ = "correction_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String, nullable=False)
    rule = Column(String, nullable=False)
    table_name = Column(String, nullable=False)
    emp_no = Column(Integer, nullable=False)
    key_value = Column(Text)
    column_name = Column(String, nullable=False)
    old_value = Column(Date)
    new_value = Column(Date)
    applied_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<CorrectionAudit(run={self.run_id}, {self.table_name}.{self.column_name}, emp_no={self.emp_no})>"


BASE_TABLES = {
    "employees": Employee,
    "salaries": Salary,
    "dept_emp": DeptEmp,
    "titles": Title,
}

VIEW_TABLES = {
    "emp_details": EmpDetail,
    "emp_salaries": EmpSalary,
}
