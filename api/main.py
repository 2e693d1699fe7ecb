# api/main.py
"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.employees import router as employees_router
from api.salaries import router as salaries_router
from emp_pipeline import __version__

app = FastAPI(
    title="Employee Records API",
    description="""
Read-only REST API over the reconciled employee views.

## Features

### Employees (emp_details)
- One row per employee with department and title at hire and at the end of the record
- Filter by current department or title, or search by name or emp_no
- Pagination support

### Salaries (emp_salaries)
- Salary periods with the department and title in effect at each period start
- Filter by employee, department, title or date range
- Nested endpoint for an employee's salary history
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(employees_router)
app.include_router(salaries_router)


@app.get("/", tags=["Health"])
def root():
    """API health check endpoint."""
    return {
        "status": "healthy",
        "message": "Employee Records API is running",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "version": __version__,
        "endpoints": {
            "employees": "/employees",
            "salaries": "/salaries",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }
