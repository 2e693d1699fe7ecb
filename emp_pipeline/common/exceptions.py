# emp_pipeline/common/exceptions.py
"""
Custom exceptions for the reconciliation pipeline.
Detector findings are not errors; these cover load, precondition,
correction and view refresh failures.
"""

from typing import Optional, Dict, Any


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RawLoadError(PipelineError):
    """Exception raised while seeding base tables from CSV files."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, details=details, **kwargs)


class DetectionError(PipelineError):
    """Exception raised when an anomaly check cannot run (e.g. missing columns)."""

    def __init__(self, message: str, table_name: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if table_name:
            details["table_name"] = table_name
        super().__init__(message, details=details, **kwargs)


class PreconditionError(PipelineError):
    """Exception raised when a correction's precondition does not hold."""

    def __init__(
        self,
        message: str,
        check_name: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if check_name:
            details["check_name"] = check_name
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual
        super().__init__(message, details=details, **kwargs)


class CorrectionError(PipelineError):
    """Exception raised when staging or applying corrections fails."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        rule: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if table_name:
            details["table_name"] = table_name
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details, **kwargs)


class ViewRefreshError(PipelineError):
    """Exception raised while rebuilding a derived view."""

    def __init__(self, message: str, view_name: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if view_name:
            details["view_name"] = view_name
        super().__init__(message, details=details, **kwargs)
