# emp_pipeline/common/__init__.py
"""
Common utilities shared across pipeline steps.
Includes configuration, quality checks, logging, and custom exceptions.
"""

from emp_pipeline.common.config import PipelineConfig, load_config
from emp_pipeline.common.quality_checks import (
    QCResult,
    QCReport,
    check_row_count,
    check_nulls,
    check_duplicates,
    check_referential_integrity,
    check_one_row_per_key,
    validate_row_counts,
    ERROR,
    WARNING,
    INFO,
)
from emp_pipeline.common.exceptions import (
    PipelineError,
    RawLoadError,
    DetectionError,
    PreconditionError,
    CorrectionError,
    ViewRefreshError,
)
from emp_pipeline.common.logging import configure_logging, create_run_log_file, log_banner

__all__ = [
    # Config
    "PipelineConfig",
    "load_config",
    # Quality Checks
    "QCResult",
    "QCReport",
    "check_row_count",
    "check_nulls",
    "check_duplicates",
    "check_referential_integrity",
    "check_one_row_per_key",
    "validate_row_counts",
    "ERROR",
    "WARNING",
    "INFO",
    # Exceptions
    "PipelineError",
    "RawLoadError",
    "DetectionError",
    "PreconditionError",
    "CorrectionError",
    "ViewRefreshError",
    # Logging
    "configure_logging",
    "create_run_log_file",
    "log_banner",
]
