"""
Build pipeline orchestration.
"""

from .errors import BuildError, BuildErrorKind
from .executor import (
    BuildReport,
    ProcessedPage,
    clean_output,
    execute_build,
    plan_build,
    process_pages,
)

__all__ = [
    "BuildError",
    "BuildErrorKind",
    "BuildReport",
    "ProcessedPage",
    "clean_output",
    "execute_build",
    "plan_build",
    "process_pages",
]
