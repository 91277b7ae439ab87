"""
Shared utility helpers for filesystem traversal and timing.
"""

from .filesystem import (
    DEFAULT_DIRECTORY_MODE,
    clean_directory,
    collect_files,
    ensure_directory,
    mirror_path,
    write_bytes_file,
)
from .time import format_duration, utc_now

__all__ = [
    "DEFAULT_DIRECTORY_MODE",
    "clean_directory",
    "collect_files",
    "ensure_directory",
    "mirror_path",
    "write_bytes_file",
    "format_duration",
    "utc_now",
]
