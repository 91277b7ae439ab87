"""
Structured errors raised by the build pipeline.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class BuildErrorKind(str, Enum):
    CLEAN = "clean"
    COLLECT = "collect"
    PREPARE = "prepare"
    PROCESS = "process"


class BuildError(RuntimeError):
    """
    Raised when a build stage fails on the filesystem.

    Attributes:
        kind: Stage that failed.
        message: Human readable description.
        path: File or directory involved, when known.
    """

    def __init__(self, kind: BuildErrorKind, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is None:
            return f"[{self.kind.value}] {self.message}"
        return f"[{self.kind.value}] {self.message} ({self.path})"
