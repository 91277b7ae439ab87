"""
Environment override loading helpers.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _load_dotenv() -> None:
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(dotenv_path=cwd_env, override=True)


_load_dotenv()


class EnvironmentOverrides(BaseModel):
    """
    Build settings taken from environment variables (or a project `.env`).

    Attributes:
        input_dir: Overrides the configured input directory.
        output_dir: Overrides the configured output directory.
        log_level: Overrides the logging level chosen on the command line.
    """
    input_dir: Optional[Path] = Field(default=None, alias="SITEBUILD_INPUT_DIR")
    output_dir: Optional[Path] = Field(default=None, alias="SITEBUILD_OUTPUT_DIR")
    log_level: Optional[str] = Field(default=None, alias="SITEBUILD_LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
    }

    def as_updates(self) -> Dict[str, Any]:
        """Return only the values that were actually set, keyed by field name."""
        return {key: value for key, value in self.model_dump().items() if value is not None}


def get_environment_overrides() -> EnvironmentOverrides:
    """
    Read overrides from the current environment.
    """
    values = {field.alias: os.getenv(field.alias) or None for field in EnvironmentOverrides.model_fields.values()}
    return EnvironmentOverrides(**values)
