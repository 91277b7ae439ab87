"""
Pydantic models for loading and validating build configuration files.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..util.filesystem import DEFAULT_DIRECTORY_MODE

CONFIG_FILENAME = "sitebuild.toml"


class ConfigError(RuntimeError):
    """Raised when configuration files cannot be loaded or validated."""


class BuildConfig(BaseModel):
    """
    Top-level configuration for a site build.

    Attributes:
        root: Project root; relative directories below resolve against it.
        input_dir: Source tree holding the pages and content subdirectories.
        output_dir: Directory that is cleaned and regenerated on every build.
        pages_subdir: Name of the input subtree mirrored into the output.
        content_subdir: Name of the reserved content subtree (not read yet).
        directory_mode: Permission bits for directories created in the output.
        log_level: Optional default logging level for the CLI.
    """
    root: Path = Field(default_factory=Path.cwd)
    input_dir: Path = Path("input")
    output_dir: Path = Path("output")
    pages_subdir: str = "pages"
    content_subdir: str = "content"
    directory_mode: int = DEFAULT_DIRECTORY_MODE
    log_level: Optional[str] = None

    model_config = {
        "extra": "forbid",
    }

    @field_validator("directory_mode", mode="before")
    @classmethod
    def _parse_directory_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().lower()
            if text.startswith("0o"):
                text = text[2:]
            try:
                return int(text, 8)
            except ValueError as exc:
                raise ValueError(f"directory_mode must be an octal string, got {value!r}") from exc
        return value

    @field_validator("directory_mode")
    @classmethod
    def _check_directory_mode(cls, value: int) -> int:
        if not 0 <= value <= 0o777:
            raise ValueError(f"directory_mode must be between 0o000 and 0o777, got {oct(value)}")
        return value

    @field_validator("pages_subdir", "content_subdir")
    @classmethod
    def _check_subdir(cls, value: str) -> str:
        cleaned = value.strip().strip("/\\")
        if not cleaned or cleaned in {".", ".."}:
            raise ValueError(f"subdirectory name must not be empty, got {value!r}")
        return cleaned

    @model_validator(mode="after")
    def _check_roots_do_not_overlap(self) -> "BuildConfig":
        input_root = self.input_root
        output_root = self.output_root
        if output_root == input_root or _is_within(input_root, output_root):
            raise ValueError(
                f"output_dir {output_root} must not contain input_dir {input_root}; cleaning it would delete the sources"
            )
        if _is_within(output_root, self.pages_root):
            raise ValueError(f"output_dir {output_root} must not live inside the pages directory {self.pages_root}")
        return self

    @property
    def input_root(self) -> Path:
        return _resolve_against(self.root, self.input_dir)

    @property
    def output_root(self) -> Path:
        return _resolve_against(self.root, self.output_dir)

    @property
    def pages_root(self) -> Path:
        return self.input_root / self.pages_subdir

    @property
    def content_root(self) -> Path:
        return self.input_root / self.content_subdir


def _resolve_against(root: Path, value: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = Path(root).expanduser() / path
    return path.resolve()


def _is_within(path: Path, base: Path) -> bool:
    try:
        path.relative_to(base)
    except ValueError:
        return False
    return True


def load_config(path: Path | str) -> BuildConfig:
    """
    Load and validate a TOML config file into a BuildConfig instance.

    The project root defaults to the directory holding the file; a relative
    ``root`` key is resolved against that directory.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("rb") as handle:
            raw_data: Dict[str, Any] = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in configuration file: {exc}") from exc

    raw_data["root"] = _resolve_against(config_path.parent, Path(raw_data.get("root", ".")))
    return _validate(raw_data)


def resolve_config(
    config_path: Optional[Path] = None,
    *,
    root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> BuildConfig:
    """
    Build the effective configuration for a run.

    Uses ``config_path`` when given, otherwise ``<root>/sitebuild.toml`` if it
    exists, otherwise defaults rooted at ``root`` (or the working directory).
    Non-None ``overrides`` are applied on top and the result re-validated.
    """
    project_root = Path(root).expanduser().resolve() if root else Path.cwd()
    if config_path is not None:
        config = load_config(config_path)
    elif (project_root / CONFIG_FILENAME).is_file():
        config = load_config(project_root / CONFIG_FILENAME)
    else:
        config = _validate({"root": project_root})

    updates = {key: value for key, value in (overrides or {}).items() if value is not None}
    if not updates:
        return config
    return _validate({**config.model_dump(), **updates})


def _validate(data: Dict[str, Any]) -> BuildConfig:
    try:
        return BuildConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
