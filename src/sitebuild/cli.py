"""
Command line interface for the sitebuild static-site pipeline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import BuildConfig, ConfigError, get_environment_overrides, resolve_config
from .pipeline import BuildError, BuildReport, clean_output, execute_build, plan_build
from .render import default_registry, load_entry_point_handlers

console = Console()
app = typer.Typer(help="Build the static site: clean the output directory and mirror input pages into it.")
logger = logging.getLogger(__name__)

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]

EXIT_CONFIG_ERROR = 1
EXIT_BUILD_ERROR = 2


def _normalize_level(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    level_str = value.upper()
    if level_str not in {lvl.upper() for lvl in LOG_LEVELS}:
        return None
    return level_str


def _configure_logging(level_name: Optional[str]) -> None:
    env_override = get_environment_overrides().log_level
    level_str = _normalize_level(env_override) or _normalize_level(level_name) or "INFO"
    logging.basicConfig(
        level=getattr(logging, level_str, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.debug("Logging configured at %s", level_str)


def _apply_config_log_level(ctx: typer.Context, config: BuildConfig) -> None:
    """Honour `log_level` from the config file when neither the CLI nor the environment set one."""
    state = ctx.obj or {}
    if state.get("log_level") or get_environment_overrides().log_level:
        return
    level_str = _normalize_level(config.log_level)
    if level_str:
        logging.getLogger().setLevel(getattr(logging, level_str))


def _fail(ctx: typer.Context, message: str, exc: Exception, code: int) -> NoReturn:
    """Report a failure at the top level and exit; must be called from an except block."""
    console.print(f"[bold red]{message}[/] {escape(str(exc))}")
    if (ctx.obj or {}).get("debug"):
        console.print_exception(show_locals=True, max_frames=2)
    raise typer.Exit(code=code) from exc


def _load_config_or_exit(
    ctx: typer.Context,
    config_path: Optional[Path],
    root: Optional[Path],
    input_dir: Optional[Path],
    output_dir: Optional[Path],
) -> BuildConfig:
    overrides: Dict[str, Any] = get_environment_overrides().as_updates()
    overrides.pop("log_level", None)
    if input_dir is not None:
        overrides["input_dir"] = input_dir
    if output_dir is not None:
        overrides["output_dir"] = output_dir
    try:
        config = resolve_config(config_path, root=root, overrides=overrides)
    except ConfigError as exc:
        _fail(ctx, "Configuration error:", exc, EXIT_CONFIG_ERROR)
    _apply_config_log_level(ctx, config)
    return config


def _load_handlers_or_exit(ctx: typer.Context) -> None:
    try:
        loaded = load_entry_point_handlers()
    except Exception as exc:
        _fail(ctx, "Unable to load page handlers:", exc, EXIT_CONFIG_ERROR)
    if loaded:
        logger.info("Loaded page handlers for: %s", ", ".join(f".{ext}" for ext in loaded))


def _print_build_report(report: BuildReport) -> None:
    table = Table(title="Build Summary")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in report.summary_rows():
        table.add_row(key, value)
    console.print(table)


def _print_plan(config: BuildConfig) -> None:
    pairs = plan_build(config)
    if not pairs:
        console.print(f"[yellow]No pages found under {config.pages_root}.[/]")
        return
    table = Table(title=f"Build Plan ({len(pairs)} page(s))")
    table.add_column("Source", overflow="fold")
    table.add_column("Target", overflow="fold")
    for source, target in pairs:
        table.add_row(str(source.relative_to(config.pages_root)), str(target))
    console.print(table)


def _run_build(
    ctx: typer.Context,
    *,
    config_path: Optional[Path] = None,
    root: Optional[Path] = None,
    input_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> None:
    build_config = _load_config_or_exit(ctx, config_path, root, input_dir, output_dir)
    _load_handlers_or_exit(ctx)

    if dry_run:
        _print_plan(build_config)
        console.print("[bold blue]Dry run complete.[/] No filesystem changes made.")
        return

    try:
        report = execute_build(build_config)
    except BuildError as exc:
        _fail(ctx, "Build failed:", exc, EXIT_BUILD_ERROR)
    except Exception as exc:
        logger.debug("Unexpected failure while building", exc_info=True)
        _fail(ctx, "Build failed:", exc, EXIT_BUILD_ERROR)
    _print_build_report(report)
    console.print("[bold green]Build complete.[/]")


CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to a sitebuild.toml file (default: <root>/sitebuild.toml when present).",
    exists=True,
    dir_okay=False,
    resolve_path=True,
)
ROOT_OPTION = typer.Option(
    None,
    "--root",
    "-r",
    help="Project root holding input/ and output/ (default: current directory).",
    file_okay=False,
)
INPUT_OPTION = typer.Option(None, "--input", "-i", help="Input directory (overrides config and environment).")
OUTPUT_OPTION = typer.Option(None, "--output", "-o", help="Output directory (overrides config and environment).")


@app.callback(invoke_without_command=True)
def _root_command(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show sitebuild version and exit.",
        is_flag=True,
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (critical, error, warning, info, debug).",
        case_sensitive=False,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Print a traceback with local values when the build fails.",
    ),
) -> None:
    """
    Default command when no subcommand is selected: build the current project.
    """
    _configure_logging(log_level)
    ctx.obj = {"log_level": log_level, "debug": debug}

    if version:
        console.print(f"[bold green]sitebuild[/] {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        _run_build(ctx)


@app.command()
def build(
    ctx: typer.Context,
    config: Optional[Path] = CONFIG_OPTION,
    root: Optional[Path] = ROOT_OPTION,
    input_dir: Optional[Path] = INPUT_OPTION,
    output_dir: Optional[Path] = OUTPUT_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List the pages that would be written without touching the filesystem.",
    ),
) -> None:
    """
    Clean the output directory and regenerate it from the pages tree.
    """
    _run_build(
        ctx,
        config_path=config,
        root=root,
        input_dir=input_dir,
        output_dir=output_dir,
        dry_run=dry_run,
    )


@app.command()
def clean(
    ctx: typer.Context,
    config: Optional[Path] = CONFIG_OPTION,
    root: Optional[Path] = ROOT_OPTION,
    output_dir: Optional[Path] = OUTPUT_OPTION,
) -> None:
    """
    Delete everything in the output directory except hidden files.
    """
    build_config = _load_config_or_exit(ctx, config, root, None, output_dir)
    try:
        removed = clean_output(build_config)
    except BuildError as exc:
        _fail(ctx, "Clean failed:", exc, EXIT_BUILD_ERROR)
    except Exception as exc:
        logger.debug("Unexpected failure while cleaning", exc_info=True)
        _fail(ctx, "Clean failed:", exc, EXIT_BUILD_ERROR)
    console.print(f"[bold green]Removed {removed} entr{'y' if removed == 1 else 'ies'}[/] from {build_config.output_root}")


@app.command()
def processors(ctx: typer.Context) -> None:
    """
    List the file extensions that have a registered page handler.

    Shows handlers published by installed packages under the
    `sitebuild.processors` entry-point group.
    """
    _load_handlers_or_exit(ctx)
    if not len(default_registry):
        console.print("[yellow]No page handlers registered; every page is copied verbatim.[/]")
        return
    table = Table(title="Page Handlers")
    table.add_column("Extension")
    table.add_column("Handler")
    for extension, handler in default_registry:
        table.add_row(f".{extension}", getattr(handler, "__name__", repr(handler)))
    console.print(table)


def main() -> None:
    """
    Entry-point used by the console script defined in pyproject.toml.
    """
    app()
