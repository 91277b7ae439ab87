"""
Pipeline executor ties together cleaning, page collection, and processing.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..config import BuildConfig
from ..render import PageContext, ProcessorRegistry, page_extension, process_page
from ..util import (
    DEFAULT_DIRECTORY_MODE,
    clean_directory,
    collect_files,
    ensure_directory,
    format_duration,
    mirror_path,
    utc_now,
)
from .errors import BuildError, BuildErrorKind

logger = logging.getLogger(__name__)

DEFAULT_PAGES_SUBDIR = "pages"


@dataclass
class ProcessedPage:
    source: Path
    target: Path
    handler: str


@dataclass
class BuildReport:
    """
    Stores what happened during a build.

    Attributes:
        input_root: Resolved input directory.
        output_root: Resolved output directory.
        pages_root: Directory whose tree was mirrored.
        pages_found: False when the pages directory does not exist.
        entries_removed: Files and directories deleted while cleaning.
        pages: Every page written, in processing order.
        started_at: UTC time the build started.
        finished_at: UTC time the build finished (None while running).
    """
    input_root: Path
    output_root: Path
    pages_root: Path
    pages_found: bool = False
    entries_removed: int = 0
    pages: List[ProcessedPage] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or utc_now()
        return (end - self.started_at).total_seconds()

    def handler_counts(self) -> Counter:
        return Counter(page.handler for page in self.pages)

    def summary_rows(self) -> Iterable[tuple[str, str]]:
        yield ("Input", str(self.input_root))
        yield ("Output", str(self.output_root))
        yield ("Pages directory", str(self.pages_root) if self.pages_found else f"{self.pages_root} (missing)")
        yield ("Entries removed", str(self.entries_removed))
        yield ("Pages written", str(len(self.pages)))
        for handler, count in sorted(self.handler_counts().items()):
            yield (f"  via {handler}", str(count))
        yield ("Duration", format_duration(self.duration_seconds))


def clean_output(config: BuildConfig) -> int:
    """
    Delete the non-hidden contents of the output directory, keeping the directory.
    """
    output_root = config.output_root
    if not output_root.is_dir():
        logger.info("Output directory %s does not exist; nothing to clean.", output_root)
        return 0
    try:
        removed = clean_directory(output_root)
    except OSError as exc:
        raise BuildError(BuildErrorKind.CLEAN, f"Unable to clean output directory: {exc.strerror or exc}", Path(exc.filename or output_root)) from exc
    logger.info("Removed %d entr%s from %s", removed, "y" if removed == 1 else "ies", output_root)
    return removed


def _collect_pages(pages_dir: Path, *, sort: bool = False) -> List[Path]:
    try:
        return collect_files(pages_dir, sort=sort)
    except OSError as exc:
        raise BuildError(BuildErrorKind.COLLECT, f"Unable to read pages: {exc.strerror or exc}", Path(exc.filename or pages_dir)) from exc


def process_pages(
    input_root: Path | str,
    output_root: Path | str,
    *,
    config: Optional[BuildConfig] = None,
    registry: Optional[ProcessorRegistry] = None,
) -> Tuple[bool, List[ProcessedPage]]:
    """
    Mirror the pages tree under ``input_root`` into ``output_root``.

    Each file is routed through the page processor one at a time. Pages
    written before a failure stay on disk.

    Args:
        input_root: Directory containing the pages subdirectory.
        output_root: Directory receiving the mirrored tree.
        config: Supplies the pages subdirectory name and directory mode.
        registry: Handlers to use instead of the default registry.

    Returns:
        Whether the pages directory exists, and the pages written.

    Raises:
        BuildError: If a directory cannot be created or a page cannot be written.
    """
    pages_subdir = config.pages_subdir if config else DEFAULT_PAGES_SUBDIR
    directory_mode = config.directory_mode if config else DEFAULT_DIRECTORY_MODE
    pages_dir = Path(input_root) / pages_subdir
    output_dir = Path(output_root)

    if not pages_dir.is_dir():
        logger.info("Pages directory %s not found; nothing to do.", pages_dir)
        return False, []

    processed: List[ProcessedPage] = []
    for source in _collect_pages(pages_dir):
        target = mirror_path(source, pages_dir, output_dir)
        try:
            ensure_directory(target.parent, mode=directory_mode)
        except OSError as exc:
            raise BuildError(BuildErrorKind.PREPARE, f"Unable to create directory: {exc.strerror or exc}", target.parent) from exc

        context = PageContext(
            source=source,
            target=target,
            pages_root=pages_dir,
            output_root=output_dir,
            extension=page_extension(source),
            config=config,
        )
        try:
            handler = process_page(source, target, registry=registry, context=context)
        except OSError as exc:
            raise BuildError(BuildErrorKind.PROCESS, f"Unable to write page: {exc.strerror or exc}", source) from exc
        logger.debug("Wrote %s → %s (%s)", source, target, handler)
        processed.append(ProcessedPage(source=source, target=target, handler=handler))

    return True, processed


def plan_build(config: BuildConfig) -> List[Tuple[Path, Path]]:
    """
    List the (source, target) pairs a build would write, sorted by source.

    Nothing on disk is modified.
    """
    pages_dir = config.pages_root
    if not pages_dir.is_dir():
        return []
    return [(source, mirror_path(source, pages_dir, config.output_root)) for source in _collect_pages(pages_dir, sort=True)]


def execute_build(config: BuildConfig, *, registry: Optional[ProcessorRegistry] = None) -> BuildReport:
    """
    Run a full build: clean the output directory, then regenerate it from the pages tree.

    Args:
        config: The resolved BuildConfig.
        registry: Page handlers to use instead of the default registry.

    Returns:
        A BuildReport describing the run.
    """
    report = BuildReport(
        input_root=config.input_root,
        output_root=config.output_root,
        pages_root=config.pages_root,
    )
    logger.info("Building %s → %s", config.input_root, config.output_root)

    report.entries_removed = clean_output(config)
    try:
        ensure_directory(config.output_root, mode=config.directory_mode)
    except OSError as exc:
        raise BuildError(BuildErrorKind.PREPARE, f"Unable to create output directory: {exc.strerror or exc}", config.output_root) from exc

    report.pages_found, report.pages = process_pages(
        config.input_root,
        config.output_root,
        config=config,
        registry=registry,
    )

    if config.content_root.is_dir():
        logger.info("Content directory %s is present but not consumed by any processor.", config.content_root)

    report.finished_at = utc_now()
    logger.info(
        "Build finished: %d page(s) written in %s",
        len(report.pages),
        format_duration(report.duration_seconds),
    )
    return report
