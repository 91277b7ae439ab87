"""
Per-page processing keyed by file extension.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from importlib.metadata import entry_points
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from ..config import BuildConfig
from ..util import write_bytes_file

logger = logging.getLogger(__name__)

COPY_HANDLER_NAME = "copy"
ENTRY_POINT_GROUP = "sitebuild.processors"


@dataclass(frozen=True)
class PageContext:
    """
    Everything a handler may need to know about the page being written.

    Attributes:
        source: Source file inside the pages directory.
        target: Destination file inside the output directory.
        pages_root: Root of the pages tree.
        output_root: Root of the output tree.
        extension: Lowercased extension used to select the handler.
        config: Active build configuration, when known.
    """
    source: Path
    target: Path
    pages_root: Optional[Path] = None
    output_root: Optional[Path] = None
    extension: str = ""
    config: Optional[BuildConfig] = None

    @property
    def relative_path(self) -> Path:
        if self.pages_root is None:
            return Path(self.source.name)
        return self.source.relative_to(self.pages_root)


PageHandler = Callable[[bytes, PageContext], bytes]


def page_extension(path: Path | str) -> str:
    """Return the last suffix of ``path`` without the dot, lowercased (``"x.blade.php"`` -> ``"php"``)."""
    return Path(path).suffix[1:].lower()


def _normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


class ProcessorRegistry:
    """Mapping of file extensions to page handlers."""

    def __init__(self) -> None:
        self._handlers: Dict[str, PageHandler] = {}

    def register(self, extension: str, handler: Optional[PageHandler] = None):
        """
        Register ``handler`` for ``extension``.

        Can be used directly or as a decorator::

            @registry.register("md")
            def render_markdown(data, context):
                ...

        Re-registering an extension replaces the previous handler.
        """
        key = _normalize_extension(extension)
        if not key:
            raise ValueError("Cannot register a handler for an empty extension.")

        def _decorator(func: PageHandler) -> PageHandler:
            if key in self._handlers:
                logger.debug("Replacing handler for .%s", key)
            self._handlers[key] = func
            return func

        if handler is not None:
            return _decorator(handler)
        return _decorator

    def unregister(self, extension: str) -> None:
        self._handlers.pop(_normalize_extension(extension), None)

    def resolve(self, extension: str) -> Optional[PageHandler]:
        return self._handlers.get(_normalize_extension(extension))

    def extensions(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and _normalize_extension(extension) in self._handlers

    def __iter__(self) -> Iterator[tuple[str, PageHandler]]:
        return iter(sorted(self._handlers.items()))

    def __len__(self) -> int:
        return len(self._handlers)


default_registry = ProcessorRegistry()


def load_entry_point_handlers(registry: Optional[ProcessorRegistry] = None, group: str = ENTRY_POINT_GROUP) -> List[str]:
    """
    Register handlers advertised by installed packages.

    Each entry point in ``group`` is named after the extension it handles and
    points at the handler callable, e.g. in a plugin's pyproject.toml::

        [project.entry-points."sitebuild.processors"]
        md = "sitebuild_markdown:render_markdown"

    Import errors propagate to the caller.

    Returns:
        The extensions that were registered.
    """
    active = registry if registry is not None else default_registry
    loaded: List[str] = []
    for entry_point in entry_points(group=group):
        handler = entry_point.load()
        active.register(entry_point.name, handler)
        logger.debug("Registered handler %s for .%s from entry point", entry_point.value, entry_point.name)
        loaded.append(entry_point.name)
    return loaded


def _handler_name(handler: PageHandler) -> str:
    return getattr(handler, "__name__", None) or type(handler).__name__


def process_page(
    source: Path | str,
    target: Path | str,
    *,
    registry: Optional[ProcessorRegistry] = None,
    context: Optional[PageContext] = None,
) -> str:
    """
    Process one page and write the result to ``target``.

    Without a registered handler for the source extension the file is copied
    byte for byte, replacing any existing target. Otherwise the handler's
    output is written atomically.

    Returns:
        Name of the handler that produced the target (``"copy"`` for the default).
    """
    source_path = Path(source)
    target_path = Path(target)
    active = registry if registry is not None else default_registry
    extension = page_extension(source_path)
    handler = active.resolve(extension)

    if handler is None:
        shutil.copyfile(source_path, target_path)
        return COPY_HANDLER_NAME

    if context is None:
        context = PageContext(source=source_path, target=target_path, extension=extension)
    output = handler(source_path.read_bytes(), context)
    if not isinstance(output, (bytes, bytearray)):
        raise TypeError(f"Handler {_handler_name(handler)!r} returned {type(output).__name__}, expected bytes")
    write_bytes_file(target_path, output)
    return _handler_name(handler)
