"""
Page processors that turn source pages into output files.
"""

from .processors import (
    COPY_HANDLER_NAME,
    ENTRY_POINT_GROUP,
    PageContext,
    PageHandler,
    ProcessorRegistry,
    default_registry,
    load_entry_point_handlers,
    page_extension,
    process_page,
)

__all__ = [
    "COPY_HANDLER_NAME",
    "ENTRY_POINT_GROUP",
    "PageContext",
    "PageHandler",
    "ProcessorRegistry",
    "default_registry",
    "load_entry_point_handlers",
    "page_extension",
    "process_page",
]
