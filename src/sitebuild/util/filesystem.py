"""
Filesystem helpers shared across pipeline modules.
"""

from __future__ import annotations

import glob
import logging
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_MODE = 0o775


def ensure_directory(path: Path | str, mode: int = DEFAULT_DIRECTORY_MODE) -> Path:
    """
    Ensure a directory exists, returning the resolved Path.

    Every missing directory in the chain is created with ``mode``
    (``Path.mkdir(parents=True)`` would ignore it for intermediate parents).
    """
    resolved = Path(path).expanduser().resolve()
    missing: List[Path] = []
    current = resolved
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent
    for directory in reversed(missing):
        directory.mkdir(mode=mode, exist_ok=True)
    return resolved


def _is_relative_to(path: Path, base: Path) -> bool:
    """Return True if path is under base."""
    try:
        path.relative_to(base)
    except ValueError:
        return False
    return True


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def clean_directory(path: Path | str, remove_self: bool = False) -> int:
    """
    Recursively delete the non-hidden contents of a directory.

    Entries whose name starts with a dot are neither deleted nor descended
    into. Symlinks are unlinked, never followed. Errors propagate as-is.

    Args:
        path: Directory to empty. Missing paths and plain files are ignored.
        remove_self: Also remove ``path`` once it is empty.

    Returns:
        Number of files and directories removed.
    """
    target = Path(path)
    if not target.is_dir():
        return 0

    removed = 0
    with os.scandir(target) as entries:
        children = list(entries)

    for entry in children:
        if is_hidden(entry.name):
            continue
        if entry.is_dir(follow_symlinks=False):
            removed += clean_directory(entry.path, remove_self=True)
            continue
        os.unlink(entry.path)
        removed += 1

    if remove_self:
        if any(True for _ in target.iterdir()):
            logger.debug("Keeping %s (hidden entries remain)", target)
        else:
            target.rmdir()
            removed += 1
    return removed


def collect_files(base: Path | str, pattern: str = "*", *, sort: bool = False) -> List[Path]:
    """
    Recursively collect files below ``base`` whose names match ``pattern``.

    Matching follows :mod:`glob` rules, so ``*`` skips hidden names. The
    pattern is applied at every depth; directories are descended into and
    never returned. Order is whatever the filesystem yields unless ``sort``.
    """
    root = Path(base)
    if not root.is_dir():
        return []

    files: List[Path] = []
    for name in glob.glob(pattern, root_dir=root):
        item = root / name
        if item.is_file():
            files.append(item)
        elif item.is_dir():
            files.extend(collect_files(item, pattern))

    if sort:
        files.sort()
    return files


def mirror_path(source: Path | str, source_root: Path | str, target_root: Path | str) -> Path:
    """
    Map ``source`` from ``source_root`` onto ``target_root``.

    Raises:
        ValueError: If ``source`` is not below ``source_root``.
    """
    source_path = Path(source)
    root = Path(source_root)
    if not _is_relative_to(source_path, root):
        raise ValueError(f"{source_path} is not inside {root}")
    return Path(target_root) / source_path.relative_to(root)


@lru_cache(maxsize=1)
def _current_umask() -> int:
    """
    Read the process umask once.

    Reading requires briefly setting it, which is not thread-safe; the result
    is cached so this happens at most once per process.
    """
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_bytes_file(path: Path | str, content: bytes) -> Path:
    """
    Write bytes atomically by staging a temp file beside the target and renaming.
    """
    target = Path(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            # mkstemp creates 0600 files; match what a plain open() would produce.
            os.fchmod(handle.fileno(), 0o666 & ~_current_umask())
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    finally:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
    return target
