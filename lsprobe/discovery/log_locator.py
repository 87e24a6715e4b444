"""Locate the newest language server log under the IDE's data directories."""

import os
import sys
from pathlib import Path
from typing import Iterable, Optional

from ..utils.logging import get_logger

logger = get_logger("discovery.log_locator")

DEFAULT_LOG_FILENAME = "Antigravity.log"
DEFAULT_APP_DIR = "Antigravity"
DEFAULT_MAX_DEPTH = 6


def _data_and_config_dirs() -> list[Path]:
    """OS-conventional per-user data and config directories, data first."""
    home = Path.home()
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        roaming = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return [roaming, roaming]
    if sys.platform == "darwin":
        support = home / "Library" / "Application Support"
        return [support, support]
    data = os.environ.get("XDG_DATA_HOME") or str(home / ".local" / "share")
    config = os.environ.get("XDG_CONFIG_HOME") or str(home / ".config")
    return [Path(data), Path(config)]


def candidate_log_roots(app_dir_name: str = DEFAULT_APP_DIR) -> list[Path]:
    """Directories that may hold the IDE's rotating logs, without duplicates."""
    roots: list[Path] = []
    for base in _data_and_config_dirs():
        root = base / app_dir_name / "logs"
        if root not in roots:
            roots.append(root)
    return roots


def _skip_unreadable(error: OSError) -> None:
    logger.debug("log_dir_skipped", path=error.filename, error=error.strerror)


def _walk_matches(root: Path, filename: str, max_depth: int) -> Iterable[Path]:
    """Yield files named ``filename`` at most ``max_depth`` levels below ``root``.

    Unreadable directories are skipped and the walk carries on with their
    siblings. Entries are visited in sorted order.
    """
    root_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root, onerror=_skip_unreadable):
        depth = len(Path(dirpath).parts) - root_depth
        dirnames.sort()
        if depth + 1 >= max_depth:
            # Files in these children would sit deeper than max_depth
            dirnames[:] = []
        if depth + 1 > max_depth:
            continue
        if filename in filenames:
            path = Path(dirpath) / filename
            if path.is_file():
                yield path


def find_latest_log(
    roots: Optional[Iterable[Path]] = None,
    filename: str = DEFAULT_LOG_FILENAME,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[Path]:
    """Return the ``filename`` with the latest modification time, or None.

    Only a strictly newer file replaces the current best, so among equal
    timestamps the first one found wins.
    """
    if roots is None:
        roots = candidate_log_roots()

    newest: Optional[tuple[Path, float]] = None
    for root in roots:
        root = Path(root)
        if not root.is_dir():
            continue
        for path in _walk_matches(root, filename, max_depth):
            try:
                modified = path.stat().st_mtime
            except OSError:
                continue
            if newest is None or modified > newest[1]:
                newest = (path, modified)

    if newest is None:
        logger.debug("log_not_located", filename=filename)
        return None
    logger.debug("log_located", path=str(newest[0]))
    return newest[0]
