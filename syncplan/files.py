"""
Filesystem helpers shared by the diff engine and the sync map client.

Every path that enters a Sync Map or is compared against one goes
through to_abs(), and every modification time goes through file_mod_time().
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class PathResolutionError(Exception):
    """Raised when a path cannot be resolved to an absolute path."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class StatError(Exception):
    """Raised when the modification time of a tracked file cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


def to_abs(path: str) -> str:
    """
    Resolve a path to an absolute, normalized path.

    Relative paths are resolved against the current working directory.

    Args:
        path: Absolute or relative path

    Returns:
        Absolute normalized path

    Raises:
        PathResolutionError: If the working directory cannot be determined
    """
    try:
        return os.path.abspath(os.fspath(path))
    except (OSError, TypeError) as e:
        raise PathResolutionError(f"could not resolve absolute path for {path!r}: {e}", path=path) from e


def file_mod_time(path: str) -> int:
    """
    Return the modification time of a file in nanoseconds since the epoch.

    Raises:
        StatError: If the file cannot be stat'ed
    """
    try:
        return os.stat(path).st_mtime_ns
    except OSError as e:
        raise StatError(f"could not obtain file mod time for {path}: {e}", path=path) from e
