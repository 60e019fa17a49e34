"""
Path confinement for tool execution.

Every path a tool receives is interpreted relative to the project root.
Anything that resolves outside the root (absolute paths elsewhere, ``..``
segments, symlinks pointing out) is rejected.
"""

from __future__ import annotations

import pathlib as _pathlib


class PathValidationError(Exception):
    """Raised when a path resolves outside the project root."""

    def __init__(self, path: str, root: _pathlib.Path) -> None:
        super().__init__(f"Path '{path}' is outside the project root {root}")
        self.path = path
        self.root = root


def is_path_in_directory(path: _pathlib.Path, directory: _pathlib.Path) -> bool:
    """
    Check if a resolved path is inside (or equal to) a directory.

    Args:
        path: Absolute, resolved path
        directory: Absolute, resolved directory

    Returns:
        True if path is directory or a descendant of it
    """
    return path == directory or directory in path.parents


def resolve_in_root(path: str, root: _pathlib.Path) -> _pathlib.Path:
    """
    Resolve a tool-supplied path against the project root.

    Args:
        path: Path string, normally relative to the root
        root: Project root directory

    Returns:
        Resolved absolute path inside the root

    Raises:
        PathValidationError: If the path escapes the root
    """
    resolved_root = root.resolve()
    candidate = _pathlib.Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = resolved_root / candidate

    # resolve() follows symlinks, so a link pointing outside is caught too
    resolved = candidate.resolve()
    if not is_path_in_directory(resolved, resolved_root):
        raise PathValidationError(path, resolved_root)
    return resolved
