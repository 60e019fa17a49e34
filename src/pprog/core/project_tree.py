"""
File-tree listing for the system prompt.

Files come from ``git ls-files`` so ignored build output stays out of the
prompt. Outside a git checkout the directory is walked instead, skipping
hidden entries.
"""

from __future__ import annotations

import logging as _logging
import os as _os
import pathlib as _pathlib
import subprocess as _subprocess

_logger = _logging.getLogger(__name__)

# Nested dict: directory name -> subtree, file name -> None
Tree = dict[str, "Tree | None"]


def build_tree(paths: list[str]) -> Tree:
    """Nest slash-separated paths into a tree."""
    tree: Tree = {}
    for path in paths:
        *dirs, name = path.split("/")
        current = tree
        for part in dirs:
            child = current.get(part)
            if child is None:
                child = current[part] = {}
            current = child
        current.setdefault(name, None)
    return tree


def render_tree(tree: Tree, prefix: str = "") -> list[str]:
    """Render a tree with box-drawing connectors, entries sorted by name."""
    lines: list[str] = []
    names = sorted(tree)
    for index, name in enumerate(names):
        last = index == len(names) - 1
        lines.append(f"{prefix}{'└── ' if last else '├── '}{name}")
        subtree = tree[name]
        if subtree is not None:
            lines.extend(render_tree(subtree, prefix + ("    " if last else "│   ")))
    return lines


def git_ls_files(root: _pathlib.Path) -> list[str] | None:
    """Tracked files relative to root, or None if root is not a git checkout."""
    try:
        result = _subprocess.run(
            ["git", "ls-files"],
            capture_output=True,
            text=True,
            cwd=root,
            timeout=10,
        )
    except (_subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None
    if result.returncode != 0:
        return None
    return [line for line in result.stdout.splitlines() if line]


def walk_files(root: _pathlib.Path) -> list[str]:
    """All non-hidden files below root, relative to it."""
    files: list[str] = []
    for dirpath, dirnames, filenames in _os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        rel = _pathlib.Path(dirpath).relative_to(root)
        files.extend(
            (rel / name).as_posix() for name in filenames if not name.startswith(".")
        )
    return files


class GitTreeProvider:
    """Supplies the project's file tree as an opaque string."""

    def __init__(self, root: _pathlib.Path) -> None:
        self._root = root

    def render(self) -> str:
        files = git_ls_files(self._root)
        if files is None:
            _logger.debug("%s is not a git checkout; walking the directory", self._root)
            files = walk_files(self._root)
        return "\n".join([".", *render_tree(build_tree(files))])

    __call__ = render
