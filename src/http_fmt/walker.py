"""Filesystem walker: collect request files under a directory."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

HTTP_EXTENSIONS = (".http", ".rest")
MAX_DEPTH = 64


def find_files(root: Path, extensions: tuple[str, ...] = HTTP_EXTENSIONS) -> list[Path]:
    """Return matching files under ``root`` in depth-first order.

    Entries of a directory are visited sorted by name; symlinks are never
    followed. Extensions match case-insensitively. A file given as ``root``
    is returned as is.
    """
    if root.is_file():
        return [root]

    suffixes = {ext.lower() for ext in extensions}
    found: list[Path] = []
    stack = [(root, 0)]
    while stack:
        path, depth = stack.pop()
        if depth and path.is_symlink():
            continue
        if path.is_dir():
            if depth > MAX_DEPTH:
                logger.warning("Skipping %s: deeper than %d levels", path, MAX_DEPTH)
                continue
            children = sorted(path.iterdir(), key=lambda p: p.name)
            stack.extend((child, depth + 1) for child in reversed(children))
        elif path.suffix.lower() in suffixes:
            found.append(path)
    return found


def collect_files(paths: list[Path], extensions: tuple[str, ...] = HTTP_EXTENSIONS) -> list[Path]:
    """Expand files and directories into a de-duplicated ordered file list."""
    seen: set[Path] = set()
    files: list[Path] = []
    for path in paths:
        for file in find_files(path, extensions):
            key = file.resolve()
            if key not in seen:
                seen.add(key)
                files.append(file)
    return files
