"""Visibility pruning: drop public-only files from a private project.

Runs after composition and before rendering, so prune sets name files by their
on-disk (still marked) basenames, e.g. ``release.marker.yml``.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path


def prune(root_dir: str | Path, basenames: Iterable[str]) -> list[Path]:
    """Delete every entry under *root_dir* whose basename is in *basenames*.

    Matching directories are removed wholesale without descending into them;
    non-matching directories are traversed.  Each directory's listing is read
    in full before anything in it is deleted.  A missing *root_dir* is a
    no-op.

    Returns:
        The removed paths, in traversal order.
    """
    names = frozenset(basenames)
    removed: list[Path] = []
    if names:
        _prune_dir(Path(root_dir), names, removed)
    return removed


def _prune_dir(directory: Path, names: frozenset[str], removed: list[Path]) -> None:
    try:
        entries = sorted(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return

    for entry in entries:
        is_dir = entry.is_dir() and not entry.is_symlink()
        if entry.name in names:
            if is_dir:
                shutil.rmtree(entry)
            else:
                entry.unlink(missing_ok=True)
            removed.append(entry)
        elif is_dir:
            _prune_dir(entry, names, removed)
