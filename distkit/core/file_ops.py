# distkit/core/file_ops.py

"""
Filesystem helpers shared by the manifest builder, the change applier,
the full-copy fallback and the backup manager.

Every walk goes through ``walk_tree`` so that skip patterns are applied
identically wherever a tree is enumerated or copied.
"""

from __future__ import annotations

import fnmatch
import hashlib
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from distkit.core.constants import SKIP_PATTERNS
from distkit.core.exceptions import FileSystemError

CHUNK_SIZE = 1024 * 1024

# ==============================================================
# SKIP PATTERNS
# ==============================================================

def is_skipped(rel_path: str | Path, patterns: Sequence[str] = SKIP_PATTERNS) -> bool:
    """True if any segment of ``rel_path`` matches one of ``patterns``."""
    parts = Path(rel_path).parts
    return any(fnmatch.fnmatchcase(part, pattern) for part in parts for pattern in patterns)

def to_relative(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` with '/' separators."""
    return path.relative_to(root).as_posix()

# ==============================================================
# TREE WALK
# ==============================================================

def walk_tree(
    root: Path,
    patterns: Sequence[str] = SKIP_PATTERNS
) -> Tuple[List[str], List[str]]:
    """
    Enumerate a tree.

    Returns:
        Tuple of (file paths, directory paths), both relative to ``root``,
        '/' separated and sorted.

    Raises:
        FileSystemError: ``root`` is missing, not a directory, or a
            directory below it cannot be listed.
    """
    root = Path(root)
    if not root.is_dir():
        raise FileSystemError("read directory", root)

    def _raise(err: OSError) -> None:
        raise FileSystemError("read directory", err.filename or root, err)

    files: List[str] = []
    directories: List[str] = []
    for current, dirnames, filenames in os.walk(root, onerror=_raise):
        current_path = Path(current)
        dirnames[:] = sorted(d for d in dirnames if not is_skipped(d, patterns))
        for d in dirnames:
            directories.append(to_relative(current_path / d, root))
        for name in filenames:
            if is_skipped(name, patterns):
                continue
            files.append(to_relative(current_path / name, root))
    return sorted(files), sorted(directories)

# ==============================================================
# CHECKSUMS
# ==============================================================

def bytes_checksum(data: bytes) -> str:
    """Return the sha256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()

def file_checksum(path: Path) -> str:
    """Return the sha256 hex digest of a file, read in chunks."""
    hash_func = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hash_func.update(chunk)
    except OSError as e:
        raise FileSystemError("read", path, e)
    return hash_func.hexdigest()

# ==============================================================
# COPY / DELETE
# ==============================================================

def copy_file(source: Path, target: Path) -> None:
    """Copy one file, creating parent directories and overwriting the target."""
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
    except OSError as e:
        raise FileSystemError("copy", source, e)

def copy_tree(source: Path, target: Path, patterns: Sequence[str] = SKIP_PATTERNS) -> List[str]:
    """
    Recursively copy ``source`` over ``target``, overwriting existing files.

    Files matching skip patterns are neither read nor copied. Files already
    present in ``target`` but absent from ``source`` are left alone.

    Returns:
        Relative paths of the copied files.
    """
    files, directories = walk_tree(source, patterns)
    try:
        target.mkdir(parents=True, exist_ok=True)
        for d in directories:
            (target / d).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError("create directory", target, e)
    for rel in files:
        copy_file(source / rel, target / rel)
    return files

def remove_file(path: Path) -> None:
    """Delete a file. A file that is already gone is not an error."""
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise FileSystemError("delete", path, e)

def prune_empty_dirs(root: Path, candidates: Iterable[Path]) -> None:
    """Remove directories in ``candidates`` (and their empty parents) that became empty."""
    root = root.resolve()
    for directory in sorted({c.resolve() for c in candidates}, key=lambda p: len(p.parts), reverse=True):
        current = directory
        while current != root and root in current.parents:
            try:
                current.rmdir()
            except OSError:
                break
            current = current.parent
