# distkit/core/manifest_builder.py

"""
Manifest builder.

Walks a directory tree, hashes every file that is not excluded by the skip
patterns and returns a ``Manifest``. Hashing runs on a bounded worker pool;
the resulting key set only depends on the tree, never on scheduling.
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import DEFAULT_MAX_WORKERS, SKIP_PATTERNS
from distkit.core.exceptions import FileSystemError
from distkit.core.file_ops import file_checksum, walk_tree
from distkit.core.models import FileRecord, Manifest
from distkit.core.workers import run_bounded

class ManifestBuilder(ConsoleAware):
    """Builds content-addressed manifests of directory trees."""

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        skip_patterns: Sequence[str] = SKIP_PATTERNS,
        console: Optional[Console] = None,
        verbose: bool = False
    ):
        super().__init__(console, verbose)
        self.max_workers = max_workers
        self.skip_patterns = tuple(skip_patterns)

    def build(self, source_dir: Path, **manifest_fields: Any) -> Manifest:
        """
        Build a manifest for ``source_dir``.

        Args:
            source_dir: Tree to snapshot.
            manifest_fields: Extra manifest fields (e.g. distribution_version).

        Raises:
            FileSystemError: The directory or one of its files is unreadable.
        """
        source_dir = Path(source_dir)
        files, directories = walk_tree(source_dir, self.skip_patterns)
        return self._build(source_dir, files, directories, **manifest_fields)

    def build_paths(self, root: Path, paths: Iterable[str], **manifest_fields: Any) -> Manifest:
        """
        Build a manifest of ``root`` restricted to ``paths``.

        Paths that no longer exist as files are left out. Directories are the
        parents of the recorded files.
        """
        root = Path(root)
        files = sorted(p for p in set(paths) if (root / p).is_file())
        directories = set()
        for rel_path in files:
            parts = rel_path.split("/")[:-1]
            for i in range(1, len(parts) + 1):
                directories.add("/".join(parts[:i]))
        return self._build(root, files, sorted(directories), **manifest_fields)

    def _build(
        self,
        source_dir: Path,
        files: List[str],
        directories: Iterable[str],
        **manifest_fields: Any
    ) -> Manifest:
        def process_file(rel_path: str) -> FileRecord:
            path = source_dir / rel_path
            try:
                stats = path.stat()
            except OSError as e:
                raise FileSystemError("stat", path, e)
            return FileRecord(
                path=rel_path,
                size=stats.st_size,
                checksum=file_checksum(path),
                modified_at=dt.datetime.fromtimestamp(stats.st_mtime, dt.timezone.utc),
            )

        records = run_bounded(files, process_file, self.max_workers)
        manifest = Manifest.from_records(records, directories, **manifest_fields)

        self.log(
            f"[dim]manifest[/] {source_dir} → {len(manifest.files)} file(s), "
            f"{manifest.total_size} byte(s)"
        )
        return manifest
