# distkit/core/change_applier.py

"""
Change applier.

Applies a ``ChangeSet`` to a target directory: deletions first (best
effort), then every added or modified file is written, reading each distinct
content only once through a checksum-keyed cache. When the incremental apply
fails with a filesystem or partial-apply error the whole source tree is
copied over the target instead, so the target never stays half-applied.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Sequence

from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import (
    DEFAULT_CACHE_MAX_ENTRY_BYTES,
    DEFAULT_MAX_WORKERS,
    SKIP_PATTERNS,
)
from distkit.core.change_calculator import ChangeSet
from distkit.core.content_cache import ContentCache
from distkit.core.exceptions import (
    ApplyError,
    FallbackCopyError,
    FileSystemError,
    IntegrityError,
)
from distkit.core.file_ops import (
    bytes_checksum,
    copy_file,
    copy_tree,
    file_checksum,
    prune_empty_dirs,
    remove_file,
)
from distkit.core.manifest_builder import ManifestBuilder
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import Manifest
from distkit.core.workers import run_bounded

def resolve_inside(root: Path, rel_path: str) -> Path:
    """Join ``rel_path`` to ``root``, refusing paths that escape it."""
    candidate = (root / rel_path).resolve()
    if candidate != root.resolve() and root.resolve() not in candidate.parents:
        raise FileSystemError("resolve", rel_path, ValueError("path escapes the target directory"))
    return root / rel_path

# ==============================================================
# CHANGE APPLIER CLASS
# ==============================================================

class ChangeApplier(ConsoleAware):
    """
    Applies change sets to a target directory.

    Attributes:
        builder: Used to regenerate the manifest after a full-copy fallback
        max_workers: Size of the copy worker pool
        cache_max_entry_bytes: Files above this size are streamed, not cached
        last_cache: Content cache of the most recent apply (for reporting)
    """

    def __init__(
        self,
        builder: Optional[ManifestBuilder] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        cache_max_entry_bytes: int = DEFAULT_CACHE_MAX_ENTRY_BYTES,
        skip_patterns: Sequence[str] = SKIP_PATTERNS,
        console: Optional[Console] = None,
        verbose: bool = False
    ):
        super().__init__(console, verbose)
        self.max_workers = max_workers
        self.cache_max_entry_bytes = cache_max_entry_bytes
        self.skip_patterns = tuple(skip_patterns)
        self.builder: ManifestBuilder = builder or ManifestBuilder(
            max_workers=max_workers, skip_patterns=self.skip_patterns, console=console, verbose=verbose
        )
        self.last_cache: Optional[ContentCache] = None

    def apply(
        self,
        source_dir: Path,
        target_dir: Path,
        changes: ChangeSet,
        manifest: Optional[Manifest] = None
    ) -> int:
        """
        Apply ``changes`` from ``source_dir`` to ``target_dir``.

        Args:
            manifest: Manifest of ``source_dir``. When given, its checksums key
                the content cache and are verified against the bytes read.

        Returns:
            Number of bytes written.

        Raises:
            ApplyError: A file could not be written (the target may now be
                partially updated; callers should fall back to a full copy).
        """
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ApplyError("prepare", FileSystemError("create directory", target_dir, e))

        self._delete_paths(target_dir, changes.deleted)

        cache = ContentCache(self.cache_max_entry_bytes)
        self.last_cache = cache

        def copy_path(rel_path: str) -> int:
            return self._copy_one(source_dir, target_dir, rel_path, manifest, cache)

        to_copy = changes.to_copy()
        try:
            written = run_bounded(to_copy, copy_path, self.max_workers)
        except (FileSystemError, IntegrityError, OSError) as e:
            raise ApplyError("copy", e)

        self.log(
            f"[dim]applied[/] {len(to_copy)} file change(s) → {target_dir} "
            f"(cache hits: {cache.hits})"
        )
        return sum(written)

    def full_copy(self, source_dir: Path, target_dir: Path, **manifest_fields: Any) -> Manifest:
        """
        Copy the whole source tree over the target and save a fresh manifest
        for it in the target.

        Raises:
            FallbackCopyError: Always fatal; nothing else is attempted.
        """
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        phase = "copy"
        try:
            copied = copy_tree(source_dir, target_dir, self.skip_patterns)
            phase = "manifest"
            manifest = self.builder.build(source_dir, **manifest_fields)
            ManifestFile(target_dir).save(manifest)
        except (FileSystemError, OSError) as e:
            raise FallbackCopyError(source_dir, target_dir, phase, e)

        self.log(f"[dim]full copy[/] {len(copied)} file(s) → {target_dir}")
        return manifest

    def apply_with_fallback(
        self,
        source_dir: Path,
        target_dir: Path,
        changes: ChangeSet,
        manifest: Optional[Manifest] = None
    ) -> bool:
        """
        Apply incrementally, falling back to one full copy on failure.

        Returns:
            True if the fallback ran.

        Raises:
            FallbackCopyError: The fallback failed as well.
        """
        try:
            self.apply(source_dir, target_dir, changes, manifest)
            return False
        except (ApplyError, FileSystemError, OSError) as e:
            self.warn(f"Incremental apply failed: {e}")
            self.print(f"[yellow]↳ falling back to full copy[/] → {target_dir}")

        fields = {}
        if manifest is not None and manifest.distribution_version:
            fields["distribution_version"] = manifest.distribution_version
        self.full_copy(source_dir, target_dir, **fields)
        return True

    # ==============================================================
    # PER-FILE OPERATIONS
    # ==============================================================

    def _delete_paths(self, target_dir: Path, paths: List[str]) -> None:
        """Delete stale files. Failures are reported, never raised."""
        touched: List[Path] = []
        for rel_path in paths:
            try:
                path = resolve_inside(target_dir, rel_path)
                remove_file(path)
                touched.append(path.parent)
                self.log(f"[dim]deleted[/] {rel_path}")
            except FileSystemError as e:
                self.warn(f"Could not delete {rel_path}: {e}")
        prune_empty_dirs(target_dir, touched)

    def _copy_one(
        self,
        source_dir: Path,
        target_dir: Path,
        rel_path: str,
        manifest: Optional[Manifest],
        cache: ContentCache
    ) -> int:
        source = source_dir / rel_path
        target = resolve_inside(target_dir, rel_path)
        record = manifest.files.get(rel_path) if manifest else None
        expected = record.checksum if record else None

        if record is not None and record.size > self.cache_max_entry_bytes:
            copy_file(source, target)
            if expected and file_checksum(target) != expected:
                raise IntegrityError(rel_path, expected, file_checksum(target))
            return record.size

        def load() -> bytes:
            data = self._read_source(source)
            if expected:
                actual = bytes_checksum(data)
                if actual != expected:
                    raise IntegrityError(rel_path, expected, actual)
            return data

        if expected:
            data, from_cache = cache.get_or_load(expected, load)
        else:
            data = load()
            data, from_cache = cache.get_or_load(bytes_checksum(data), lambda: data)

        self._write_target(target, data)
        self.log(f"[dim]{'cached' if from_cache else 'copied'}[/] {rel_path}")
        return len(data)

    def _read_source(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise FileSystemError("read", path, e)

    def _write_target(self, path: Path, data: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise FileSystemError("write", path, e)
