# distkit/core/integrity.py

"""
Integrity checker.

Compares what a manifest declares with what is on disk. Read-only.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import DEFAULT_MAX_WORKERS
from distkit.core.exceptions import FileSystemError
from distkit.core.file_ops import file_checksum
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import FileRecord, IntegrityReport, Manifest
from distkit.core.workers import run_bounded

class IntegrityChecker(ConsoleAware):
    """Reports missing and content-mismatched files relative to a manifest."""

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        console: Optional[Console] = None,
        verbose: bool = False
    ):
        super().__init__(console, verbose)
        self.max_workers = max_workers

    def check(self, target_dir: Path, manifest: Optional[Manifest]) -> IntegrityReport:
        """
        Check ``target_dir`` against ``manifest``.

        An absent manifest yields an empty report with
        ``baseline_available=False``: there is nothing to compare against, and
        callers must not read that as "valid".

        A file whose checksum cannot be recomputed counts as modified.
        """
        if manifest is None:
            self.log(f"[dim]integrity[/] no baseline manifest for {target_dir}")
            return IntegrityReport(baseline_available=False)

        target_dir = Path(target_dir)

        def inspect(record: FileRecord) -> Optional[str]:
            path = target_dir / record.path
            if not path.is_file():
                return "missing"
            if record.checksum is None:
                return None
            try:
                actual = file_checksum(path)
            except FileSystemError as e:
                self.warn(f"Could not verify {record.path}: {e}")
                return "modified"
            return "modified" if actual != record.checksum else None

        records = [manifest.files[p] for p in sorted(manifest.files)]
        verdicts = run_bounded(records, inspect, self.max_workers)

        report = IntegrityReport(
            missing=[r.path for r, v in zip(records, verdicts) if v == "missing"],
            modified=[r.path for r, v in zip(records, verdicts) if v == "modified"],
        )
        self.log(
            f"[dim]integrity[/] {target_dir}: {len(records)} file(s), "
            f"{len(report.missing)} missing, {len(report.modified)} modified"
        )
        return report

    def validate(self, target_dir: Path, manifest: Optional[Manifest] = None) -> bool:
        """
        True only if a baseline exists and every declared file is intact.

        When ``manifest`` is omitted the one stored in ``target_dir`` is used.
        """
        if manifest is None:
            manifest = ManifestFile(target_dir).load_optional()
        return self.check(target_dir, manifest).is_valid()
