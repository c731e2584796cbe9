# distkit/core/backup.py

"""
Pre-change backups.

Update and repair snapshot the target into a sibling directory before
touching it: ``<parent>/.<name>-backups/<timestamp>/``. A backup that cannot
be created or whose content does not match the target aborts the install.
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import List, Optional

from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import BACKUPS_SUFFIX, MANIFEST_FILE, SKIP_PATTERNS
from distkit.core.exceptions import BackupError, FileSystemError
from distkit.core.file_ops import copy_tree, walk_tree

# The manifest must be part of the snapshot
BACKUP_SKIP_PATTERNS = tuple(p for p in SKIP_PATTERNS if p != MANIFEST_FILE)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"

def backups_root(target_dir: Path) -> Path:
    target_dir = Path(target_dir).resolve()
    return target_dir.parent / f".{target_dir.name}{BACKUPS_SUFFIX}"

class BackupManager(ConsoleAware):
    """Creates and lists snapshots of installation directories."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)

    def create_backup(self, target_dir: Path) -> Path:
        """
        Copy ``target_dir`` into a new timestamped backup directory.

        Returns:
            Path of the backup directory.

        Raises:
            BackupError: The copy failed or the snapshot does not match.
        """
        target_dir = Path(target_dir)
        if not target_dir.is_dir():
            raise BackupError(target_dir, "target directory does not exist")

        stamp = dt.datetime.now().strftime(TIMESTAMP_FORMAT)
        backup_dir = backups_root(target_dir) / stamp
        attempt = 0
        while backup_dir.exists():
            attempt += 1
            backup_dir = backups_root(target_dir) / f"{stamp}-{attempt}"

        self.log(f"[dim]backup[/] {target_dir} → {backup_dir}")
        try:
            copied = copy_tree(target_dir, backup_dir, BACKUP_SKIP_PATTERNS)
        except FileSystemError as e:
            raise BackupError(target_dir, str(e))

        self._verify(target_dir, backup_dir)
        self.print(f"[green]✔[/] Backup created → [cyan]{backup_dir}[/] ({len(copied)} file(s))")
        return backup_dir

    def list_backups(self, target_dir: Path) -> List[Path]:
        """Existing backups of ``target_dir``, newest first."""
        root = backups_root(target_dir)
        if not root.is_dir():
            return []
        return sorted((p for p in root.iterdir() if p.is_dir()), reverse=True)

    def _verify(self, target_dir: Path, backup_dir: Path) -> None:
        try:
            source_files, _ = walk_tree(target_dir, BACKUP_SKIP_PATTERNS)
            backup_files, _ = walk_tree(backup_dir, BACKUP_SKIP_PATTERNS)
        except FileSystemError as e:
            raise BackupError(target_dir, f"verification failed: {e}")

        if source_files != backup_files:
            missing = sorted(set(source_files) - set(backup_files))
            raise BackupError(target_dir, f"verification failed: {len(missing)} file(s) missing from backup")

        for rel in source_files:
            if (target_dir / rel).stat().st_size != (backup_dir / rel).stat().st_size:
                raise BackupError(target_dir, f"verification failed: size mismatch for {rel}")
