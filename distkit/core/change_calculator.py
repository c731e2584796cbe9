# distkit/core/change_calculator.py

"""
Change calculator.

Pure functions that partition the paths of two manifests into added,
modified, deleted and unchanged. Checksum equality is the only criterion
for "unchanged"; size and timestamps are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from distkit.core.models import Manifest

# ==============================================================
# TYPE DEFINITIONS
# ==============================================================

@dataclass(frozen=True)
class ChangeSet:
    """Partition of the union of old and new manifest paths."""
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def to_copy(self) -> List[str]:
        """Paths that must be written to the target."""
        return self.added + self.modified

    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)

    def with_forced(self, paths: Iterable[str]) -> "ChangeSet":
        """
        Return a change set where every unchanged path in ``paths`` is moved
        to ``modified``. Paths that are not unchanged are left where they are.
        """
        forced = set(paths) & set(self.unchanged)
        if not forced:
            return self
        return ChangeSet(
            added=list(self.added),
            modified=sorted(set(self.modified) | forced),
            deleted=list(self.deleted),
            unchanged=[p for p in self.unchanged if p not in forced],
        )

    def summary(self) -> str:
        return (
            f"{len(self.added)} added, {len(self.modified)} modified, "
            f"{len(self.deleted)} deleted, {len(self.unchanged)} unchanged"
        )

# ==============================================================
# DIFF
# ==============================================================

def diff_manifests(old: Optional[Manifest], new: Manifest) -> ChangeSet:
    """Compute the change set that turns ``old`` (or nothing) into ``new``."""
    if old is None:
        return ChangeSet(added=sorted(new.files))

    added: List[str] = []
    modified: List[str] = []
    unchanged: List[str] = []

    for path in sorted(new.files):
        old_record = old.files.get(path)
        if old_record is None:
            added.append(path)
        elif old_record.checksum is None or old_record.checksum != new.files[path].checksum:
            modified.append(path)
        else:
            unchanged.append(path)

    deleted = sorted(path for path in old.files if path not in new.files)

    return ChangeSet(added=added, modified=modified, deleted=deleted, unchanged=unchanged)

def changes_size(manifest: Manifest, changes: ChangeSet) -> int:
    """Total bytes that applying ``changes`` will write, according to ``manifest``."""
    total = 0
    for path in changes.to_copy():
        record = manifest.files.get(path)
        if record:
            total += record.size
    return total
