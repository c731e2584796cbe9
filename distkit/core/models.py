# distkit/core/models.py

"""
Core models for the distkit installation engine.

This module contains the manifest snapshot types, the validated install
request and the result/status values returned to callers.
"""

from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Set, Iterable

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    field_serializer,
    model_validator,
    ConfigDict,
    ValidationError,
)

from distkit.core.constants import (
    MANIFEST_FORMAT_VERSION,
    CORE_DIR,
    DEFAULT_MAX_WORKERS,
    DEFAULT_CACHE_MAX_ENTRY_BYTES,
)
from distkit.core.exceptions import ConfigError

# ==============================================================
# COMMON ENUMS
# ==============================================================

class StateType(str, Enum):
    """What the detector found at a target directory."""
    FRESH = "fresh"
    CURRENT_EXISTING = "current_existing"
    LEGACY_EXISTING = "legacy_existing"
    UNKNOWN_EXISTING = "unknown_existing"

class InstallType(str, Enum):
    """Installation strategy resolved from the detected state."""
    FRESH = "fresh"
    UPDATE = "update"
    REPAIR = "repair"

# sha256 hex digest
CHECKSUM_PATTERN = re.compile(r"^[0-9a-f]{64}$")

# Pack / integration identifiers
COMPONENT_ID_PATTERN = re.compile(r"^[\w\-\.]+$")

def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def is_under(path: str, prefix: str) -> bool:
    prefix = prefix.strip("/")
    return path == prefix or path.startswith(prefix + "/")

# ==============================================================
# MANIFEST
# ==============================================================

class FileRecord(BaseModel):
    """One installed file. Only the checksum is used for change detection."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    path: str = Field(..., min_length=1, description="Path relative to the manifest root, '/' separated")
    size: int = Field(default=0, ge=0, description="Size in bytes")
    checksum: Optional[str] = Field(
        default=None,
        pattern=CHECKSUM_PATTERN.pattern,
        description="sha256 of the content; None when the baseline cannot vouch for it"
    )
    modified_at: Optional[dt.datetime] = Field(
        default=None,
        alias="modified",
        description="Source modification time (informational only)"
    )

class Manifest(BaseModel):
    """
    Complete snapshot of a directory tree.

    A manifest is never mutated after it is built; the helpers below return
    new instances.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    format_version: str = Field(default=MANIFEST_FORMAT_VERSION, alias="version")
    generated_at: dt.datetime = Field(default_factory=utcnow, alias="timestamp")
    files: Dict[str, FileRecord] = Field(default_factory=dict)
    directories: Set[str] = Field(default_factory=set)
    total_size: int = Field(default=0, ge=0, alias="totalSize")
    distribution_version: Optional[str] = Field(default=None, alias="distributionVersion")
    integrations: List[str] = Field(default_factory=list)

    legacy: bool = Field(default=False, exclude=True)

    @model_validator(mode="after")
    def _check_keys(self) -> "Manifest":
        for key, record in self.files.items():
            if key != record.path:
                raise ValueError(f"file key '{key}' does not match record path '{record.path}'")
        return self

    @field_serializer("directories")
    def _serialize_directories(self, value: Set[str]) -> List[str]:
        return sorted(value)

    @classmethod
    def from_records(
        cls,
        records: Iterable[FileRecord],
        directories: Iterable[str] = (),
        **kwargs: Any
    ) -> "Manifest":
        """Build a manifest from file records; keys and total size are derived."""
        ordered = sorted(records, key=lambda r: r.path)
        return cls(
            files={r.path: r for r in ordered},
            directories=set(directories),
            total_size=sum(r.size for r in ordered),
            **kwargs
        )

    @classmethod
    def from_legacy(cls, data: Dict[str, Any]) -> "Manifest":
        """
        Reinterpret an older manifest document.

        Accepts ``files`` as a list of paths or as a map of path to metadata, and
        an optional ``integrity`` map of path to checksum. Checksums that are not
        sha256 hex digests are dropped, so those files always diff as modified.
        """
        raw_files = data.get("files") or {}
        integrity = data.get("integrity") if isinstance(data.get("integrity"), dict) else {}

        entries: Dict[str, Dict[str, Any]] = {}
        if isinstance(raw_files, dict):
            for path, meta in raw_files.items():
                entries[str(path)] = meta if isinstance(meta, dict) else {}
        elif isinstance(raw_files, list):
            for path in raw_files:
                if isinstance(path, str):
                    entries[path] = {}

        records = []
        for path, meta in entries.items():
            norm = path.replace("\\", "/")
            while norm.startswith("./"):
                norm = norm[2:]
            norm = norm.strip("/")
            if not norm:
                continue
            checksum = meta.get("checksum") or integrity.get(path)
            if not isinstance(checksum, str) or not CHECKSUM_PATTERN.match(checksum):
                checksum = None
            size = meta.get("size")
            records.append(FileRecord(
                path=norm,
                size=size if isinstance(size, int) and size >= 0 else 0,
                checksum=checksum,
            ))

        version = data.get("version")
        return cls.from_records(
            records,
            format_version=str(version) if version else "legacy",
            distribution_version=str(data["coreVersion"]) if data.get("coreVersion") else None,
            legacy=True,
        )

    def paths(self) -> Set[str]:
        return set(self.files)

    def scoped(self, prefix: str) -> "Manifest":
        """Return the part of this manifest under ``prefix``, re-rooted at it."""
        prefix = prefix.strip("/")
        cut = len(prefix) + 1
        records = [
            r.model_copy(update={"path": r.path[cut:]})
            for r in self.files.values() if r.path.startswith(prefix + "/")
        ]
        directories = [d[cut:] for d in self.directories if d.startswith(prefix + "/")]
        return Manifest.from_records(
            records,
            directories,
            format_version=self.format_version,
            generated_at=self.generated_at,
            distribution_version=self.distribution_version,
            legacy=self.legacy,
        )

    def excluding(self, prefixes: Iterable[str]) -> "Manifest":
        """Return this manifest without anything under the given prefixes."""
        prefixes = [p for p in prefixes if p]
        records = [r for r in self.files.values() if not any(is_under(r.path, p) for p in prefixes)]
        directories = [d for d in self.directories if not any(is_under(d, p) for p in prefixes)]
        return Manifest.from_records(
            records,
            directories,
            format_version=self.format_version,
            generated_at=self.generated_at,
            distribution_version=self.distribution_version,
            integrations=list(self.integrations),
            legacy=self.legacy,
        )

# ==============================================================
# INSTALL REQUEST
# ==============================================================

class InstallConfig(BaseModel):
    """Validated installation request. Unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")

    directory: Path = Field(..., description="Target directory")
    source_dir: Path = Field(..., description="Root of the source distribution")
    core_dir: str = Field(default=CORE_DIR, description="Core component directory inside source_dir")
    include_core: bool = Field(default=True, description="Install the core component")
    expansion_only: bool = Field(default=False, description="Only process expansion packs")
    expansion_packs: List[str] = Field(default_factory=list, description="Expansion pack ids to install")
    integrations: List[str] = Field(default_factory=list, description="Integration bundles to install")
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=64, description="Per-file worker pool size")
    cache_max_entry_bytes: int = Field(
        default=DEFAULT_CACHE_MAX_ENTRY_BYTES,
        ge=0,
        description="Files larger than this are streamed and never cached"
    )

    @field_validator("core_dir")
    @classmethod
    def validate_core_dir(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v or ".." in Path(v).parts or Path(v).is_absolute():
            raise ValueError("core_dir must be a relative directory inside source_dir")
        return v

    @field_validator("expansion_packs", "integrations")
    @classmethod
    def validate_component_ids(cls, v: List[str]) -> List[str]:
        seen = []
        for item in v:
            item = item.strip()
            if not COMPONENT_ID_PATTERN.fullmatch(item) or item in (".", ".."):
                raise ValueError(f"invalid component id '{item}' (alphanumeric, hyphens, underscores, dots only)")
            if item in seen:
                raise ValueError(f"component '{item}' listed more than once")
            seen.append(item)
        return seen

    @model_validator(mode="after")
    def _check_selection(self) -> "InstallConfig":
        if not self.installs_core() and not self.expansion_packs and not self.integrations:
            raise ValueError("nothing selected: enable the core or request at least one expansion pack or integration")
        return self

    @classmethod
    def parse(cls, data: Any) -> "InstallConfig":
        """Validate a raw mapping (or pass through an instance), raising ConfigError."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise ConfigError(f"expected a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(problems) from e

    def installs_core(self) -> bool:
        return self.include_core and not self.expansion_only

# ==============================================================
# DETECTION / INTEGRITY
# ==============================================================

class InstallationState(BaseModel):
    """Result of one detection call. Never mutated."""
    model_config = ConfigDict(frozen=True)

    type: StateType
    manifest: Optional[Manifest] = None
    expansion_packs: Dict[str, Optional[Manifest]] = Field(default_factory=dict)
    legacy_source: Optional[str] = Field(default=None, description="Legacy manifest filename that was read")
    detail: Optional[str] = Field(default=None, description="Why a conservative state was chosen")

class IntegrityReport(BaseModel):
    """Files a manifest declares that are absent or differ on disk."""
    missing: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    baseline_available: bool = True

    def has_issues(self) -> bool:
        return bool(self.missing or self.modified)

    def is_valid(self) -> bool:
        return self.baseline_available and not self.has_issues()

    def flagged(self) -> Set[str]:
        return set(self.missing) | set(self.modified)

# ==============================================================
# RESULTS
# ==============================================================

class ComponentReport(BaseModel):
    """Outcome of reconciling one component."""
    component: str
    added: int = 0
    modified: int = 0
    deleted: int = 0
    unchanged: int = 0
    bytes_copied: int = 0
    used_fallback: bool = False

class InstallReport(BaseModel):
    """Everything a handler did during one installation attempt."""
    components: List[ComponentReport] = Field(default_factory=list)
    backup_path: Optional[Path] = None
    integrations: List[str] = Field(default_factory=list)

    def used_fallback(self) -> bool:
        return any(c.used_fallback for c in self.components)

class InstallResult(BaseModel):
    """Value returned by install(); install() never raises."""
    success: bool
    install_type: Optional[InstallType] = None
    error: Optional[str] = None
    phase: Optional[str] = None
    target_dir: Optional[Path] = None
    report: Optional[InstallReport] = None

class InstallationStatus(BaseModel):
    """Summary of an installation directory for status displays."""
    exists: bool
    state: StateType
    version: str = "unknown"
    installed_at: Optional[dt.datetime] = None
    integrity_valid: bool = False
    expansion_packs: Dict[str, str] = Field(default_factory=dict)
    last_checked: dt.datetime = Field(default_factory=utcnow)
