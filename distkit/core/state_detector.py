# distkit/core/state_detector.py

"""
Installation state detector.

Classifies a target directory as fresh, current, legacy or unknown. Detection
never raises: anything that goes wrong while looking at the target degrades
to ``unknown_existing``, which routes the install to a repair.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import (
    CONTENT_MARKERS,
    EXPANSION_PACKS_DIR,
    LEGACY_MANIFEST_FILES,
    MANIFEST_FILE,
)
from distkit.core.components import installed_expansion_packs
from distkit.core.exceptions import (
    DistKitError,
    ManifestLoadError,
    StateDetectionError,
)
from distkit.core.file_ops import is_skipped
from distkit.core.manifest_file import ManifestFile, parse_manifest_data
from distkit.core.models import InstallationState, Manifest, StateType

class InstallationStateDetector(ConsoleAware):
    """Inspects a target directory and reports what is installed there."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)

    def detect(self, target_dir: Path) -> InstallationState:
        """Detect the installation state of ``target_dir``. Never raises."""
        target_dir = Path(target_dir)
        self.log(f"[dim]detect[/] {target_dir}")
        try:
            state = self._detect(target_dir)
        except (OSError, ValueError, DistKitError) as e:
            self.warn(f"Could not inspect {target_dir}: {e}")
            state = InstallationState(
                type=StateType.UNKNOWN_EXISTING,
                expansion_packs={},
                detail=str(e),
            )
        self.log(f"[dim]detected[/] {state.type.value}")
        return state

    # ==============================================================
    # DETECTION STEPS
    # ==============================================================

    def _detect(self, target_dir: Path) -> InstallationState:
        if not target_dir.exists():
            return InstallationState(type=StateType.FRESH)
        if not target_dir.is_dir():
            raise StateDetectionError(f"{target_dir} exists and is not a directory")
        if not self._has_any_entry(target_dir):
            return InstallationState(type=StateType.FRESH)

        manifest_file = ManifestFile(target_dir)
        if manifest_file.exists():
            return self._analyze_current(target_dir, manifest_file)

        for legacy_name in LEGACY_MANIFEST_FILES:
            legacy_path = target_dir / legacy_name
            if legacy_path.is_file():
                return self._analyze_legacy(target_dir, legacy_path)

        if self._has_content_markers(target_dir):
            self.log(f"[dim]found existing content without manifest[/] {target_dir}")
            return InstallationState(
                type=StateType.UNKNOWN_EXISTING,
                expansion_packs=self.detect_expansion_packs(target_dir),
                detail="content found without a manifest",
            )

        return InstallationState(type=StateType.FRESH)

    def _analyze_current(self, target_dir: Path, manifest_file: ManifestFile) -> InstallationState:
        try:
            document = manifest_file.read_document()
        except ManifestLoadError as e:
            raise StateDetectionError(str(e))

        try:
            manifest = parse_manifest_data(document, str(manifest_file.path))
        except ManifestLoadError as e:
            # Readable JSON in an older schema
            self.log(f"[dim]older manifest schema[/] {e}")
            return InstallationState(
                type=StateType.LEGACY_EXISTING,
                manifest=Manifest.from_legacy(document),
                expansion_packs=self.detect_expansion_packs(target_dir),
                legacy_source=manifest_file.path.name,
            )

        return InstallationState(
            type=StateType.CURRENT_EXISTING,
            manifest=manifest,
            expansion_packs=self.detect_expansion_packs(target_dir),
        )

    def _analyze_legacy(self, target_dir: Path, legacy_path: Path) -> InstallationState:
        self.log(f"[dim]found legacy manifest[/] {legacy_path.name}")
        try:
            document = json.loads(legacy_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StateDetectionError(f"legacy manifest {legacy_path.name} is not valid JSON: {e}")
        if not isinstance(document, dict):
            raise StateDetectionError(f"legacy manifest {legacy_path.name} is not a JSON object")

        return InstallationState(
            type=StateType.LEGACY_EXISTING,
            manifest=Manifest.from_legacy(document),
            expansion_packs=self.detect_expansion_packs(target_dir),
            legacy_source=legacy_path.name,
        )

    # ==============================================================
    # HELPERS
    # ==============================================================

    def detect_expansion_packs(self, target_dir: Path) -> Dict[str, Optional[Manifest]]:
        """Map each installed pack id to its own manifest (None if it has none)."""
        packs: Dict[str, Optional[Manifest]] = {}
        for pack_id in installed_expansion_packs(target_dir):
            packs[pack_id] = ManifestFile(Path(target_dir) / EXPANSION_PACKS_DIR / pack_id).load_optional()
        if packs:
            self.log(f"[dim]expansion packs[/] {', '.join(packs)}")
        return packs

    def _has_any_entry(self, target_dir: Path) -> bool:
        # The manifest itself is skip-listed but still counts as content
        return any(
            entry.name == MANIFEST_FILE or not is_skipped(entry.name)
            for entry in target_dir.iterdir()
        )

    def _has_content_markers(self, target_dir: Path) -> bool:
        return any((target_dir / marker).exists() for marker in CONTENT_MARKERS)
