# tests/test_state_detector.py

import json
from pathlib import Path

import pytest
from rich.console import Console

from conftest import write_tree
from distkit.core.manifest_builder import ManifestBuilder
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import StateType
from distkit.core.state_detector import InstallationStateDetector

@pytest.fixture
def detector() -> InstallationStateDetector:
    return InstallationStateDetector()

def install_manifest(directory: Path) -> None:
    ManifestFile(directory).save(ManifestBuilder().build(directory))

# --------------------------------------------------------------------------- #
# Fresh
# --------------------------------------------------------------------------- #
def test_missing_directory_is_fresh(detector, tmp_path: Path):
    assert detector.detect(tmp_path / "nope").type == StateType.FRESH

def test_empty_directory_is_fresh(detector, tmp_path: Path):
    assert detector.detect(tmp_path).type == StateType.FRESH

def test_only_skipped_entries_is_fresh(detector, tmp_path: Path):
    write_tree(tmp_path, {".git/HEAD": "ref", ".DS_Store": ""})
    assert detector.detect(tmp_path).type == StateType.FRESH

def test_unrelated_content_is_fresh(detector, tmp_path: Path):
    write_tree(tmp_path, {"README.md": "hello", "package.json": "{}"})
    assert detector.detect(tmp_path).type == StateType.FRESH

# --------------------------------------------------------------------------- #
# Current
# --------------------------------------------------------------------------- #
def test_current_manifest_is_current_existing(detector, tmp_path: Path):
    write_tree(tmp_path, {"agents/dev.md": "dev"})
    install_manifest(tmp_path)

    state = detector.detect(tmp_path)

    assert state.type == StateType.CURRENT_EXISTING
    assert state.manifest.paths() == {"agents/dev.md"}
    assert state.expansion_packs == {}

def test_current_state_carries_pack_manifests(detector, tmp_path: Path):
    write_tree(tmp_path, {
        "agents/dev.md": "dev",
        "expansion-packs/game/agent.md": "g",
        "expansion-packs/bare/agent.md": "b",
    })
    install_manifest(tmp_path / "expansion-packs" / "game")
    install_manifest(tmp_path)

    state = detector.detect(tmp_path)

    assert set(state.expansion_packs) == {"game", "bare"}
    assert state.expansion_packs["game"].paths() == {"agent.md"}
    assert state.expansion_packs["bare"] is None

def test_detection_is_deterministic(detector, tmp_path: Path):
    write_tree(tmp_path, {"agents/dev.md": "dev"})
    install_manifest(tmp_path)

    assert detector.detect(tmp_path).type == detector.detect(tmp_path).type

# --------------------------------------------------------------------------- #
# Legacy
# --------------------------------------------------------------------------- #
def test_legacy_filename_is_legacy_existing(detector, tmp_path: Path):
    write_tree(tmp_path, {
        "agents/dev.md": "dev",
        "installation.json": json.dumps({"version": "3.1", "files": ["agents/dev.md"]}),
    })

    state = detector.detect(tmp_path)

    assert state.type == StateType.LEGACY_EXISTING
    assert state.legacy_source == "installation.json"
    assert state.manifest.legacy is True
    assert state.manifest.paths() == {"agents/dev.md"}

def test_legacy_filenames_checked_in_order(detector, tmp_path: Path):
    write_tree(tmp_path, {
        "distkit-config.json": json.dumps({"files": ["second.md"]}),
        ".distkit-install.json": json.dumps({"files": ["first.md"]}),
    })

    state = detector.detect(tmp_path)

    assert state.legacy_source == ".distkit-install.json"
    assert state.manifest.paths() == {"first.md"}

def test_older_schema_in_current_file_is_legacy(detector, tmp_path: Path):
    write_tree(tmp_path, {
        ".distkit-manifest.json": json.dumps({"version": "0.3", "files": {"a.md": {"size": 2}}}),
        "a.md": "hi",
    })

    state = detector.detect(tmp_path)

    assert state.type == StateType.LEGACY_EXISTING
    assert state.manifest.paths() == {"a.md"}

# --------------------------------------------------------------------------- #
# Unknown
# --------------------------------------------------------------------------- #
def test_content_markers_without_manifest_is_unknown(detector, tmp_path: Path):
    write_tree(tmp_path, {"agents/dev.md": "dev"})

    state = detector.detect(tmp_path)

    assert state.type == StateType.UNKNOWN_EXISTING
    assert state.manifest is None

def test_corrupt_manifest_is_unknown(detector, tmp_path: Path):
    write_tree(tmp_path, {".distkit-manifest.json": "{broken", "agents/dev.md": "dev"})

    state = detector.detect(tmp_path)

    assert state.type == StateType.UNKNOWN_EXISTING
    assert state.detail

def test_corrupt_legacy_manifest_is_unknown(detector, tmp_path: Path):
    write_tree(tmp_path, {"installation.json": "not json"})
    assert detector.detect(tmp_path).type == StateType.UNKNOWN_EXISTING

def test_target_is_a_file_is_unknown(detector, tmp_path: Path):
    target = tmp_path / "file"
    target.write_text("x")
    assert detector.detect(target).type == StateType.UNKNOWN_EXISTING

def test_read_errors_never_escape(tmp_path: Path, monkeypatch):
    write_tree(tmp_path, {"agents/dev.md": "dev"})
    install_manifest(tmp_path)

    def explode(self, *args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_text", explode)
    detector = InstallationStateDetector(console=Console(quiet=True))

    assert detector.detect(tmp_path).type == StateType.UNKNOWN_EXISTING
