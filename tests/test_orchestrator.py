# tests/test_orchestrator.py

import json
from pathlib import Path

import pytest

from conftest import write_tree
from distkit.core.change_applier import ChangeApplier
from distkit.core.exceptions import BackupError
from distkit.core.manifest_builder import ManifestBuilder
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import (
    InstallationState,
    InstallType,
    IntegrityReport,
    StateType,
)
from distkit.core.orchestrator import (
    InstallerOrchestrator,
    create_installer_orchestrator,
    resolve_install_type,
)
from distkit.core.state_detector import InstallationStateDetector

def request(target: Path, source: Path, **options) -> dict:
    return {"directory": str(target), "source_dir": str(source), **options}

@pytest.fixture
def orchestrator() -> InstallerOrchestrator:
    return create_installer_orchestrator()

# --------------------------------------------------------------------------- #
# Resolution
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize("state, integrity, expected", [
    (StateType.FRESH, None, InstallType.FRESH),
    (StateType.CURRENT_EXISTING, IntegrityReport(), InstallType.UPDATE),
    (StateType.CURRENT_EXISTING, IntegrityReport(missing=["a"]), InstallType.REPAIR),
    (StateType.CURRENT_EXISTING, IntegrityReport(modified=["a"]), InstallType.REPAIR),
    (StateType.LEGACY_EXISTING, None, InstallType.REPAIR),
    (StateType.UNKNOWN_EXISTING, None, InstallType.REPAIR),
])
def test_resolve_install_type(state, integrity, expected):
    assert resolve_install_type(InstallationState(type=state), integrity) == expected

# --------------------------------------------------------------------------- #
# Fresh
# --------------------------------------------------------------------------- #
def test_fresh_install_of_three_files(tmp_path: Path, orchestrator):
    source = write_tree(tmp_path / "dist", {
        "core/one.md": "1",
        "core/two.md": "2",
        "core/sub/three.md": "3",
    })
    target = tmp_path / "empty"
    target.mkdir()
    assert InstallationStateDetector().detect(target).type == StateType.FRESH

    result = orchestrator.install(request(target, source))

    assert result.success, result.error
    assert result.install_type == InstallType.FRESH
    assert ManifestFile(target).load().paths() == {"one.md", "two.md", "sub/three.md"}
    core = result.report.components[0]
    assert (core.added, core.modified, core.deleted, core.unchanged) == (3, 0, 0, 0)

def test_fresh_install_with_pack_and_integration(source_dist: Path, target_dir: Path, orchestrator):
    result = orchestrator.install(request(
        target_dir, source_dist, expansion_packs=["game-dev"], integrations=["editor"]
    ))

    assert result.success, result.error
    manifest = ManifestFile(target_dir).load()
    assert "agents/dev.md" in manifest.files
    assert "expansion-packs/game-dev/agents/designer.md" in manifest.files
    assert "integrations/editor/rules.md" in manifest.files
    assert manifest.distribution_version == "2.1.0"
    assert manifest.integrations == ["editor"]
    pack_manifest = ManifestFile(target_dir / "expansion-packs" / "game-dev").load()
    assert pack_manifest.distribution_version == "1.0.0"
    assert result.report.integrations == ["editor"]
    assert result.report.backup_path is None

def test_expansion_only_install_skips_core(source_dist: Path, target_dir: Path, orchestrator):
    result = orchestrator.install(request(
        target_dir, source_dist, expansion_only=True, expansion_packs=["game-dev"]
    ))

    assert result.success, result.error
    assert not (target_dir / "agents").exists()
    assert (target_dir / "expansion-packs/game-dev/agents/designer.md").exists()

# --------------------------------------------------------------------------- #
# Update
# --------------------------------------------------------------------------- #
def test_second_install_is_an_incremental_update(source_dist: Path, target_dir: Path, orchestrator):
    assert orchestrator.install(request(target_dir, source_dist)).success

    (source_dist / "core/agents/qa.md").write_text("# qa agent v2\n")
    (source_dist / "core/workflows/greenfield.yaml").unlink()
    (source_dist / "core/agents/pm.md").write_text("# pm\n")

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert result.install_type == InstallType.UPDATE
    core = result.report.components[0]
    assert (core.added, core.modified, core.deleted) == (1, 1, 1)
    assert result.report.backup_path.is_dir()
    assert (result.report.backup_path / "workflows/greenfield.yaml").exists()
    assert not (target_dir / "workflows/greenfield.yaml").exists()
    assert (target_dir / "agents/qa.md").read_text() == "# qa agent v2\n"

    source_manifest = ManifestBuilder().build(source_dist / "core")
    target_manifest = ManifestFile(target_dir).load()
    for path, record in source_manifest.files.items():
        assert target_manifest.files[path].checksum == record.checksum

def test_update_leaves_user_files_alone(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist))
    (target_dir / "my-notes.md").write_text("mine")

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.install_type == InstallType.UPDATE
    assert (target_dir / "my-notes.md").read_text() == "mine"
    assert "my-notes.md" not in ManifestFile(target_dir).load().files

def test_core_update_keeps_installed_packs(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist, expansion_packs=["game-dev"]))

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert (target_dir / "expansion-packs/game-dev/agents/designer.md").exists()
    assert "expansion-packs/game-dev/agents/designer.md" in ManifestFile(target_dir).load().files

def test_failed_backup_aborts_update_before_mutation(source_dist: Path, target_dir: Path):
    class FailingBackups:
        def create_backup(self, target):
            raise BackupError(target, "disk full")

    assert create_installer_orchestrator().install(request(target_dir, source_dist)).success
    (source_dist / "core/agents/qa.md").write_text("changed")

    result = create_installer_orchestrator(backups=FailingBackups()).install(request(target_dir, source_dist))

    assert not result.success
    assert result.phase == "handle"
    assert result.install_type == InstallType.UPDATE
    assert "disk full" in result.error
    assert (target_dir / "agents/qa.md").read_text() == "# qa agent\n"

# --------------------------------------------------------------------------- #
# Repair
# --------------------------------------------------------------------------- #
def test_missing_file_turns_update_into_repair(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist))
    (target_dir / "agents/qa.md").unlink()

    status = orchestrator.get_installation_status(target_dir)
    assert status.state == StateType.CURRENT_EXISTING
    assert status.integrity_valid is False

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert result.install_type == InstallType.REPAIR
    assert (target_dir / "agents/qa.md").read_text() == "# qa agent\n"
    assert result.report.components[0].modified == 1
    assert orchestrator.get_installation_status(target_dir).integrity_valid is True

def test_repair_restores_tampered_file(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist))
    (target_dir / "agents/dev.md").write_text("tampered")

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.install_type == InstallType.REPAIR
    assert (target_dir / "agents/dev.md").read_text() == "# dev agent\n"

def test_legacy_installation_is_repaired(source_dist: Path, target_dir: Path, orchestrator):
    write_tree(target_dir, {
        "agents/dev.md": "old dev",
        "agents/retired.md": "retired",
        "installation.json": json.dumps({
            "version": "3.0",
            "coreVersion": "1.0.0",
            "files": ["agents/dev.md", "agents/retired.md"],
        }),
    })

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert result.install_type == InstallType.REPAIR
    assert (target_dir / "agents/dev.md").read_text() == "# dev agent\n"
    assert not (target_dir / "agents/retired.md").exists()
    assert InstallationStateDetector().detect(target_dir).type == StateType.CURRENT_EXISTING

def test_unknown_content_is_repaired_without_deleting(source_dist: Path, target_dir: Path, orchestrator):
    write_tree(target_dir, {"agents/custom.md": "my agent", "agents/dev.md": "stale"})

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert result.install_type == InstallType.REPAIR
    assert (target_dir / "agents/custom.md").read_text() == "my agent"
    assert (target_dir / "agents/dev.md").read_text() == "# dev agent\n"
    assert "agents/custom.md" not in ManifestFile(target_dir).load().files

# --------------------------------------------------------------------------- #
# Fallback and failures
# --------------------------------------------------------------------------- #
def test_write_failure_falls_back_to_full_copy(source_dist: Path, target_dir: Path, orchestrator, monkeypatch):
    original = ChangeApplier._write_target

    def flaky(self, path: Path, data: bytes) -> None:
        if path.name == "qa.md":
            raise PermissionError(13, "Permission denied", str(path))
        original(self, path, data)

    monkeypatch.setattr(ChangeApplier, "_write_target", flaky)

    result = orchestrator.install(request(target_dir, source_dist))

    assert result.success, result.error
    assert result.report.used_fallback()
    source_manifest = ManifestBuilder().build(source_dist / "core")
    assert ManifestFile(target_dir).load().paths() == source_manifest.paths()
    assert (target_dir / "agents/qa.md").read_text() == "# qa agent\n"

def test_invalid_config_is_a_failed_result(tmp_path: Path, orchestrator):
    result = orchestrator.install({"directory": str(tmp_path), "unknown_option": True})

    assert result.success is False
    assert result.phase == "config"
    assert "unknown_option" in result.error

def test_missing_pack_fails_before_touching_target(source_dist: Path, target_dir: Path, orchestrator):
    result = orchestrator.install(request(target_dir, source_dist, expansion_packs=["nope"]))

    assert result.success is False
    assert result.phase == "resolve"
    assert "nope" in result.error
    assert not target_dir.exists()

def test_no_matching_handler(source_dist: Path, target_dir: Path):
    result = create_installer_orchestrator(handlers=[]).install(request(target_dir, source_dist))

    assert result.success is False
    assert result.phase == "handle"
    assert "No handler found" in result.error

def test_unexpected_errors_do_not_escape(source_dist: Path, target_dir: Path):
    class BrokenDetector:
        def detect(self, target):
            raise RuntimeError("boom")

    result = create_installer_orchestrator(detector=BrokenDetector()).install(request(target_dir, source_dist))

    assert result.success is False
    assert result.phase == "detect"
    assert result.error == "RuntimeError: boom"

# --------------------------------------------------------------------------- #
# Status / discovery
# --------------------------------------------------------------------------- #
def test_status_of_empty_directory(tmp_path: Path, orchestrator):
    status = orchestrator.get_installation_status(tmp_path)

    assert status.exists is False
    assert status.state == StateType.FRESH
    assert status.version == "unknown"
    assert status.integrity_valid is False

def test_status_of_installation(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist, expansion_packs=["game-dev"]))

    status = orchestrator.get_installation_status(target_dir)

    assert status.exists is True
    assert status.version == "2.1.0"
    assert status.integrity_valid is True
    assert status.installed_at is not None
    assert status.expansion_packs == {"game-dev": "1.0.0"}

def test_find_installation_probes_in_order(source_dist: Path, target_dir: Path, tmp_path: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist))
    empty = tmp_path / "empty"
    empty.mkdir()

    assert orchestrator.find_installation([tmp_path / "missing", empty, target_dir]) == target_dir.resolve()
    assert orchestrator.find_installation([empty]) is None

def test_update_reuses_installed_selection(source_dist: Path, target_dir: Path, orchestrator):
    orchestrator.install(request(target_dir, source_dist, expansion_packs=["game-dev"], integrations=["editor"]))
    (source_dist / "expansion-packs/game-dev/agents/designer.md").write_text("# designer v2\n")

    result = orchestrator.update(target_dir, source_dir=source_dist)

    assert result.success, result.error
    assert result.install_type == InstallType.UPDATE
    assert (target_dir / "expansion-packs/game-dev/agents/designer.md").read_text() == "# designer v2\n"
    assert ManifestFile(target_dir).load().integrations == ["editor"]

def test_update_finds_installation_and_source(source_dist: Path, tmp_path: Path, orchestrator, monkeypatch):
    target = tmp_path / "distkit"
    orchestrator.install(request(target, source_dist))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("DISTKIT_HOME", raising=False)
    monkeypatch.setenv("DISTKIT_SOURCE", str(source_dist))
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    result = orchestrator.update()

    assert result.success, result.error
    assert result.target_dir == target.resolve()

def test_update_without_installation(tmp_path: Path, orchestrator, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("DISTKIT_HOME", raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    result = orchestrator.update()

    assert result.success is False
    assert result.phase == "detect"
