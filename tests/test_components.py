# tests/test_components.py

from pathlib import Path

import pytest

from conftest import write_tree
from distkit.core.components import (
    ComponentKind,
    available_expansion_packs,
    component_version,
    read_component_info,
    resolve_components,
)
from distkit.core.exceptions import ComponentNotFoundError
from distkit.core.models import InstallConfig

def test_resolve_components_orders_core_packs_integrations(source_dist: Path, target_dir: Path):
    config = InstallConfig(
        directory=target_dir,
        source_dir=source_dist,
        expansion_packs=["game-dev"],
        integrations=["editor"],
    )

    components = resolve_components(config, target_dir)

    assert [c.kind for c in components] == [
        ComponentKind.CORE, ComponentKind.EXPANSION_PACK, ComponentKind.INTEGRATION
    ]
    assert components[0].target_dir == target_dir
    assert components[1].target_dir == target_dir / "expansion-packs" / "game-dev"
    assert components[2].scope == "integrations/editor"

def test_missing_core_raises(tmp_path: Path):
    config = InstallConfig(directory=tmp_path / "t", source_dir=tmp_path)

    with pytest.raises(ComponentNotFoundError) as exc:
        resolve_components(config, tmp_path / "t")
    assert exc.value.kind == "Core"

def test_component_info_from_yaml(source_dist: Path):
    assert read_component_info(source_dist / "core") == {"name": "core", "version": "2.1.0"}
    assert component_version(source_dist / "expansion-packs" / "game-dev") == "1.0.0"
    assert component_version(source_dist / "integrations" / "editor") is None

def test_malformed_component_yaml_is_ignored(tmp_path: Path):
    write_tree(tmp_path, {"config.yaml": "version: [unclosed"})
    assert read_component_info(tmp_path) == {}

def test_available_expansion_packs(source_dist: Path):
    assert available_expansion_packs(source_dist) == ["game-dev"]
