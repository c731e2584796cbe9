# distkit/core/components.py

"""
Installable components of a distribution.

A distribution root holds the core under ``<core_dir>/``, expansion packs
under ``expansion-packs/<id>/`` and integration bundles under
``integrations/<name>/``. In the target, the core lands at the root and the
others keep their sub-directory, so each component owns a disjoint subtree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from distkit.core.constants import (
    COMPONENT_CONFIG_FILE,
    EXPANSION_PACKS_DIR,
    INTEGRATIONS_DIR,
)
from distkit.core.exceptions import ComponentNotFoundError
from distkit.core.file_ops import is_skipped
from distkit.core.models import InstallConfig, Manifest, is_under

# Subtrees of the target that the core never owns
NON_CORE_PREFIXES = (EXPANSION_PACKS_DIR, INTEGRATIONS_DIR)

class ComponentKind(str, Enum):
    CORE = "core"
    EXPANSION_PACK = "expansion-pack"
    INTEGRATION = "integration"

# ==============================================================
# TYPE DEFINITIONS
# ==============================================================

@dataclass(frozen=True)
class Component:
    """One unit of installation: a source subtree and where it goes."""
    kind: ComponentKind
    name: str
    source_dir: Path
    target_dir: Path
    scope: Optional[str] = None  # prefix inside the target root; None for the core

    @property
    def label(self) -> str:
        if self.kind == ComponentKind.CORE:
            return "core"
        return f"{self.kind.value}:{self.name}"

    @property
    def has_own_manifest(self) -> bool:
        return self.kind == ComponentKind.EXPANSION_PACK

    def owns(self, target_path: str) -> bool:
        """True if ``target_path`` (relative to the target root) belongs to this component."""
        if self.scope is None:
            return not any(is_under(target_path, prefix) for prefix in NON_CORE_PREFIXES)
        return is_under(target_path, self.scope)

    def target_path(self, rel_path: str) -> str:
        """Map a path relative to the component to one relative to the target root."""
        return rel_path if self.scope is None else f"{self.scope}/{rel_path}"

    def baseline(self, root_manifest: Optional[Manifest]) -> Optional[Manifest]:
        """The part of the target's root manifest this component owns."""
        if root_manifest is None:
            return None
        if self.scope is None:
            return root_manifest.excluding(NON_CORE_PREFIXES)
        return root_manifest.scoped(self.scope)

# ==============================================================
# COMPONENT METADATA
# ==============================================================

def read_component_info(directory: Path) -> Dict[str, Any]:
    """Read ``config.yaml`` of a component. Missing or malformed files give {}."""
    config_file = Path(directory) / COMPONENT_CONFIG_FILE
    if not config_file.is_file():
        return {}
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}

def component_version(directory: Path) -> Optional[str]:
    version = read_component_info(directory).get("version")
    return str(version) if version is not None else None

def list_subdirectories(directory: Path) -> List[str]:
    """Names of the non-skipped sub-directories of ``directory`` (sorted)."""
    if not Path(directory).is_dir():
        return []
    return sorted(
        p.name for p in Path(directory).iterdir()
        if p.is_dir() and not is_skipped(p.name)
    )

def available_expansion_packs(source_dir: Path) -> List[str]:
    return list_subdirectories(Path(source_dir) / EXPANSION_PACKS_DIR)

def installed_expansion_packs(target_dir: Path) -> List[str]:
    return list_subdirectories(Path(target_dir) / EXPANSION_PACKS_DIR)

# ==============================================================
# RESOLUTION
# ==============================================================

def resolve_components(config: InstallConfig, target_dir: Path) -> List[Component]:
    """
    Turn an install request into the ordered list of components to apply.

    Raises:
        ComponentNotFoundError: A requested component is not in the source.
    """
    source_dir = Path(config.source_dir)
    target_dir = Path(target_dir)
    components: List[Component] = []

    if config.installs_core():
        core_source = source_dir / config.core_dir
        if not core_source.is_dir():
            raise ComponentNotFoundError("Core", config.core_dir, core_source)
        components.append(Component(ComponentKind.CORE, "core", core_source, target_dir))

    for pack_id in config.expansion_packs:
        pack_source = source_dir / EXPANSION_PACKS_DIR / pack_id
        if not pack_source.is_dir():
            raise ComponentNotFoundError("Expansion pack", pack_id, pack_source)
        scope = f"{EXPANSION_PACKS_DIR}/{pack_id}"
        components.append(Component(
            ComponentKind.EXPANSION_PACK, pack_id, pack_source, target_dir / scope, scope
        ))

    for name in config.integrations:
        integration_source = source_dir / INTEGRATIONS_DIR / name
        if not integration_source.is_dir():
            raise ComponentNotFoundError("Integration", name, integration_source)
        scope = f"{INTEGRATIONS_DIR}/{name}"
        components.append(Component(
            ComponentKind.INTEGRATION, name, integration_source, target_dir / scope, scope
        ))

    return components
