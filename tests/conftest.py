# tests/conftest.py

from pathlib import Path
from typing import Dict

import pytest

def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create ``files`` (relative path -> text) under ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root

# --------------------------------------------------------------------------- #
# Fixtures
# --------------------------------------------------------------------------- #
@pytest.fixture
def source_dist(tmp_path: Path) -> Path:
    """Source distribution with a core, one expansion pack and one integration."""
    root = tmp_path / "dist"
    write_tree(root, {
        "core/config.yaml": "name: core\nversion: 2.1.0\n",
        "core/agents/dev.md": "# dev agent\n",
        "core/agents/qa.md": "# qa agent\n",
        "core/workflows/greenfield.yaml": "steps: []\n",
        "expansion-packs/game-dev/config.yaml": "name: game-dev\nversion: 1.0.0\n",
        "expansion-packs/game-dev/agents/designer.md": "# designer\n",
        "integrations/editor/rules.md": "# editor rules\n",
    })
    return root

@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    return tmp_path / "project"
