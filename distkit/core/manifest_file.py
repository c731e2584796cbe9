# distkit/core/manifest_file.py

"""
Manifest persistence.

The manifest is stored as JSON at a fixed path under the directory it
describes. It is the sole record of what was installed there.
"""

from typing import Any, Dict, Optional
from pathlib import Path
import json

from pydantic import ValidationError

from distkit.core.constants import MANIFEST_FILE, MANIFEST_FORMAT_VERSION
from distkit.core.exceptions import FileSystemError, ManifestLoadError
from distkit.core.models import Manifest

# ==============================================================
# SERIALIZATION
# ==============================================================

def serialize_manifest(manifest: Manifest) -> str:
    """Render a manifest as the JSON document stored on disk."""
    data = manifest.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False)

def parse_manifest_data(data: Any, source: str = "<memory>") -> Manifest:
    """
    Validate an already-decoded document against the current schema.

    Raises:
        ManifestLoadError: The document is not a current-format manifest.
    """
    if not isinstance(data, dict):
        raise ManifestLoadError(source, "manifest must be a JSON object")
    version = str(data.get("version", ""))
    if version.split(".")[0] != MANIFEST_FORMAT_VERSION.split(".")[0]:
        raise ManifestLoadError(source, f"unsupported manifest version '{version or 'missing'}'")
    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ManifestLoadError(source, str(e))

def parse_manifest(text: str, source: str = "<memory>") -> Manifest:
    """Parse the JSON text produced by ``serialize_manifest``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestLoadError(source, f"invalid JSON: {e}")
    return parse_manifest_data(data, source)

# ==============================================================
# MANIFEST FILE CLASS
# ==============================================================

class ManifestFile:
    """Reads and writes the manifest stored in a directory."""

    def __init__(self, directory: str | Path):
        self.directory: Path = Path(directory)
        self.path: Path = self.directory / MANIFEST_FILE
        self._data: Optional[Manifest] = None

    def exists(self) -> bool:
        return self.path.is_file()

    def read_document(self) -> Dict[str, Any]:
        """
        Return the raw decoded JSON document.

        Raises:
            FileSystemError: The file cannot be read.
            ManifestLoadError: The file is not valid JSON.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise FileSystemError("read", self.path, e)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestLoadError(str(self.path), f"invalid JSON: {e}")
        if not isinstance(data, dict):
            raise ManifestLoadError(str(self.path), "manifest must be a JSON object")
        return data

    def load(self) -> Manifest:
        """Load and validate the manifest, caching it."""
        self._data = parse_manifest_data(self.read_document(), str(self.path))
        return self._data

    def load_optional(self) -> Optional[Manifest]:
        """Load the manifest, or return None if it is absent or unreadable."""
        if not self.exists():
            return None
        try:
            return self.load()
        except (FileSystemError, ManifestLoadError):
            return None

    def save(self, manifest: Manifest) -> None:
        """Persist ``manifest``, replacing whatever was stored before."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(serialize_manifest(manifest), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise FileSystemError("write", self.path, e)
        self._data = manifest

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise FileSystemError("delete", self.path, e)
        self._data = None
