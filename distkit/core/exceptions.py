# distkit/core/exceptions.py

"""
distkit domain-specific exceptions.

Library code raises these; the orchestrator turns them into failed install
results and the CLI layer turns them into exit codes.
"""

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

class DistKitError(Exception):
    """Base exception for all distkit errors."""
    pass

# ==============================================================
# FILESYSTEM ERRORS
# ==============================================================

class FileSystemError(DistKitError):
    """Raised when a read, write, stat or delete fails."""
    def __init__(self, operation: str, path: PathLike, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = str(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Cannot {operation} '{self.path}'{detail}")

class ApplyError(DistKitError):
    """Raised when a change set could only be partially applied."""
    def __init__(self, phase: str, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Apply failed during {phase}: {cause}")

class FallbackCopyError(DistKitError):
    """Raised when the full-copy fallback itself fails. Always fatal."""
    def __init__(self, source: PathLike, target: PathLike, phase: str, cause: BaseException):
        self.source = str(source)
        self.target = str(target)
        self.phase = phase
        self.cause = cause
        super().__init__(
            f"Full copy fallback failed ({phase}):\n"
            f"    source → {self.source}\n"
            f"    target → {self.target}\n"
            f"    cause  → {cause}"
        )

# ==============================================================
# INSTALLATION ERRORS
# ==============================================================

class IntegrityError(DistKitError):
    """Raised when content does not match its recorded checksum."""
    def __init__(self, path: str, expected: Optional[str], actual: Optional[str]):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for '{path}': expected {(expected or '?')[:12]}, got {(actual or '?')[:12]}"
        )

class ConfigError(DistKitError):
    """Raised when an install request is malformed."""
    def __init__(self, details: str):
        self.details = details
        super().__init__(f"Invalid install configuration: {details}")

class StateDetectionError(DistKitError):
    """Raised inside the detector; never escapes detect()."""
    pass

class BackupError(DistKitError):
    """Raised when a pre-update backup cannot be created or verified."""
    def __init__(self, target: PathLike, details: str):
        self.target = str(target)
        self.details = details
        super().__init__(f"Backup of '{self.target}' failed: {details}")

class NoHandlerError(DistKitError):
    """Raised when no registered handler accepts an installation context."""
    def __init__(self, install_type: str):
        self.install_type = install_type
        super().__init__(f"No handler found for installation type: {install_type}")

class ComponentNotFoundError(DistKitError):
    """Raised when a requested component is missing from the source distribution."""
    def __init__(self, kind: str, name: str, path: PathLike):
        self.kind = kind
        self.name = name
        self.path = str(path)
        super().__init__(f"{kind} '{name}' not found in source distribution:\n    → {self.path}")

# ==============================================================
# MANIFEST ERRORS
# ==============================================================

class ManifestError(DistKitError):
    """Base exception for manifest-related errors."""
    pass

class ManifestLoadError(ManifestError):
    """Raised when a manifest file exists but cannot be parsed."""
    def __init__(self, path: str, details: str):
        self.path = path
        self.details = details
        super().__init__(f"Error reading manifest {path}: {details}")
