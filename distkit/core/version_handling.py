import re
from typing import Optional

import semver

UNKNOWN_VERSION = "unknown"

_LOOSE_VERSION_RE = re.compile(r"^\s*[vV]?(\d+)(?:\.(\d+))?(?:\.(\d+))?(.*)$")


def validate_version(version: str) -> bool:
    """
    Validates if the given version string is a valid SemVer version.

    Args:
        version (str): The version string to validate.
    """
    try:
        semver.Version.parse(version)
        return True
    except ValueError:
        return False


def coerce_version(version: Optional[str]) -> Optional[semver.Version]:
    """
    Parse ``version`` leniently: a leading "v" is dropped and missing minor or
    patch parts are padded with zeros ("2" -> 2.0.0, "v1.4" -> 1.4.0).

    Returns:
        The parsed version, or None when nothing numeric can be read.
    """
    if not version or version == UNKNOWN_VERSION:
        return None
    match = _LOOSE_VERSION_RE.match(str(version))
    if not match:
        return None
    major, minor, patch, rest = match.groups()
    candidate = f"{major}.{minor or 0}.{patch or 0}{rest.strip()}"
    try:
        return semver.Version.parse(candidate)
    except ValueError:
        # Trailing junk that is not a valid pre-release/build suffix
        return semver.Version(int(major), int(minor or 0), int(patch or 0))


def compare_versions(a: Optional[str], b: Optional[str]) -> int:
    """
    Compare two version strings.

    Returns -1, 0 or 1. Unreadable or unknown versions sort below every
    readable one and are equal to each other.
    """
    va, vb = coerce_version(a), coerce_version(b)
    if va is None and vb is None:
        return 0
    if va is None:
        return -1
    if vb is None:
        return 1
    return va.compare(vb)


def describe_version_change(installed: Optional[str], available: Optional[str]) -> str:
    """Short human description of moving from ``installed`` to ``available``."""
    installed = installed or UNKNOWN_VERSION
    available = available or UNKNOWN_VERSION
    cmp = compare_versions(installed, available)
    if cmp < 0:
        return f"upgrade {installed} → {available}"
    if cmp > 0:
        return f"downgrade {installed} → {available}"
    return f"reinstall {available}"
