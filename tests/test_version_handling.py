# tests/test_version_handling.py

import pytest

from distkit.core.version_handling import (
    coerce_version,
    compare_versions,
    describe_version_change,
    validate_version,
)

@pytest.mark.parametrize("a, b, expected", [
    ("1.0.0", "1.0.1", -1),
    ("2.0.0", "1.9.9", 1),
    ("1.2", "1.2.0", 0),
    ("v4", "4.0.0", 0),
    ("1.0.0-beta.1", "1.0.0", -1),
    ("unknown", "0.0.1", -1),
    (None, None, 0),
    ("garbage", "unknown", 0),
])
def test_compare_versions(a, b, expected):
    assert compare_versions(a, b) == expected

def test_coerce_version_pads_missing_parts():
    assert str(coerce_version("v3.1")) == "3.1.0"
    assert coerce_version("latest") is None

def test_validate_version_is_strict():
    assert validate_version("1.2.3")
    assert not validate_version("1.2")

def test_describe_version_change():
    assert describe_version_change("1.0.0", "1.1.0") == "upgrade 1.0.0 → 1.1.0"
    assert describe_version_change("2.0.0", "1.1.0") == "downgrade 2.0.0 → 1.1.0"
    assert describe_version_change(None, "1.1.0") == "upgrade unknown → 1.1.0"
