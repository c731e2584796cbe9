# distkit/core/global_config.py

import os
from pathlib import Path
from typing import Optional, Any

import yaml

from distkit.core.constants import DEFAULT_MAX_WORKERS

def global_config_path() -> Path:
    """Location of the per-user config file (``~/.distkit/config.yaml``)."""
    return Path.home() / ".distkit" / "config.yaml"

def get_default_source() -> Optional[Path]:
    """
    Get the default source distribution from:
    1. Environment variable DISTKIT_SOURCE
    2. Global config ~/.distkit/config.yaml
    3. None (the caller must ask for one)
    """

    # 1. Env var (highest priority)
    if env_source := os.getenv("DISTKIT_SOURCE"):
        return Path(env_source)

    # 2. Global config
    config = load_global_config()
    if config and config.get("source"):
        return Path(config["source"])

    return None

def get_max_workers() -> int:
    config = load_global_config()
    if config and isinstance(config.get("max-workers"), int) and config["max-workers"] > 0:
        return config["max-workers"]

    return DEFAULT_MAX_WORKERS

def get_home_dir() -> Optional[Path]:
    """Installation directory named by DISTKIT_HOME, if set."""
    if env_home := os.getenv("DISTKIT_HOME"):
        return Path(env_home)
    return None

def load_global_config() -> Optional[dict]:
    """Load config from ~/.distkit/config.yaml"""
    config_path = global_config_path()

    if not config_path.exists():
        return None

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return None
    return data if isinstance(data, dict) else None

def set_global(key: str, value: Any):
    """Set global configuration key in ~/.distkit/config.yaml"""
    config_path = global_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # Load existing config or create new
    config = load_global_config() or {}
    config[key] = value

    config_path.write_text(yaml.dump(config, default_flow_style=False), encoding="utf-8")

def set_global_source(source: str):
    set_global("source", str(Path(source).expanduser().resolve()))

def set_global_max_workers(count: int):
    set_global("max-workers", count)
