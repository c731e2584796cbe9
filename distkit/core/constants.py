# ==============================================================
# CONSTANTS
# ==============================================================

MANIFEST_FILE = ".distkit-manifest.json"
MANIFEST_FORMAT_VERSION = "1.0.0"

# Checked in order when the current manifest is absent
LEGACY_MANIFEST_FILES = (
    ".distkit-install.json",
    "distkit-config.json",
    "installation.json",
)

# Paths whose presence means "something was installed here before"
CONTENT_MARKERS = (
    "src",
    "extensions",
    "core",
    "expansion-packs",
    ".distkit",
    "agents",
    "workflows",
    "templates",
)

# fnmatch patterns applied to every path segment
SKIP_PATTERNS = (
    ".git",
    "node_modules",
    ".distkit-cache",
    "__pycache__",
    ".DS_Store",
    "Thumbs.db",
    "*.tmp",
    "*.swp",
    MANIFEST_FILE,
)

CORE_DIR = "core"
EXPANSION_PACKS_DIR = "expansion-packs"
INTEGRATIONS_DIR = "integrations"
COMPONENT_CONFIG_FILE = "config.yaml"

BACKUPS_SUFFIX = "-backups"

DEFAULT_MAX_WORKERS = 8
DEFAULT_CACHE_MAX_ENTRY_BYTES = 4 * 1024 * 1024
