"""Module-level constants for the vault link manager."""

from pathlib import Path

# Configuration
CONFIG_PATH = Path(__file__).parent.parent / "vaults.yaml"
CONFIG_ENV_VAR = "VAULT_LINKS_CONFIG"

# Directory walk
DEFAULT_EXCLUDED_FOLDERS = (".obsidian", ".trash", "node_modules")
MARKDOWN_SUFFIX = ".md"
TRASH_FOLDER = ".trash"

# Limits
MAX_FRONTMATTER_BYTES = 10_240
MAX_SUGGESTIONS = 3
FUZZY_WORD_CUTOFF = 0.8

# Logging
LOG_LEVEL = "INFO"
