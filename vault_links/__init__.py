"""Vault Links

Link-aware note moves, link validation, and vault analytics for markdown vaults,
with a Model Context Protocol server on top.
"""

from vault_links.data_models import VaultMetadata, VaultConfiguration
from vault_links.session import SessionRegistry, VaultContext
from vault_links.server import mcp, run_server

# Import tools to register them with the MCP server
from vault_links import tools  # noqa: F401

__version__ = "0.1.0"
__all__ = [
    "VaultMetadata",
    "VaultConfiguration",
    "SessionRegistry",
    "VaultContext",
    "mcp",
    "run_server",
]
