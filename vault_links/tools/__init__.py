"""MCP tool definitions for vault link management.

Each tool module uses the @mcp.tool() decorator to auto-register its tools.
"""

# Import all tool modules to register their @mcp.tool() decorated functions
from vault_links.tools import vault_tools
from vault_links.tools import link_tools
from vault_links.tools import note_tools

__all__ = [
    "vault_tools",
    "link_tools",
    "note_tools",
]
