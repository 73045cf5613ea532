"""FastMCP server initialization, vault registry, and entry point."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from vault_links.config import load_vault_configuration
from vault_links.constants import LOG_LEVEL
from vault_links.session import SessionRegistry

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("vault_links")

# Tool modules are imported in __init__.py to register all @mcp.tool() decorators

_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    """Return the server's session registry, loading ``vaults.yaml`` on first use."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(load_vault_configuration())
    return _registry


def set_registry(registry: Optional[SessionRegistry]) -> None:
    """Replace the server's session registry (``None`` reloads configuration lazily)."""
    global _registry
    _registry = registry


def run_server():
    """Start the MCP server with stdio transport."""
    registry = get_registry()
    logging.basicConfig(level=registry.configuration.log_level or LOG_LEVEL)
    logger.info(
        "Starting vault links MCP server (%d vault(s), default '%s')",
        len(registry.configuration.vaults),
        registry.configuration.default_vault,
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
