"""MCP tools for vault selection."""

import logging
from typing import Any

from mcp.server.fastmcp import Context

from vault_links.server import get_registry, mcp
from vault_links.models import ListVaultsInput, SetActiveVaultInput

logger = logging.getLogger(__name__)


@mcp.tool()
async def list_vaults(
    input: ListVaultsInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """List configured vaults and the vault active for this session.

    Args:
        input (ListVaultsInput): Validated input (no fields required)
        ctx (Context, optional): FastMCP context for session state

    Returns:
        {
            "default": str,
            "active": str | None,
            "vaults": [{"name", "path", "description", "exists", "exclude_folders"}]
        }

    Error Handling:
        - Config file missing → Error with expected config path
        - Invalid config format → Error describing the offending entry
    """
    registry = get_registry()
    active = None
    if ctx is not None:
        try:
            active = registry.get_active(ctx).name
        except ValueError:
            active = None

    payload = registry.configuration.as_payload()
    payload["active"] = active
    return payload


@mcp.tool()
async def set_active_vault(
    input: SetActiveVaultInput,
    ctx: Context,
) -> dict[str, Any]:
    """Set the active vault for this conversation session.

    Tool calls that omit the vault parameter use the active vault afterwards.

    Args:
        input (SetActiveVaultInput): Validated input containing:
            - vault (str): Vault name from vaults.yaml
            - exclude_folders (list, optional): Extra folders to skip this session
            - case_sensitive (bool, optional): Override note name comparison
        ctx (Context): FastMCP context for session state

    Returns:
        {"vault", "path", "status": "active", "exclude_folders", "case_sensitive"}

    Error Handling:
        - Unknown vault → Error listing configured vaults
    """
    registry = get_registry()
    vault = registry.set_active(
        ctx,
        input.vault,
        exclude_folders=input.exclude_folders,
        case_sensitive=input.case_sensitive,
    )
    logger.info("Active vault for session %s set to '%s'", registry.session_key(ctx), vault.name)
    return {
        "vault": vault.name,
        "path": str(vault.root),
        "status": "active",
        "exclude_folders": sorted(vault.exclude_folders),
        "case_sensitive": vault.case_sensitive,
    }
