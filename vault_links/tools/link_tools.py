"""Link management MCP tools: batch moves, validation, analytics, backlinks.

All tools delegate to the core operations in vault_links.core.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from vault_links.server import get_registry, mcp
from vault_links.models import (
    AnalyzeVaultInput,
    BacklinksInput,
    MoveNotesInput,
    ValidateLinksInput,
)
from vault_links.core.analytics import analyze_vault
from vault_links.core.link_index import build_index
from vault_links.core.link_validation import validate_links
from vault_links.core.move_operations import apply_move
from vault_links.core.note_operations import find_backlinks


# ==============================================================================
# MOVE OPERATIONS
# ==============================================================================

# Moves notes/folders and rewrites every link that referenced them.
@mcp.tool()
async def move_notes(
    input: MoveNotesInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Move or rename notes and folders, keeping every link pointing at them.

    The whole batch is validated before any file changes. Files are moved first,
    then every note whose links referenced a moved note is rewritten.

    Args:
        input (MoveNotesInput): Validated input containing:
            - moves (list): [{"source": "Notes/B", "destination": "Archive/B"}, ...]
                A folder source moves every note inside it.
            - force (bool): Overwrite existing destinations (default False)
            - dry_run (bool): Only report what would change (default False)
            - vault (str, optional): Vault name (omit to use active vault)

    Returns:
        {
            "vault": str,
            "status": "moved" | "planned",
            "files_link_updated": int,  # Files, not links
            "moved": [{"from": str, "to": str}],
            "folders": [{"from": str, "to": str}],
            "files": [{"note", "original_note", "path", "rewrites": [...]}],
            "conflicts": [],
            "errors": [{"path", "operation", "error"}]
        }

    Error Handling:
        - Missing source, escaping or duplicate destination → Error listing every problem
        - Destination exists without force → Error naming every colliding path
        - A file could not be moved → Error; completed moves are rolled back
    """
    vault = get_registry().resolve(input.vault, ctx)
    report = apply_move(
        vault,
        [move.as_tuple() for move in input.moves],
        force=input.force,
        dry_run=input.dry_run,
    )
    return report.as_payload()


# ==============================================================================
# LINK HEALTH
# ==============================================================================

@mcp.tool()
async def validate_vault_links(
    input: ValidateLinksInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Find broken links and suggest (or apply) repairs.

    Args:
        input (ValidateLinksInput): Validated input containing:
            - fix (bool): Rewrite wiki links with exactly one candidate note
            - types (list): "wiki" and/or "markdown"
            - vault (str, optional): Vault name (omit to use active vault)

    Returns:
        {
            "vault": str,
            "broken_count": int,
            "fixed_count": int,
            "broken": [{"source", "type", "text", "target", "suggestions"}],
            "fixed": [{"source", "original", "replacement", "target"}],
            "errors": [...]
        }
    """
    vault = get_registry().resolve(input.vault, ctx)
    index = build_index(vault)
    return validate_links(index, fix=input.fix, types=input.types).as_payload()


@mcp.tool()
async def analyze_vault_links(
    input: AnalyzeVaultInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Report orphan notes, the tag hierarchy, and link graph statistics.

    Args:
        input (AnalyzeVaultInput): Validated input containing:
            - exclude_folders (list, optional): Extra folder names to skip
            - vault (str, optional): Vault name (omit to use active vault)

    Returns:
        {"vault", "orphans", "tag_hierarchy", "tags", "graph", "links", "content", "warnings", "errors"}
    """
    vault = get_registry().resolve(input.vault, ctx)
    index = build_index(vault, input.exclude_folders)
    return analyze_vault(index)


@mcp.tool()
async def find_note_backlinks(
    input: BacklinksInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """List notes that link to a note, with the lines containing the links.

    Returns:
        {"vault", "note", "count", "backlinks": [{"note", "lines": [{"line", "text", "link"}]}]}

    Error Handling:
        - Note not found → Error with note identifier
    """
    vault = get_registry().resolve(input.vault, ctx)
    index = build_index(vault)
    return find_backlinks(index, input.title)
