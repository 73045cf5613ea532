"""Note lifecycle MCP tools: deletion and tag editing.

All tools delegate to core operations in vault_links.core.note_operations.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from vault_links.server import get_registry, mcp
from vault_links.models import DeleteNoteInput, EditTagsInput
from vault_links.core.note_operations import add_tags, delete_note, remove_tags


# Refuses while backlinks exist unless check_backlinks=False.
@mcp.tool()
async def delete_vault_note(
    input: DeleteNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Delete a note, moving it to .trash by default.

    Args:
        input (DeleteNoteInput): Validated input containing:
            - title (str): Note identifier
            - check_backlinks (bool): Refuse while other notes link here (default True)
            - to_trash (bool): Move to .trash instead of deleting (default True)
            - vault (str, optional): Vault name (omit to use active vault)

    Returns:
        {"vault", "note", "status": "trashed" | "deleted", "trash_path", "backlinks"}

    Error Handling:
        - Note not found → Error with note identifier
        - Note has backlinks → Error listing the linking notes
    """
    vault = get_registry().resolve(input.vault, ctx)
    return delete_note(
        vault,
        input.title,
        check_backlinks=input.check_backlinks,
        to_trash=input.to_trash,
    )


@mcp.tool()
async def edit_note_tags(
    input: EditTagsInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Add and/or remove tags on a note.

    Added tags go into the frontmatter ``tags`` list. Removed tags are taken out of
    the frontmatter and out of inline ``#tag`` text.

    Returns:
        {"vault", "note", "added": {...} | None, "removed": {...} | None}
    """
    vault = get_registry().resolve(input.vault, ctx)
    added = add_tags(vault, input.title, input.add) if input.add else None
    removed = remove_tags(vault, input.title, input.remove) if input.remove else None
    return {
        "vault": vault.name,
        "note": input.title,
        "added": added,
        "removed": removed,
    }
