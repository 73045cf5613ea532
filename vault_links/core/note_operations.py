"""Note lifecycle operations that must keep the link graph in view."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import frontmatter
import yaml

from vault_links.constants import MAX_FRONTMATTER_BYTES, TRASH_FOLDER
from vault_links.core.link_index import LinkIndex, build_index, resolve_link
from vault_links.core.parser import extract_links, frontmatter_tags, parse_frontmatter
from vault_links.core.vault_operations import identity_name
from vault_links.errors import NoteHasBacklinksError
from vault_links.session import VaultContext

logger = logging.getLogger(__name__)

_TAG_END = r"(?=[\s.,;:!?)\]}\"']|$)"


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _as_context(vault: VaultContext | Path | str) -> VaultContext:
    return vault if isinstance(vault, VaultContext) else VaultContext.for_path(vault)


def _require_note(index: LinkIndex, identity: str):
    note = index.get(identity)
    if note is None:
        raise FileNotFoundError(f"Note '{identity}' not found in vault '{index.vault.name}'.")
    return note


def _normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip ``#`` and surrounding slashes; reject empty tags or tags with spaces.

    Raises:
        ValueError: If a tag is empty or contains whitespace.
    """
    cleaned: list[str] = []
    for raw in tags:
        tag = str(raw).strip().lstrip("#").strip("/")
        if not tag:
            raise ValueError("Tags cannot be empty.")
        if any(char.isspace() for char in tag):
            raise ValueError(f"Tag '{raw}' cannot contain whitespace.")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def _load_post(note_path: Path) -> frontmatter.Post:
    """Load a note for editing.

    Raises:
        ValueError: If the note is not UTF-8 or its frontmatter is not valid YAML.
    """
    try:
        raw_text = note_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"Note '{note_path.name}' is not UTF-8 encoded and cannot be edited.") from exc
    try:
        post = frontmatter.loads(raw_text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Frontmatter contains invalid YAML: {exc}") from exc

    _, body, warnings = parse_frontmatter(raw_text)
    if warnings and body == raw_text:
        # An unusable leading block stays in the body verbatim.
        return frontmatter.Post(raw_text)
    return post


def _save_post(note_path: Path, post: frontmatter.Post) -> None:
    """Serialize a post back to disk, dropping the block when metadata is empty.

    Raises:
        ValueError: If the frontmatter would exceed the size limit.
    """
    if not post.metadata:
        note_path.write_text(post.content, encoding="utf-8")
        return
    dumped = yaml.safe_dump(dict(post.metadata), sort_keys=False, allow_unicode=True)
    if len(dumped.encode("utf-8")) > MAX_FRONTMATTER_BYTES:
        raise ValueError(f"Frontmatter exceeds maximum size of {MAX_FRONTMATTER_BYTES // 1024}KB.")
    note_path.write_text(frontmatter.dumps(post) + "\n", encoding="utf-8")


def _trash_destination(vault: VaultContext, identity: str) -> Path:
    trash = vault.root / TRASH_FOLDER
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    candidate = trash / f"{identity_name(identity)}_{stamp}.md"
    counter = 1
    while candidate.exists():
        candidate = trash / f"{identity_name(identity)}_{stamp}_{counter}.md"
        counter += 1
    return candidate


# ==============================================================================
# BACKLINKS
# ==============================================================================


def find_backlinks(index: LinkIndex, identity: str) -> dict[str, Any]:
    """List the notes linking to ``identity`` with the lines that contain the links.

    Returns:
        ``{"vault", "note", "count", "backlinks": [{"note", "lines": [...]}]}``.

    Raises:
        FileNotFoundError: If the note is not in the index.
    """
    target = _require_note(index, identity).identity
    backlinks: list[dict[str, Any]] = []
    for source in index.inbound_links(target):
        note = index.notes[source]
        lines: list[dict[str, Any]] = []
        for line_number, line in enumerate(note.body.splitlines(), start=1):
            for link in extract_links(line):
                if resolve_link(index.resolver, link, source) == target:
                    lines.append({"line": line_number, "text": line.strip(), "link": link.text})
        backlinks.append({"note": source, "lines": lines})

    return {
        "vault": index.vault.name,
        "note": target,
        "count": len(backlinks),
        "backlinks": backlinks,
    }


# ==============================================================================
# NOTE OPERATIONS
# ==============================================================================


def delete_note(
    vault: VaultContext | Path | str,
    identity: str,
    check_backlinks: bool = True,
    to_trash: bool = True,
) -> dict[str, Any]:
    """Delete a note, refusing while other notes still link to it.

    Args:
        vault: Vault context, or a vault root directory.
        identity: Note to delete.
        check_backlinks: Refuse when inbound links (other than self-links) exist.
        to_trash: Move the file to ``.trash/<name>_<timestamp>.md`` instead of
            unlinking it.

    Returns:
        ``{"vault", "note", "status", "trash_path", "backlinks"}``.

    Raises:
        FileNotFoundError: If the note does not exist.
        NoteHasBacklinksError: If ``check_backlinks`` is set and the note is linked.
    """
    context = _as_context(vault)
    index = build_index(context)
    note = _require_note(index, identity)
    backlinks = [source for source in index.inbound_links(note.identity) if source != note.identity]
    if check_backlinks and backlinks:
        raise NoteHasBacklinksError(note.identity, backlinks)

    note_path = context.root / note.path
    trash_path: Optional[str] = None
    if to_trash:
        destination = _trash_destination(context, note.identity)
        destination.parent.mkdir(parents=True, exist_ok=True)
        note_path.rename(destination)
        trash_path = destination.relative_to(context.root).as_posix()
    else:
        note_path.unlink()

    logger.info(
        "Deleted note '%s' in vault '%s' (%s)",
        note.identity,
        context.name,
        f"moved to {trash_path}" if trash_path else "permanently",
    )
    return {
        "vault": context.name,
        "note": note.identity,
        "status": "trashed" if to_trash else "deleted",
        "trash_path": trash_path,
        "backlinks": backlinks,
    }


def add_tags(vault: VaultContext | Path | str, identity: str, tags: Iterable[str]) -> dict[str, Any]:
    """Add tags to a note's frontmatter ``tags`` list.

    A comma-separated ``tags`` string is converted to a list. Tags already present
    are left alone.

    Returns:
        ``{"vault", "note", "status", "tags", "added"}``.
    """
    context = _as_context(vault)
    wanted = _normalize_tags(tags)
    index = build_index(context)
    note = _require_note(index, identity)
    note_path = context.root / note.path

    post = _load_post(note_path)
    current = frontmatter_tags(post.metadata)
    added = [tag for tag in wanted if tag not in current]
    if not added:
        return {"vault": context.name, "note": note.identity, "status": "unchanged", "tags": current, "added": []}

    post.metadata["tags"] = [*current, *added]
    _save_post(note_path, post)
    logger.info("Added tags %s to note '%s' in vault '%s'", ", ".join(added), note.identity, context.name)
    return {
        "vault": context.name,
        "note": note.identity,
        "status": "updated",
        "tags": post.metadata["tags"],
        "added": added,
    }


def remove_tags(vault: VaultContext | Path | str, identity: str, tags: Iterable[str]) -> dict[str, Any]:
    """Remove tags from a note's frontmatter and strip matching inline ``#tag`` text.

    Nested descendants (``#tag/child``) are not removed.

    Returns:
        ``{"vault", "note", "status", "tags", "removed", "inline_removed"}``.
    """
    context = _as_context(vault)
    unwanted = _normalize_tags(tags)
    index = build_index(context)
    note = _require_note(index, identity)
    note_path = context.root / note.path

    post = _load_post(note_path)
    current = frontmatter_tags(post.metadata)
    remaining = [tag for tag in current if tag not in unwanted]
    removed = [tag for tag in current if tag in unwanted]

    inline_removed = 0
    body = post.content
    for tag in unwanted:
        pattern = re.compile(r"(?<![\w#/&\[(])#" + re.escape(tag) + _TAG_END)
        body, count = pattern.subn("", body)
        inline_removed += count
        if count and tag not in removed:
            removed.append(tag)

    if not removed:
        return {
            "vault": context.name,
            "note": note.identity,
            "status": "unchanged",
            "tags": current,
            "removed": [],
            "inline_removed": 0,
        }

    post.content = body
    if "tags" in post.metadata:
        if remaining:
            post.metadata["tags"] = remaining
        else:
            del post.metadata["tags"]
    _save_post(note_path, post)
    logger.info("Removed tags %s from note '%s' in vault '%s'", ", ".join(removed), note.identity, context.name)
    return {
        "vault": context.name,
        "note": note.identity,
        "status": "updated",
        "tags": remaining,
        "removed": removed,
        "inline_removed": inline_removed,
    }
