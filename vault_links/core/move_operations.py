"""Batch note/folder moves with link rewriting across the vault.

A batch is validated as a whole before anything touches the disk. Execution
then happens in two phases: every file is physically moved (rolled back if any
move fails), and only then are link rewrites written, one file at a time. A
failed rewrite skips that file and is reported; it never aborts the batch.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from vault_links.core.link_index import LinkIndex, build_index
from vault_links.core.parser import (
    MARKDOWN_LINK_RE,
    WIKILINK_RE,
    markdown_link_from_match,
    wiki_link_from_match,
)
from vault_links.core.resolver import RELATIVE, NoteResolver
from vault_links.core.vault_operations import (
    canonical_identity,
    identity_folder,
    identity_name,
    resolve_folder_path,
    resolve_note_path,
)
from vault_links.data_models import (
    MARKDOWN,
    WIKI,
    FileIssue,
    FileRewrite,
    Link,
    LinkRewrite,
    MoveRecord,
    MoveReport,
)
from vault_links.errors import BatchValidationError, MoveConflictError, MoveExecutionError
from vault_links.session import VaultContext

logger = logging.getLogger(__name__)

MoveSpec = Union[MoveRecord, tuple[str, str], Mapping[str, str]]


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _coerce_move(spec: MoveSpec) -> tuple[str, str]:
    if isinstance(spec, MoveRecord):
        return spec.source, spec.destination
    if isinstance(spec, Mapping):
        source = spec.get("source", spec.get("from"))
        destination = spec.get("destination", spec.get("to"))
        if not isinstance(source, str) or not isinstance(destination, str):
            raise BatchValidationError([f"Move entry {dict(spec)!r} needs 'source' and 'destination' strings"])
        return source, destination
    source, destination = spec
    return str(source), str(destination)


def _normalize_destination(raw: str) -> tuple[Optional[str], Optional[str]]:
    """Return ``(identity, problem)`` for a requested destination."""
    cleaned = raw.strip().replace("\\", "/")
    if not cleaned:
        return None, "Destination cannot be empty"
    if cleaned.startswith("/"):
        return None, f"Destination '{raw}' must be a relative path within the vault"
    identity = canonical_identity(posixpath.normpath(cleaned))
    if not identity or identity in {".", ".."} or identity.startswith("../"):
        return None, f"Destination '{raw}' escapes the vault root"
    return identity, None


def _normalize_folder(raw: str) -> Optional[str]:
    cleaned = posixpath.normpath(raw.strip().replace("\\", "/").strip("/"))
    if not cleaned or cleaned in {".", ".."} or cleaned.startswith("../"):
        return None
    return cleaned


def _excluded_folder(vault: VaultContext, folder: str) -> Optional[str]:
    """Return the first part of ``folder`` that directory walks skip, if any."""
    parts = [part for part in folder.split("/") if part]
    for position, part in enumerate(parts):
        relative = "/".join(parts[: position + 1])
        if vault.is_excluded(part) or relative in vault.exclude_folders:
            return relative
    return None


def _expand_moves(
    index: LinkIndex,
    specs: Iterable[MoveSpec],
) -> tuple[list[MoveRecord], list[MoveRecord]]:
    """Validate requested moves and expand folder moves into per-note moves.

    Returns:
        ``(note_moves, folder_moves)``.

    Raises:
        BatchValidationError: Listing every problem found in the batch.
    """
    vault = index.vault
    problems: list[str] = []
    records: list[MoveRecord] = []
    folders: list[MoveRecord] = []

    for spec in specs:
        source_raw, destination_raw = _coerce_move(spec)
        source_note = index.get(canonical_identity(source_raw)) if source_raw.strip() else None

        if source_note is None and source_raw.strip():
            folder = _normalize_folder(source_raw)
            folder_path = None
            if folder is not None:
                try:
                    folder_path = resolve_folder_path(vault, folder)
                except ValueError as exc:
                    problems.append(str(exc))
                    continue
            if folder_path is not None and folder_path.is_dir():
                destination_folder = _normalize_folder(destination_raw)
                if destination_folder is None or destination_raw.strip().startswith("/"):
                    problems.append(f"Destination folder '{destination_raw}' escapes the vault root")
                    continue
                if destination_folder == folder or destination_folder.startswith(folder + "/"):
                    problems.append(f"Cannot move folder '{folder}' into itself ('{destination_folder}')")
                    continue
                try:
                    resolve_folder_path(vault, destination_folder)
                except ValueError as exc:
                    problems.append(str(exc))
                    continue
                excluded = _excluded_folder(vault, destination_folder)
                if excluded is not None:
                    problems.append(f"Destination folder '{destination_folder}' is inside excluded folder '{excluded}'")
                    continue
                members = [identity for identity in index.notes if identity.startswith(folder + "/")]
                if not members:
                    problems.append(f"Folder '{folder}' contains no notes to move")
                    continue
                folders.append(MoveRecord(folder, destination_folder))
                for identity in members:
                    records.append(MoveRecord(identity, destination_folder + identity[len(folder):]))
                continue

        if source_note is None:
            problems.append(f"Source '{source_raw}' does not exist as a note or folder in vault '{vault.name}'")
            continue

        destination, problem = _normalize_destination(destination_raw)
        if problem:
            problems.append(problem)
            continue
        try:
            resolve_note_path(vault, destination)
        except ValueError as exc:
            problems.append(str(exc))
            continue
        excluded = _excluded_folder(vault, identity_folder(destination))
        if excluded is not None:
            problems.append(f"Destination '{destination}' is inside excluded folder '{excluded}'")
            continue
        if destination == source_note.identity:
            problems.append(f"Source and destination are both '{destination}'")
            continue
        records.append(MoveRecord(source_note.identity, destination))

    key = index.resolver.key
    seen_sources: set[str] = set()
    seen_destinations: dict[str, str] = {}
    for record in records:
        if key(record.source) in seen_sources:
            problems.append(f"Note '{record.source}' is moved more than once")
        seen_sources.add(key(record.source))
        destination_key = key(record.destination)
        if destination_key in seen_destinations:
            problems.append(
                f"Destination '{record.destination}' is used by both "
                f"'{seen_destinations[destination_key]}' and '{record.source}'"
            )
        else:
            seen_destinations[destination_key] = record.source

    for record in records:
        if key(record.destination) in seen_sources and key(record.destination) != key(record.source):
            problems.append(
                f"Destination '{record.destination}' is also the source of another move; chained moves are not allowed"
            )

    if problems:
        raise BatchValidationError(problems)
    if not records:
        raise BatchValidationError(["No moves were requested"])
    return records, folders


def _find_conflicts(index: LinkIndex, records: list[MoveRecord]) -> list[str]:
    """Destinations that already exist on disk (case-only renames excepted)."""
    vault = index.vault
    conflicts: list[str] = []
    for record in records:
        destination_path = resolve_note_path(vault, record.destination)
        if not destination_path.exists():
            continue
        source_note = index.get(record.source)
        source_path = vault.root / source_note.path if source_note else None
        if source_path is not None and source_path.exists() and os.path.samefile(source_path, destination_path):
            continue
        conflicts.append(f"{record.destination}.md")
    return conflicts


# ==============================================================================
# LINK REWRITING
# ==============================================================================


class _Rewriter:
    """Computes the new text of every link affected by a set of moves."""

    def __init__(self, index: LinkIndex, mapping: dict[str, str]) -> None:
        self.mapping = mapping
        self.before = index.resolver
        moved_away = set(mapping)
        after_ids = [identity for identity in index.notes if identity not in moved_away]
        after_ids.extend(mapping.values())
        self.after = self.before.with_identities(after_ids)
        self.after_folded = NoteResolver(after_ids, case_sensitive=False)
        self.folded = NoteResolver(index.notes, case_sensitive=False)

    def rewrite(self, content: str, source_before: str, source_after: str) -> tuple[str, list[LinkRewrite]]:
        rewrites: list[LinkRewrite] = []

        def _wiki(match: re.Match[str]) -> str:
            link = wiki_link_from_match(match)
            replacement = self._rewrite_wiki(link, source_before, source_after)
            if replacement is None or replacement == link.text:
                return link.text
            rewrites.append(LinkRewrite(WIKI, link.text, replacement))
            return replacement

        def _markdown(match: re.Match[str]) -> str:
            link = markdown_link_from_match(match)
            replacement = self._rewrite_markdown(link, source_before, source_after)
            if replacement is None or replacement == link.text:
                return link.text
            rewrites.append(LinkRewrite(MARKDOWN, link.text, replacement))
            return replacement

        updated = WIKILINK_RE.sub(_wiki, content)
        updated = MARKDOWN_LINK_RE.sub(_markdown, updated)
        return updated, rewrites

    def _rewrite_wiki(self, link: Link, source_before: str, source_after: str) -> Optional[str]:
        if not link.link_path:
            # [[#Heading]] always points at the containing note
            return None

        old_target = self.before.resolve_wiki(link.link_path, source_before)
        if old_target is None:
            folded = self.folded.resolve_wiki(link.link_path, source_before)
            if folded is None or folded not in self.mapping:
                return None
            old_target = folded

        new_target = self.mapping.get(old_target, old_target)
        if old_target == new_target and self.after.resolve_wiki(link.link_path, source_after) == new_target:
            return None
        return self._wiki_text(link, old_target, new_target, source_before, source_after)

    def _resolves_to(self, path: str, source_after: str, target: str) -> bool:
        """True when ``path`` still reaches ``target``, ignoring case as Obsidian does."""
        return (
            self.after.resolve_wiki(path, source_after) == target
            or self.after_folded.resolve_wiki(path, source_after) == target
        )

    def _wiki_text(
        self,
        link: Link,
        old_target: str,
        new_target: str,
        source_before: str,
        source_after: str,
    ) -> str:
        """Choose the written form of a wiki link to ``new_target``.

        Bare links stay bare while the bare name still resolves, unless the note
        left the linking note's folder; then the full path is written with the old
        text as alias. Path links that come back into the linking note's folder
        collapse to their alias when the alias alone resolves to the note. A file
        name the move did not change keeps the case it was written in.
        """
        bare = identity_name(new_target)
        bare_resolves = self.after.resolve_wiki(bare, source_after) == new_target
        shared_before = identity_folder(source_before) == identity_folder(old_target)
        shared_after = identity_folder(source_after) == identity_folder(new_target)
        written_path = canonical_identity(link.link_path)
        suffix = link.link_path[-3:] if link.link_path.lower().endswith(".md") else ""
        alias = link.alias

        if "/" not in written_path:
            if bare_resolves and not (shared_before and not shared_after):
                path = bare
                if identity_name(old_target) == bare and self._resolves_to(written_path, source_after, new_target):
                    path = written_path
                path += suffix
            else:
                path = new_target + suffix
                if alias is None:
                    alias = link.link_path
        elif (
            alias is not None
            and "/" not in alias
            and "#" not in alias
            and bare_resolves
            and shared_after
            and not shared_before
            and self._resolves_to(alias, source_after, new_target)
        ):
            path = alias
            alias = None
        else:
            path = new_target + suffix

        if link.anchor is not None:
            path += "#" + link.anchor
        if alias is not None and alias == path:
            alias = None
        return f"[[{path}|{alias}]]" if alias is not None else f"[[{path}]]"

    def _rewrite_markdown(self, link: Link, source_before: str, source_after: str) -> Optional[str]:
        if link.external:
            return None
        old_target, style = self.before.resolve_markdown(link.link_path, source_before)
        if old_target is None:
            return None

        new_target = self.mapping.get(old_target, old_target)
        if old_target == new_target and self.after.resolve_markdown(link.link_path, source_after)[0] == new_target:
            return None

        written_name = identity_name(canonical_identity(link.link_path))
        target_text = new_target
        if identity_name(old_target) == identity_name(new_target) and written_name != identity_name(new_target):
            # Same file name written in another case; keep what the author wrote.
            target_text = posixpath.join(identity_folder(new_target), written_name)

        suffix = link.link_path[-3:]
        if style == RELATIVE:
            path = posixpath.relpath(target_text + suffix, identity_folder(source_after) or ".")
        else:
            path = target_text + suffix
            if link.link_path.startswith("/"):
                path = "/" + path

        target = link.target
        bracketed = target.startswith("<") and target.endswith(">")
        inner = target[1:-1] if bracketed else target
        if "%" in inner.partition("#")[0]:
            path = quote(path, safe="/")
        if link.anchor is not None:
            path += "#" + link.anchor
        if bracketed:
            path = f"<{path}>"
        return f"[{link.display}]({path})"


# ==============================================================================
# MOVE OPERATIONS
# ==============================================================================


def plan_move(index: LinkIndex, moves: Iterable[MoveSpec], force: bool = False) -> MoveReport:
    """Validate a batch of moves and compute every link rewrite it requires.

    Nothing is written. Folder sources are expanded to one move per contained note.

    Args:
        index: Fresh index of the vault.
        moves: ``MoveRecord`` objects, ``(source, destination)`` pairs, or mappings
            with ``source``/``destination`` keys. Paths are vault-relative; the
            ``.md`` suffix is optional.
        force: When True, existing destinations are reported nowhere and will be
            overwritten on apply.

    Returns:
        A :class:`MoveReport`. When destinations collide and ``force`` is False,
        ``conflicts`` lists every colliding destination and no rewrites are planned.

    Raises:
        BatchValidationError: Missing sources, escaping or duplicate destinations,
            chained moves.
    """
    records, folders = _expand_moves(index, moves)
    report = MoveReport(vault=index.vault.name, moved=records, folders=folders, dry_run=True)

    conflicts = _find_conflicts(index, records)
    if conflicts and not force:
        report.conflicts = conflicts
        return report

    mapping = {record.source: record.destination for record in records}
    replaced = {index.resolver.key(record.destination) for record in records}
    rewriter = _Rewriter(index, mapping)

    for identity, note in index.notes.items():
        if identity not in mapping and index.resolver.key(identity) in replaced:
            continue
        identity_after = mapping.get(identity, identity)
        new_content, rewrites = rewriter.rewrite(note.content, identity, identity_after)
        if not rewrites:
            continue
        path_after = f"{identity_after}.md" if identity in mapping else note.path
        report.files.append(
            FileRewrite(
                note=identity_after,
                original_note=identity,
                path=path_after,
                rewrites=rewrites,
                new_content=new_content,
            )
        )
        logger.debug("Planned %d link rewrite(s) in '%s'", len(rewrites), path_after)

    return report


def _rollback(completed: list[tuple[Path, Path, Optional[bytes]]]) -> None:
    for source_path, destination_path, overwritten in reversed(completed):
        try:
            destination_path.rename(source_path)
            if overwritten is not None:
                destination_path.write_bytes(overwritten)
        except OSError as exc:
            logger.warning("Rollback of '%s' -> '%s' failed: %s", source_path, destination_path, exc)


def _execute_moves(index: LinkIndex, records: list[MoveRecord], force: bool) -> None:
    """Physically move every file, or none of them.

    Raises:
        MoveExecutionError: After rolling back any moves already made.
    """
    vault = index.vault
    completed: list[tuple[Path, Path, Optional[bytes]]] = []
    for record in records:
        note = index.get(record.source)
        source_path = vault.root / note.path
        destination_path = resolve_note_path(vault, record.destination)
        overwritten: Optional[bytes] = None
        try:
            destination_path.parent.mkdir(parents=True, exist_ok=True)
            if destination_path.exists() and not os.path.samefile(source_path, destination_path):
                overwritten = destination_path.read_bytes()
                os.replace(source_path, destination_path)
            else:
                source_path.rename(destination_path)
        except OSError as exc:
            logger.warning(
                "Moving '%s' to '%s' failed in vault '%s'; rolling back %d completed move(s)",
                record.source,
                record.destination,
                vault.name,
                len(completed),
            )
            _rollback(completed)
            raise MoveExecutionError(record.source, record.destination, exc) from exc
        completed.append((source_path, destination_path, overwritten))


def _prune_empty_folders(vault: VaultContext, folders: list[MoveRecord]) -> None:
    for folder in folders:
        folder_path = vault.root / folder.source
        if not folder_path.is_dir():
            continue
        for dirpath, _, _ in sorted(os.walk(folder_path), key=lambda entry: len(entry[0]), reverse=True):
            try:
                os.rmdir(dirpath)
            except OSError:
                continue


def apply_move(
    vault: VaultContext | Path | str,
    moves: Iterable[MoveSpec],
    force: bool = False,
    dry_run: bool = False,
    exclude_folders: Optional[Iterable[str]] = None,
) -> MoveReport:
    """Move notes or folders and rewrite every link that referenced them.

    Args:
        vault: Vault context, or a vault root directory.
        moves: Requested moves (see :func:`plan_move`).
        force: Overwrite existing destinations instead of failing.
        dry_run: Return the planned moves and rewrites without touching any file.
        exclude_folders: Additional folder names to skip while indexing.

    Returns:
        The :class:`MoveReport`; ``files_link_updated`` counts files whose links
        were rewritten, and ``errors`` lists files whose rewrite could not be saved.

    Raises:
        BatchValidationError: The batch is malformed; nothing was written.
        MoveConflictError: Destinations exist and ``force`` is False; nothing was written.
        MoveExecutionError: A physical move failed; completed moves were rolled back
            and no links were rewritten.
    """
    index = build_index(vault, exclude_folders)
    moves = list(moves)
    report = plan_move(index, moves, force=force)
    if report.conflicts:
        logger.info(
            "Move batch rejected in vault '%s': %d conflicting destination(s)",
            index.vault.name,
            len(report.conflicts),
        )
        raise MoveConflictError(report.conflicts)

    if dry_run:
        logger.info(
            "Dry run in vault '%s': %d move(s), %d file(s) would be updated",
            index.vault.name,
            len(report.moved),
            len(report.files),
        )
        return report

    _execute_moves(index, report.moved, force)
    report.dry_run = False

    for rewrite in report.files:
        target_path = index.vault.root / rewrite.path
        try:
            target_path.write_text(rewrite.new_content, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to write updated links to '%s': %s", rewrite.path, exc)
            report.errors.append(FileIssue(rewrite.path, "write", str(exc)))

    _prune_empty_folders(index.vault, report.folders)

    logger.info(
        "Moved %d note(s) in vault '%s' (%d file(s) with updated links, %d failed)",
        len(report.moved),
        index.vault.name,
        report.files_link_updated,
        len(report.errors),
    )
    return report
