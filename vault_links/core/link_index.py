"""Bidirectional link index over every note in a vault.

The index is rebuilt from disk for each operation; there is no incremental
update. For any two notes A and B, ``B in index.inbound[...]`` lists A exactly
when one of A's resolved outbound links targets B.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from vault_links.core.parser import parse_note
from vault_links.core.resolver import NoteResolver
from vault_links.core.vault_operations import relative_posix, walk_markdown_files
from vault_links.data_models import MARKDOWN, WIKI, FileIssue, Link, Note, ParseWarning
from vault_links.session import VaultContext

logger = logging.getLogger(__name__)


def resolve_link(resolver: NoteResolver, link: Link, source: str) -> Optional[str]:
    """Resolve one parsed link from ``source`` against ``resolver``'s identity set."""
    if link.external:
        return None
    if link.type == WIKI:
        return resolver.resolve_wiki(link.link_path, source)
    if link.type == MARKDOWN:
        return resolver.resolve_markdown(link.link_path, source)[0]
    return None


class LinkIndex:
    """Notes of one vault with resolved outbound links and inverted inbound sets."""

    def __init__(
        self,
        vault: VaultContext,
        notes: dict[str, Note],
        errors: Iterable[FileIssue] = (),
    ) -> None:
        self.vault = vault
        self.notes = dict(sorted(notes.items()))
        self.errors = list(errors)
        self.resolver = NoteResolver(self.notes, case_sensitive=vault.case_sensitive)
        self.inbound: dict[str, list[str]] = {identity: [] for identity in self.notes}
        self._resolve_all()

    def _resolve_all(self) -> None:
        for identity, note in self.notes.items():
            for link in note.links:
                link.resolved = resolve_link(self.resolver, link, identity)
                if link.resolved is None:
                    continue
                sources = self.inbound.setdefault(link.resolved, [])
                if identity not in sources:
                    sources.append(identity)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.notes)

    def __contains__(self, identity: str) -> bool:
        return identity in self.resolver

    def get(self, identity: str) -> Optional[Note]:
        """Look up a note by identity, honouring the vault's case sensitivity."""
        key = self.resolver.lookup(identity)
        return self.notes.get(key) if key is not None else None

    def outbound(self, identity: str) -> list[Link]:
        note = self.get(identity)
        return list(note.links) if note else []

    def inbound_links(self, identity: str) -> list[str]:
        key = self.resolver.lookup(identity)
        return list(self.inbound.get(key, [])) if key is not None else []

    def resolved_targets(self, identity: str) -> list[str]:
        """Distinct resolved targets of a note's outbound links, in link order."""
        return list(dict.fromkeys(link.resolved for link in self.outbound(identity) if link.resolved))

    def edges(self) -> Iterator[tuple[str, str]]:
        """Yield ``(source, target)`` for every resolved link (duplicates included)."""
        for identity, note in self.notes.items():
            for link in note.links:
                if link.resolved is not None:
                    yield identity, link.resolved

    def unresolved(self, types: Iterable[str] = (WIKI, MARKDOWN)) -> Iterator[tuple[Note, Link]]:
        """Yield ``(note, link)`` for every internal link with no matching note."""
        wanted = set(types)
        for note in self.notes.values():
            for link in note.links:
                if link.type in wanted and not link.external and link.resolved is None:
                    yield note, link

    @property
    def warnings(self) -> list[ParseWarning]:
        return [warning for note in self.notes.values() for warning in note.warnings]

    def as_payload(self) -> dict[str, object]:
        return {
            "vault": self.vault.name,
            "notes": {
                identity: {
                    "outbound": [link.as_payload() for link in note.links],
                    "inbound": self.inbound.get(identity, []),
                }
                for identity, note in self.notes.items()
            },
            "warnings": [warning.as_payload() for warning in self.warnings],
            "errors": [issue.as_payload() for issue in self.errors],
        }


def read_note(vault: VaultContext, note_path: Path) -> Note:
    """Read and parse a single markdown file.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not UTF-8 encoded.
    """
    raw_text = note_path.read_text(encoding="utf-8")
    return parse_note(relative_posix(vault, note_path), raw_text)


def build_index(
    vault: VaultContext | Path | str,
    exclude_folders: Optional[Iterable[str]] = None,
) -> LinkIndex:
    """Walk the vault and build a fresh :class:`LinkIndex`.

    Args:
        vault: Vault context, or a vault root directory.
        exclude_folders: Additional folder names to skip. Dot-folders and the
            defaults (``.obsidian``, ``.trash``, ``node_modules``) are always skipped.

    Returns:
        The index. Files that cannot be read or decoded are skipped and listed in
        ``index.errors``.

    Raises:
        FileNotFoundError: If the vault directory does not exist.
    """
    if isinstance(vault, VaultContext):
        if exclude_folders:
            vault = VaultContext.from_metadata(
                vault.vault,
                exclude_folders=[*vault.exclude_folders, *exclude_folders],
                case_sensitive=vault.case_sensitive,
            )
    else:
        vault = VaultContext.for_path(vault, exclude_folders=exclude_folders)

    notes: dict[str, Note] = {}
    errors: list[FileIssue] = []
    for note_path in walk_markdown_files(vault):
        try:
            note = read_note(vault, note_path)
        except (OSError, UnicodeDecodeError) as exc:
            relative = relative_posix(vault, note_path)
            logger.warning("Skipping note '%s' in vault '%s': %s", relative, vault.name, exc)
            errors.append(FileIssue(relative, "read", str(exc)))
            continue
        notes[note.identity] = note

    index = LinkIndex(vault, notes, errors)
    logger.debug(
        "Indexed %d notes in vault '%s' (%d unreadable)",
        len(index),
        vault.name,
        len(errors),
    )
    return index
