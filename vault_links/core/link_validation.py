"""Broken link detection and repair suggestions."""

from __future__ import annotations

import difflib
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Optional

from vault_links.constants import FUZZY_WORD_CUTOFF, MAX_SUGGESTIONS
from vault_links.core.link_index import LinkIndex
from vault_links.core.parser import WIKILINK_RE, wiki_link_from_match
from vault_links.core.vault_operations import canonical_identity, identity_name
from vault_links.data_models import (
    LINK_TYPES,
    WIKI,
    BrokenLink,
    FileIssue,
    FixedLink,
    Link,
    Note,
    ValidationReport,
)

logger = logging.getLogger(__name__)

_WORD_SPLIT = re.compile(r"[\s_\-.]+")


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _is_candidate(target: str, identity: str) -> bool:
    wanted = target.casefold()
    full = identity.casefold()
    name = identity_name(identity).casefold()
    if wanted in full or wanted in name or full in wanted or name in wanted:
        return True
    words = [word for word in _WORD_SPLIT.split(name) if word]
    return bool(difflib.get_close_matches(wanted, words, n=1, cutoff=FUZZY_WORD_CUTOFF))


def suggest_targets(
    target: str,
    identities: Iterable[str],
    limit: int = MAX_SUGGESTIONS,
) -> list[str]:
    """Rank existing notes that a broken link target probably meant.

    A note is a candidate when, ignoring case, its identity or file name contains
    the target (or the target contains it), or when one word of its file name is a
    close spelling match for the target.

    Args:
        target: Link path as written, alias and anchor removed.
        identities: Note identities to consider, in first-seen order.
        limit: Maximum number of suggestions.

    Returns:
        Up to ``limit`` identities, closest length first.

    Examples:
        >>> suggest_targets("Budget", ["Budget 2024", "Budget Plan", "Travel"])
        ['Budget 2024', 'Budget Plan']
    """
    wanted = canonical_identity(target)
    if not wanted:
        return []
    matches = [identity for identity in identities if _is_candidate(wanted, identity)]
    matches.sort(key=lambda identity: abs(len(identity) - len(wanted)))
    return matches[:limit]


def shortest_wiki_path(index: LinkIndex, identity: str, source: str) -> str:
    """Bare name when it resolves to ``identity`` from ``source``, else the full path."""
    bare = identity_name(identity)
    if index.resolver.resolve_wiki(bare, source) == identity:
        return bare
    return identity


def _replacement_text(link: Link, path: str) -> str:
    if link.anchor is not None:
        path = f"{path}#{link.anchor}"
    if link.alias is not None and link.alias != path:
        return f"[[{path}|{link.alias}]]"
    return f"[[{path}]]"


def _write_fixes(
    index: LinkIndex,
    note: Note,
    fixes: dict[str, str],
    report: ValidationReport,
) -> None:
    """Rewrite the fixed wiki links of one note on disk."""
    note_path = index.vault.root / note.path
    try:
        current = note_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read '%s' for link repair: %s", note.path, exc)
        report.errors.append(FileIssue(note.path, "read", str(exc)))
        return

    applied: list[FixedLink] = []

    def _replace(match: re.Match[str]) -> str:
        link = wiki_link_from_match(match)
        if link.text not in fixes:
            return link.text
        target = fixes[link.text]
        replacement = _replacement_text(link, shortest_wiki_path(index, target, note.identity))
        applied.append(FixedLink(note.identity, link.text, replacement, target))
        return replacement

    updated = WIKILINK_RE.sub(_replace, current)
    if not applied:
        return
    try:
        note_path.write_text(updated, encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to write repaired links to '%s': %s", note.path, exc)
        report.errors.append(FileIssue(note.path, "write", str(exc)))
        return
    report.fixed.extend(applied)


# ==============================================================================
# VALIDATION
# ==============================================================================


def validate_links(
    index: LinkIndex,
    fix: bool = False,
    types: Sequence[str] = LINK_TYPES,
) -> ValidationReport:
    """Report every unresolved link, optionally repairing unambiguous wiki links.

    Files are processed one at a time and each file's fixes are written before the
    next file is examined. Markdown links are never repaired.

    Args:
        index: Fresh index of the vault.
        fix: Rewrite wiki links that have exactly one candidate target.
        types: Link kinds to check (``"wiki"``, ``"markdown"``).

    Returns:
        A :class:`ValidationReport` with ``broken`` and ``fixed`` entries.

    Raises:
        ValueError: If ``types`` names an unknown link kind.
    """
    unknown = sorted(set(types) - set(LINK_TYPES))
    if unknown:
        raise ValueError(f"Unknown link type(s): {', '.join(unknown)}; expected wiki or markdown")

    report = ValidationReport(vault=index.vault.name)
    identities = list(index.notes)
    suggestions_cache: dict[str, list[str]] = {}

    current: Optional[Note] = None
    fixes: dict[str, str] = {}
    for note, link in index.unresolved(types):
        if current is not None and note is not current and fixes:
            _write_fixes(index, current, fixes, report)
            fixes = {}
        current = note

        if link.link_path not in suggestions_cache:
            suggestions_cache[link.link_path] = suggest_targets(link.link_path, identities)
        suggestions = suggestions_cache[link.link_path]

        if fix and link.type == WIKI and len(suggestions) == 1:
            fixes[link.text] = suggestions[0]
            continue
        report.broken.append(
            BrokenLink(
                source=note.identity,
                type=link.type,
                text=link.text,
                target=link.target,
                suggestions=tuple(suggestions),
            )
        )

    if current is not None and fixes:
        _write_fixes(index, current, fixes, report)

    if fix:
        logger.info(
            "Validated links in vault '%s': %d broken, %d fixed",
            index.vault.name,
            len(report.broken),
            len(report.fixed),
        )
    return report
