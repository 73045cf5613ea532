"""Vault-wide statistics: tags, orphans, and link graph metrics."""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from vault_links.core.link_index import LinkIndex
from vault_links.core.vault_operations import identity_name
from vault_links.data_models import Note, OrphanNote, Tag

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+")


# ==============================================================================
# TAGS
# ==============================================================================


def collect_tags(index: LinkIndex) -> Counter[str]:
    """Count tag occurrences across the vault.

    Inline ``#tag`` occurrences each count once; a tag declared only in a note's
    frontmatter counts once for that note.
    """
    counts: Counter[str] = Counter()
    for note in index.notes.values():
        for tag in note.tags:
            counts[tag] += note.tag_counts.get(tag, 0) or 1
    return counts


def build_tag_hierarchy(counts: dict[str, int]) -> list[Tag]:
    """Arrange tags into a tree of direct parent/child relations.

    ``a/b/c`` is a child of ``a/b``, never directly of ``a``. Ancestors that never
    occur on their own are added with a count of 0 so every nested tag has a parent.

    Returns:
        The root tags, sorted by name; children are sorted the same way.
    """
    nodes: dict[str, Tag] = {}
    for name in sorted(counts):
        parts = name.split("/")
        for depth in range(1, len(parts) + 1):
            prefix = "/".join(parts[:depth])
            if prefix not in nodes:
                nodes[prefix] = Tag(prefix, counts.get(prefix, 0))

    roots: list[Tag] = []
    for name in sorted(nodes):
        tag = nodes[name]
        if tag.parent is None:
            roots.append(tag)
        else:
            nodes[tag.parent].children.append(tag)
    return roots


def tag_stats(index: LinkIndex, prefix: Optional[str] = None) -> list[dict[str, Any]]:
    """Per-tag occurrence and note counts, most used first.

    Args:
        index: Vault index.
        prefix: Restrict to this tag and its nested descendants.
    """
    counts = collect_tags(index)
    notes_per_tag: Counter[str] = Counter()
    for note in index.notes.values():
        notes_per_tag.update(note.tags)

    wanted = prefix.lstrip("#").strip("/") if prefix else None
    stats = [
        {"tag": tag, "count": count, "notes": notes_per_tag[tag]}
        for tag, count in counts.items()
        if wanted is None or tag == wanted or tag.startswith(wanted + "/")
    ]
    stats.sort(key=lambda item: (-item["count"], item["tag"]))
    return stats


def notes_with_tag(index: LinkIndex, tag: str, include_nested: bool = True) -> list[str]:
    """Identities of notes carrying ``tag`` (and its descendants when ``include_nested``)."""
    wanted = tag.lstrip("#").strip("/")
    matches: list[str] = []
    for identity, note in index.notes.items():
        for candidate in note.tags:
            if candidate == wanted or (include_nested and candidate.startswith(wanted + "/")):
                matches.append(identity)
                break
    return matches


# ==============================================================================
# GRAPH
# ==============================================================================


def edge_weights(index: LinkIndex) -> Counter[tuple[str, str]]:
    """Number of resolved links per ``(source, target)`` pair, self-links excluded."""
    return Counter((source, target) for source, target in index.edges() if source != target)


def _timestamp(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def find_orphans(index: LinkIndex) -> list[OrphanNote]:
    """Notes with no resolved inbound and no resolved outbound links, largest first.

    Unresolved links and self-links do not count. Notes whose file can no longer be
    stat'ed are skipped. ``created`` is the birth time where the platform records
    one, the inode change time otherwise.
    """
    outgoing: set[str] = set()
    incoming: set[str] = set()
    for source, target in edge_weights(index):
        outgoing.add(source)
        incoming.add(target)

    orphans: list[OrphanNote] = []
    for identity, note in index.notes.items():
        if identity in outgoing or identity in incoming:
            continue
        try:
            stats = os.stat(index.vault.root / note.path)
        except OSError as exc:
            logger.debug("Cannot stat orphan '%s': %s", note.path, exc)
            continue
        orphans.append(
            OrphanNote(
                identity=identity,
                path=note.path,
                title=identity_name(identity),
                size=stats.st_size,
                created=_timestamp(getattr(stats, "st_birthtime", stats.st_ctime)),
                modified=_timestamp(stats.st_mtime),
            )
        )
    orphans.sort(key=lambda orphan: (-orphan.size, orphan.identity))
    return orphans


def link_graph_stats(index: LinkIndex) -> dict[str, Any]:
    """Directed link graph metrics.

    Nodes are notes with at least one resolved link in either direction. Each
    distinct ``(source, target)`` pair is one edge. Density is
    ``edges / (nodes * (nodes - 1))`` and 0 for fewer than two nodes.
    """
    weights = edge_weights(index)
    degree: Counter[str] = Counter()
    for source, target in weights:
        degree[source] += 1
        degree[target] += 1

    node_count = len(degree)
    edge_count = len(weights)
    density = edge_count / (node_count * (node_count - 1)) if node_count >= 2 else 0.0

    most_connected: Optional[dict[str, Any]] = None
    if degree:
        name, connections = min(degree.items(), key=lambda item: (-item[1], item[0]))
        most_connected = {"note": name, "connections": connections}

    return {
        "nodes": node_count,
        "edges": edge_count,
        "density": round(density, 6),
        "average_connections": round(2 * edge_count / node_count, 3) if node_count else 0.0,
        "most_connected": most_connected,
        "weights": [
            {"source": source, "target": target, "weight": weight}
            for (source, target), weight in sorted(weights.items())
        ],
    }


# ==============================================================================
# AGGREGATES
# ==============================================================================


def _word_count(note: Note) -> int:
    return len(_WORD_RE.findall(note.body))


def link_counts(index: LinkIndex) -> dict[str, int]:
    total = resolved = external = 0
    for note in index.notes.values():
        for link in note.links:
            total += 1
            if link.external:
                external += 1
            elif link.resolved is not None:
                resolved += 1
    return {
        "total": total,
        "resolved": resolved,
        "unresolved": total - resolved - external,
        "external": external,
    }


def content_stats(index: LinkIndex) -> dict[str, Any]:
    words = {identity: _word_count(note) for identity, note in index.notes.items()}
    folders: Counter[str] = Counter(note.folder or "/" for note in index.notes.values())
    total_words = sum(words.values())

    longest = shortest = None
    if words:
        longest_name = min(words, key=lambda identity: (-words[identity], identity))
        shortest_name = min(words, key=lambda identity: (words[identity], identity))
        longest = {"note": longest_name, "words": words[longest_name]}
        shortest = {"note": shortest_name, "words": words[shortest_name]}

    return {
        "notes": len(words),
        "total_words": total_words,
        "average_words": round(total_words / len(words), 1) if words else 0.0,
        "longest_note": longest,
        "shortest_note": shortest,
        "folders": dict(sorted(folders.items())),
    }


def analyze_vault(index: LinkIndex) -> dict[str, Any]:
    """Compute orphans, tag hierarchy, and link graph statistics for a vault.

    Returns:
        ``{"vault", "orphans", "tag_hierarchy", "tags", "graph", "links", "content",
        "warnings", "errors"}``.
    """
    counts = collect_tags(index)
    orphans = find_orphans(index)
    graph = link_graph_stats(index)
    logger.debug(
        "Analyzed vault '%s': %d notes, %d orphans, %d edges",
        index.vault.name,
        len(index),
        len(orphans),
        graph["edges"],
    )
    return {
        "vault": index.vault.name,
        "orphans": [orphan.as_payload() for orphan in orphans],
        "tag_hierarchy": [tag.as_payload() for tag in build_tag_hierarchy(counts)],
        "tags": dict(sorted(counts.items())),
        "graph": graph,
        "links": link_counts(index),
        "content": content_stats(index),
        "warnings": [warning.as_payload() for warning in index.warnings],
        "errors": [issue.as_payload() for issue in index.errors],
    }
