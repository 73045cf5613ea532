"""Data models for vault configuration, parsed notes, and operation reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

WIKI = "wiki"
MARKDOWN = "markdown"
LINK_TYPES = (WIKI, MARKDOWN)


@dataclass(frozen=True)
class VaultMetadata:
    """Normalized metadata describing an Obsidian vault."""

    name: str
    path: Path
    description: str
    exists: bool
    exclude_folders: tuple[str, ...] = ()
    case_sensitive: Optional[bool] = None

    def as_payload(self) -> dict[str, Any]:
        """Return a serializable payload representation."""
        return {
            "name": self.name,
            "path": str(self.path),
            "description": self.description,
            "exists": self.path.is_dir(),
            "exclude_folders": list(self.exclude_folders),
        }


class VaultConfiguration:
    """Holds vault metadata and default resolution helpers.

    Provides vault lookup by name and payload serialization for tool responses.
    """

    def __init__(
        self,
        default_vault: str,
        vaults: dict[str, VaultMetadata],
        log_level: Optional[str] = None,
    ) -> None:
        self.default_vault = default_vault
        self.vaults = vaults
        self.log_level = log_level

    def get(self, name: str) -> VaultMetadata:
        """Get vault metadata by name.

        Raises:
            ValueError: If the vault name is not found in configuration.
        """
        try:
            return self.vaults[name]
        except KeyError as exc:
            known = ", ".join(sorted(self.vaults)) or "none"
            raise ValueError(f"Unknown vault '{name}' (configured: {known})") from exc

    def as_payload(self) -> dict[str, Any]:
        return {
            "default": self.default_vault,
            "vaults": [vault.as_payload() for vault in self.vaults.values()],
        }


# ==============================================================================
# PARSED NOTES
# ==============================================================================


@dataclass(frozen=True)
class ParseWarning:
    """Non-fatal problem found while parsing a note."""

    note: str
    message: str

    def as_payload(self) -> dict[str, str]:
        return {"note": self.note, "message": self.message}


@dataclass
class Link:
    """A single wiki or markdown link found in note text.

    ``target`` is the text as written between the delimiters (for wiki links
    this includes any ``|alias`` suffix). ``link_path`` is the part used for
    resolution: alias and ``#anchor`` removed, and for markdown links
    percent-escapes decoded.
    """

    type: str
    text: str
    target: str
    link_path: str
    display: str
    alias: Optional[str] = None
    anchor: Optional[str] = None
    external: bool = False
    resolved: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved is not None

    def as_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "text": self.text,
            "target": self.target,
            "display": self.display,
            "resolved": self.resolved if self.resolved is not None else "unresolved",
        }


@dataclass
class Note:
    """One markdown file plus its parsed frontmatter, tags, links, and body."""

    identity: str
    path: str
    title: str
    content: str
    body: str
    frontmatter: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    #: Inline ``#tag`` occurrences in the body; frontmatter-only tags are absent.
    tag_counts: dict[str, int] = field(default_factory=dict)
    links: list[Link] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.identity.rsplit("/", 1)[-1]

    @property
    def folder(self) -> str:
        return self.identity.rsplit("/", 1)[0] if "/" in self.identity else ""

    def as_payload(self) -> dict[str, Any]:
        return {
            "note": self.identity,
            "path": self.path,
            "title": self.title,
            "frontmatter": self.frontmatter,
            "tags": self.tags,
            "links": [link.as_payload() for link in self.links],
        }


@dataclass
class Tag:
    """Aggregated tag occurrence across a vault (one analytics pass)."""

    name: str
    count: int = 0
    children: list["Tag"] = field(default_factory=list)

    @property
    def nested(self) -> bool:
        return "/" in self.name

    @property
    def parent(self) -> Optional[str]:
        return self.name.rsplit("/", 1)[0] if self.nested else None

    def as_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "nested": self.nested,
            "parent": self.parent,
            "children": [child.as_payload() for child in self.children],
        }


@dataclass(frozen=True)
class OrphanNote:
    """A note with no resolved links in either direction, with its file stats."""

    identity: str
    path: str
    title: str
    size: int
    created: str
    modified: str
    has_outgoing_links: bool = False
    has_incoming_links: bool = False

    def as_payload(self) -> dict[str, Any]:
        return {
            "note": self.identity,
            "path": self.path,
            "title": self.title,
            "size": self.size,
            "created": self.created,
            "modified": self.modified,
            "has_outgoing_links": self.has_outgoing_links,
            "has_incoming_links": self.has_incoming_links,
        }


# ==============================================================================
# OPERATION REPORTS
# ==============================================================================


@dataclass(frozen=True)
class FileIssue:
    """A file that could not be read or written; the operation skipped it."""

    path: str
    operation: str
    error: str

    def as_payload(self) -> dict[str, str]:
        return {"path": self.path, "operation": self.operation, "error": self.error}


@dataclass(frozen=True)
class MoveRecord:
    """A single source to destination move, by vault-relative identity."""

    source: str
    destination: str

    def as_payload(self) -> dict[str, str]:
        return {"from": self.source, "to": self.destination}


@dataclass(frozen=True)
class LinkRewrite:
    type: str
    old: str
    new: str

    def as_payload(self) -> dict[str, str]:
        return {"type": self.type, "old": self.old, "new": self.new}


@dataclass
class FileRewrite:
    """Planned (or applied) link rewrites for one file."""

    note: str
    original_note: str
    path: str
    rewrites: list[LinkRewrite]
    new_content: str

    def as_payload(self) -> dict[str, Any]:
        return {
            "note": self.note,
            "original_note": self.original_note,
            "path": self.path,
            "rewrites": [rewrite.as_payload() for rewrite in self.rewrites],
        }


@dataclass
class MoveReport:
    """Outcome of a batch move (or of its dry run)."""

    vault: str
    moved: list[MoveRecord]
    folders: list[MoveRecord] = field(default_factory=list)
    files: list[FileRewrite] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    errors: list[FileIssue] = field(default_factory=list)
    dry_run: bool = False

    @property
    def files_link_updated(self) -> int:
        failed = {issue.path for issue in self.errors}
        return sum(1 for rewrite in self.files if rewrite.path not in failed)

    def as_payload(self) -> dict[str, Any]:
        return {
            "vault": self.vault,
            "status": "planned" if self.dry_run else "moved",
            "files_link_updated": self.files_link_updated,
            "moved": [record.as_payload() for record in self.moved],
            "folders": [record.as_payload() for record in self.folders],
            "files": [rewrite.as_payload() for rewrite in self.files],
            "conflicts": list(self.conflicts),
            "errors": [issue.as_payload() for issue in self.errors],
        }


@dataclass(frozen=True)
class BrokenLink:
    source: str
    type: str
    text: str
    target: str
    suggestions: tuple[str, ...] = ()

    def as_payload(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "type": self.type,
            "text": self.text,
            "target": self.target,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class FixedLink:
    source: str
    original: str
    replacement: str
    target: str

    def as_payload(self) -> dict[str, str]:
        return {
            "source": self.source,
            "original": self.original,
            "replacement": self.replacement,
            "target": self.target,
        }


@dataclass
class ValidationReport:
    vault: str
    broken: list[BrokenLink] = field(default_factory=list)
    fixed: list[FixedLink] = field(default_factory=list)
    errors: list[FileIssue] = field(default_factory=list)

    def as_payload(self) -> dict[str, Any]:
        return {
            "vault": self.vault,
            "broken_count": len(self.broken),
            "fixed_count": len(self.fixed),
            "broken": [link.as_payload() for link in self.broken],
            "fixed": [link.as_payload() for link in self.fixed],
            "errors": [issue.as_payload() for issue in self.errors],
        }
