"""Link target resolution against a fixed set of note identities.

Resolution is a pure lookup: no fuzzy matching happens here (see
:mod:`vault_links.core.link_validation` for repair suggestions).
"""

from __future__ import annotations

import posixpath
from typing import Iterable, Optional

from vault_links.core.vault_operations import (
    canonical_identity,
    identity_folder,
    identity_name,
)

RELATIVE = "relative"
ROOT = "root"


class NoteResolver:
    """Resolves wiki and markdown link paths to note identities.

    Args:
        identities: Every note identity in the vault.
        case_sensitive: When False, identities are compared case-insensitively.
    """

    def __init__(self, identities: Iterable[str], case_sensitive: bool = True) -> None:
        self.case_sensitive = case_sensitive
        self._by_key: dict[str, str] = {}
        self._by_name: dict[str, list[str]] = {}
        for identity in sorted(identities):
            self._by_key.setdefault(self.key(identity), identity)
            self._by_name.setdefault(self.key(identity_name(identity)), []).append(identity)

    def key(self, value: str) -> str:
        return value if self.case_sensitive else value.casefold()

    def __contains__(self, identity: str) -> bool:
        return self.key(identity) in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def identities(self) -> list[str]:
        return sorted(self._by_key.values())

    def lookup(self, identity: str) -> Optional[str]:
        """Exact identity lookup (respecting case sensitivity)."""
        return self._by_key.get(self.key(identity))

    def with_identities(self, identities: Iterable[str]) -> "NoteResolver":
        """Return a resolver over a different identity set with the same settings."""
        return NoteResolver(identities, case_sensitive=self.case_sensitive)

    def resolve_wiki(self, link_path: str, source: Optional[str] = None) -> Optional[str]:
        """Resolve a wiki link path (alias and anchor already stripped).

        Lookup order: exact identity, path relative to the source note's folder, then
        notes whose identity ends with the target (a bare name matches any note with
        that file name). Ties prefer the source's folder, then the shallowest path,
        then lexicographic order. An empty path (``[[#Heading]]``) is a self-link.
        """
        target = canonical_identity(link_path)
        if not target:
            return self.lookup(source) if source else None

        exact = self.lookup(target)
        if exact is not None:
            return exact

        source_folder = identity_folder(source) if source else ""
        if source_folder:
            relative = posixpath.normpath(posixpath.join(source_folder, target))
            if not relative.startswith(".."):
                hit = self.lookup(relative)
                if hit is not None:
                    return hit

        wanted = self.key(target)
        candidates = [
            identity
            for identity in self._by_name.get(self.key(identity_name(target)), [])
            if self.key(identity).endswith("/" + wanted)
        ]
        if not candidates:
            return None
        return min(
            candidates,
            key=lambda identity: (
                identity_folder(identity) != source_folder,
                identity.count("/"),
                identity,
            ),
        )

    def resolve_markdown(
        self,
        link_path: str,
        source: Optional[str] = None,
    ) -> tuple[Optional[str], Optional[str]]:
        """Resolve a markdown link path by exact relative or vault-root path.

        Returns:
            ``(identity, style)`` where ``style`` is ``"relative"`` when the path was
            resolved against the source note's folder and ``"root"`` when it matched
            from the vault root. ``(None, None)`` when unresolved.
        """
        path = link_path.strip().replace("\\", "/")
        if not path:
            return None, None

        if not path.startswith("/"):
            source_folder = identity_folder(source) if source else ""
            joined = posixpath.normpath(posixpath.join(source_folder, path))
            if joined != ".." and not joined.startswith("../"):
                hit = self.lookup(canonical_identity(joined))
                if hit is not None:
                    return hit, RELATIVE

        hit = self.lookup(canonical_identity(posixpath.normpath(path.lstrip("/"))))
        if hit is not None:
            return hit, ROOT
        return None, None
