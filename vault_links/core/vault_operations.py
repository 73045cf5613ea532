"""Core vault path handling: note identity, sandboxing, and directory walks."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from vault_links.constants import MARKDOWN_SUFFIX
from vault_links.session import VaultContext

logger = logging.getLogger(__name__)

_REPEATED_SLASHES = re.compile(r"/{2,}")
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def ensure_vault_ready(vault: VaultContext) -> None:
    """Ensure the target vault directory is accessible before performing operations.

    Raises:
        FileNotFoundError: If the vault path does not exist or is not a directory.
    """
    if not vault.root.is_dir():
        raise FileNotFoundError(f"Vault '{vault.name}' is not accessible at {vault.root}")


def canonical_identity(path: str) -> str:
    """Convert a vault-relative path into a note identity.

    Separators become ``/``, leading ``./`` and ``/`` are dropped, and a trailing
    ``.md`` suffix (any case) is removed. Dots elsewhere in the name are preserved.

    Examples:
        >>> canonical_identity("Projects\\\\v1.4 Notes.md")
        'Projects/v1.4 Notes'
        >>> canonical_identity("./Daily/2025-10-27.MD")
        'Daily/2025-10-27'
    """
    cleaned = path.strip().replace("\\", "/")
    cleaned = _REPEATED_SLASHES.sub("/", cleaned)
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    cleaned = cleaned.lstrip("/")
    if cleaned.lower().endswith(MARKDOWN_SUFFIX):
        cleaned = cleaned[: -len(MARKDOWN_SUFFIX)]
    return cleaned


def identity_folder(identity: str) -> str:
    """Return the folder part of an identity (``""`` for the vault root)."""
    return identity.rsplit("/", 1)[0] if "/" in identity else ""


def identity_name(identity: str) -> str:
    """Return the file-name part of an identity."""
    return identity.rsplit("/", 1)[-1]


def is_external_target(target: str) -> bool:
    """Return True for link targets that carry a URL scheme (``https:``, ``mailto:``...)."""
    return bool(_URL_SCHEME.match(target.strip()))


def construct_note_path(identity: str) -> Path:
    """Construct a relative markdown path from a note identity.

    Examples:
        >>> construct_note_path("My Note")
        PosixPath('My Note.md')
        >>> construct_note_path("Folder/My Note")
        PosixPath('Folder/My Note.md')
    """
    parts = identity.split("/")
    leaf_with_extension = f"{parts[-1]}{MARKDOWN_SUFFIX}"
    if len(parts) == 1:
        return Path(leaf_with_extension)
    return Path(*parts[:-1]) / leaf_with_extension


def _ensure_inside(vault: VaultContext, candidate: Path, label: str) -> Path:
    vault_root = vault.root.resolve(strict=False)
    resolved = candidate.resolve(strict=False)
    if not resolved.is_relative_to(vault_root):
        raise ValueError(f"{label} escapes vault '{vault.name}'.")
    return resolved


def resolve_note_path(vault: VaultContext, identity: str) -> Path:
    """Resolve a note identity (or relative ``.md`` path) to an absolute vault path.

    Raises:
        ValueError: If the identity is empty or the path escapes the vault root.
    """
    cleaned = canonical_identity(identity)
    if not cleaned:
        raise ValueError("Note identifier cannot be empty.")
    return _ensure_inside(vault, vault.root / construct_note_path(cleaned), f"Note path '{identity}'")


def resolve_folder_path(vault: VaultContext, folder_path: str) -> Path:
    """Resolve a folder path within the vault, enforcing sandbox constraints.

    Raises:
        ValueError: If the folder escapes the vault boundaries.
    """
    cleaned = folder_path.strip().replace("\\", "/").strip("/")
    return _ensure_inside(vault, vault.root / cleaned, f"Folder '{folder_path}'")


def relative_posix(vault: VaultContext, path: Path) -> str:
    """Vault-relative path of ``path`` using forward slashes."""
    return path.resolve(strict=False).relative_to(vault.root.resolve(strict=False)).as_posix()


def is_markdown_file(path: Path) -> bool:
    return path.suffix.lower() == MARKDOWN_SUFFIX


def walk_markdown_files(vault: VaultContext, start: Path | None = None) -> list[Path]:
    """List markdown files under ``start`` (default: vault root), skipping excluded folders.

    Dot-prefixed directories and configured exclusions (matched by folder name or by
    vault-relative folder path) are never descended into.

    Returns:
        Absolute paths in sorted order.
    """
    ensure_vault_ready(vault)
    root = vault.root.resolve(strict=False)
    start = (start or root).resolve(strict=False)

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(start):
        current = Path(dirpath)
        kept: list[str] = []
        for dirname in sorted(dirnames):
            relative = (current / dirname).relative_to(root).as_posix()
            if vault.is_excluded(dirname) or relative in vault.exclude_folders:
                logger.debug("Skipping excluded folder '%s' in vault '%s'", relative, vault.name)
                continue
            kept.append(dirname)
        dirnames[:] = kept

        for filename in filenames:
            candidate = current / filename
            if is_markdown_file(candidate) and candidate.is_file():
                found.append(candidate)

    return sorted(found)
