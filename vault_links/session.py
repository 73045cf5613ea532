"""Explicit vault context and per-connection vault selection."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from mcp.server.fastmcp import Context

from vault_links.constants import DEFAULT_EXCLUDED_FOLDERS
from vault_links.data_models import VaultConfiguration, VaultMetadata


def host_is_case_sensitive() -> bool:
    """Best guess at whether the host filesystem distinguishes name case."""
    return platform.system() not in ("Darwin", "Windows")


@dataclass(frozen=True)
class VaultContext:
    """Everything a core operation needs to know about the vault it acts on.

    Passed explicitly into every core call; nothing is read from module state.
    """

    vault: VaultMetadata
    exclude_folders: frozenset[str]
    case_sensitive: bool

    @property
    def root(self) -> Path:
        return self.vault.path

    @property
    def name(self) -> str:
        return self.vault.name

    def is_excluded(self, folder_name: str) -> bool:
        """Return True when a directory with this name must be skipped by walks."""
        return folder_name.startswith(".") or folder_name in self.exclude_folders

    @classmethod
    def from_metadata(
        cls,
        vault: VaultMetadata,
        exclude_folders: Optional[Iterable[str]] = None,
        case_sensitive: Optional[bool] = None,
    ) -> "VaultContext":
        """Build a context from configured vault metadata.

        Args:
            vault: Vault metadata, usually from ``vaults.yaml``.
            exclude_folders: Extra folder names to skip on top of the defaults and the
                vault's configured exclusions.
            case_sensitive: Overrides the vault setting and the host default.
        """
        excluded = set(DEFAULT_EXCLUDED_FOLDERS) | set(vault.exclude_folders)
        if exclude_folders:
            excluded.update(exclude_folders)

        if case_sensitive is None:
            case_sensitive = vault.case_sensitive
        if case_sensitive is None:
            case_sensitive = host_is_case_sensitive()

        return cls(vault=vault, exclude_folders=frozenset(excluded), case_sensitive=case_sensitive)

    @classmethod
    def for_path(
        cls,
        root: Path | str,
        name: Optional[str] = None,
        exclude_folders: Optional[Iterable[str]] = None,
        case_sensitive: Optional[bool] = None,
    ) -> "VaultContext":
        """Build a context for an unconfigured vault directory."""
        path = Path(root).expanduser().resolve(strict=False)
        metadata = VaultMetadata(
            name=name or path.name,
            path=path,
            description="",
            exists=path.is_dir(),
        )
        return cls.from_metadata(metadata, exclude_folders=exclude_folders, case_sensitive=case_sensitive)


class SessionRegistry:
    """Tracks the active vault per client session.

    One instance is owned by the tool server; sessions are keyed by the identity of
    the underlying MCP session object.
    """

    def __init__(self, configuration: VaultConfiguration) -> None:
        self.configuration = configuration
        self._active: dict[int, str] = {}
        # session key -> (extra excluded folders, case sensitivity override)
        self._overrides: dict[int, tuple[tuple[str, ...], Optional[bool]]] = {}

    @staticmethod
    def session_key(ctx: Context) -> int:
        """Produce a stable per-session key for active vault tracking."""
        return id(ctx.session)

    def set_active(
        self,
        ctx: Context,
        vault_name: str,
        exclude_folders: Optional[Iterable[str]] = None,
        case_sensitive: Optional[bool] = None,
    ) -> VaultContext:
        """Set the active vault for a client session.

        ``exclude_folders`` and ``case_sensitive`` apply to this session's
        operations on that vault and replace any earlier overrides.

        Raises:
            ValueError: If ``vault_name`` is not present in the configuration.
        """
        metadata = self.configuration.get(vault_name)
        key = self.session_key(ctx)
        self._active[key] = metadata.name
        self._overrides[key] = (tuple(exclude_folders or ()), case_sensitive)
        return self._context(metadata, ctx)

    def get_active(self, ctx: Context) -> VaultMetadata:
        """Return the session's vault, falling back to the configured default."""
        vault_name = self._active.get(self.session_key(ctx), self.configuration.default_vault)
        return self.configuration.get(vault_name)

    def _context(self, metadata: VaultMetadata, ctx: Optional[Context]) -> VaultContext:
        if ctx is None or self._active.get(self.session_key(ctx)) != metadata.name:
            return VaultContext.from_metadata(metadata)
        exclude_folders, case_sensitive = self._overrides.get(self.session_key(ctx), ((), None))
        return VaultContext.from_metadata(metadata, exclude_folders=exclude_folders, case_sensitive=case_sensitive)

    def resolve(self, vault: Optional[str], ctx: Optional[Context] = None) -> VaultContext:
        """Resolve which vault an operation should act on.

        Args:
            vault: Optional friendly vault name provided directly by the caller.
            ctx: Optional context used to infer the active vault when ``vault`` is
                not supplied. Session overrides apply whenever the resolved vault
                is the session's active vault.

        Raises:
            ValueError: If the supplied ``vault`` name is not recognized.
        """
        if vault:
            metadata = self.configuration.get(vault)
        elif ctx is not None:
            metadata = self.get_active(ctx)
        else:
            metadata = self.configuration.get(self.configuration.default_vault)
        return self._context(metadata, ctx)
