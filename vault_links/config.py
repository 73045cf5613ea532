"""Configuration loading and vault registry."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from vault_links.constants import CONFIG_ENV_VAR, CONFIG_PATH
from vault_links.data_models import VaultMetadata, VaultConfiguration

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def default_config_path() -> Path:
    """Return the configuration path, honouring the ``VAULT_LINKS_CONFIG`` override."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return CONFIG_PATH


def _parse_exclude_folders(name: str, raw: object) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ValueError(f"Vault '{name}' has an 'exclude_folders' value that is not a list of strings")
    return tuple(item.strip() for item in raw if item.strip())


def load_vault_configuration(config_path: Optional[Path] = None) -> VaultConfiguration:
    """Load and validate the vault configuration file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to
            ``$VAULT_LINKS_CONFIG`` or ``vaults.yaml`` at the project root.

    Returns:
        A fully populated :class:`VaultConfiguration` containing normalized vault
        metadata and the configured default vault name.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        ValueError: If the file exists but does not provide the expected structure
            (missing default, empty mapping, invalid entries, etc.).
    """
    config_path = config_path or default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Vault configuration file not found at {config_path}")

    raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw_config, dict):
        raise ValueError("Vault configuration must be a YAML mapping")

    vaults_section = raw_config.get("vaults")
    if not isinstance(vaults_section, dict) or not vaults_section:
        raise ValueError("Vault configuration must include a non-empty 'vaults' mapping")

    processed: dict[str, VaultMetadata] = {}
    for name, entry in vaults_section.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Vault '{name}' must map to a dictionary of settings")

        raw_path = entry.get("path")
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError(f"Vault '{name}' is missing a valid 'path' string")

        resolved_path = Path(raw_path).expanduser()
        try:
            resolved_path = resolved_path.resolve(strict=False)
        except RuntimeError:
            # resolve can raise if underlying filesystem is inaccessible; fall back to expanded path
            resolved_path = resolved_path

        case_sensitive = entry.get("case_sensitive")
        if case_sensitive is not None and not isinstance(case_sensitive, bool):
            raise ValueError(f"Vault '{name}' has a non-boolean 'case_sensitive' value")

        description = str(entry.get("description") or "").strip()
        exists = resolved_path.is_dir()
        if not exists:
            logger.warning("Configured vault '%s' does not exist at %s", name, resolved_path)

        processed[name] = VaultMetadata(
            name=name,
            path=resolved_path,
            description=description,
            exists=exists,
            exclude_folders=_parse_exclude_folders(name, entry.get("exclude_folders")),
            case_sensitive=case_sensitive,
        )

    default_vault = raw_config.get("default")
    if not isinstance(default_vault, str) or default_vault not in processed:
        raise ValueError("Vault configuration must specify a 'default' vault present in the mapping")

    log_level = raw_config.get("log_level")
    if log_level is not None:
        if not isinstance(log_level, str) or log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{log_level}' in vault configuration")
        log_level = log_level.upper()

    return VaultConfiguration(default_vault=default_vault, vaults=processed, log_level=log_level)
