"""Pydantic input models for vault listing and per-session vault selection."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ListVaultsInput(BaseModel):
    """Input model for list_vaults tool (no parameters)."""


class SetActiveVaultInput(BaseModel):
    """Input model for set_active_vault tool.

    Besides choosing the vault, a session may skip extra folders or override how
    note names are compared. Both settings last until the next set_active_vault call.

    Examples:
        >>> SetActiveVaultInput(vault="personal")
        >>> SetActiveVaultInput(vault="work", exclude_folders=["Templates"], case_sensitive=False)
    """

    vault: str = Field(
        min_length=1,
        description="Vault name from vaults.yaml (see list_vaults).",
        examples=["personal", "work"]
    )

    exclude_folders: Optional[list[str]] = Field(
        None,
        description=(
            "Extra folder names or vault-relative folder paths to skip for this session, "
            "on top of the vault's configured exclusions."
        )
    )

    case_sensitive: Optional[bool] = Field(
        None,
        description="Compare note names case-sensitively (omit to use the vault or host default).",
    )

    @field_validator('vault')
    @classmethod
    def validate_vault(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Vault name cannot be empty. Use list_vaults() to see available vaults.")
        return cleaned

    @field_validator('exclude_folders')
    @classmethod
    def validate_folders(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        cleaned = [folder.strip().replace("\\", "/").strip("/") for folder in v]
        if any(not folder or ".." in folder.split("/") for folder in cleaned):
            raise ValueError("Excluded folders must be non-empty paths inside the vault.")
        return list(dict.fromkeys(cleaned))

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"vault": "personal"},
                {"vault": "work", "exclude_folders": ["Templates", "Archive/2019"], "case_sensitive": False}
            ]
        }
