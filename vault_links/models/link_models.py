"""Pydantic input models for link validation, analytics, and backlinks."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator

from .base import BaseNoteInput, BaseVaultInput


class ValidateLinksInput(BaseVaultInput):
    """Input model for validate_vault_links tool.

    Examples:
        >>> ValidateLinksInput()
        >>> ValidateLinksInput(fix=True, types=["wiki"])
    """

    fix: bool = Field(
        False,
        description=(
            "Rewrite broken wiki links that have exactly one matching note. "
            "Markdown links are only reported."
        )
    )

    types: list[Literal["wiki", "markdown"]] = Field(
        default_factory=lambda: ["wiki", "markdown"],
        min_length=1,
        description="Link kinds to check.",
    )

    @field_validator('types')
    @classmethod
    def dedupe_types(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"fix": False, "types": ["wiki", "markdown"], "vault": None},
                {"fix": True, "types": ["wiki"], "vault": "personal"}
            ]
        }


class AnalyzeVaultInput(BaseVaultInput):
    """Input model for analyze_vault_links tool.

    Examples:
        >>> AnalyzeVaultInput(exclude_folders=["Templates"])
    """

    exclude_folders: Optional[list[str]] = Field(
        None,
        description=(
            "Extra folder names to skip. Dot-folders, .obsidian, .trash and "
            "node_modules are always skipped."
        )
    )

    @field_validator('exclude_folders')
    @classmethod
    def validate_folders(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        cleaned = [folder.strip().strip("/") for folder in v]
        if any(not folder for folder in cleaned):
            raise ValueError("Excluded folder names cannot be empty.")
        return cleaned


class BacklinksInput(BaseNoteInput):
    """Input model for find_note_backlinks tool.

    Examples:
        >>> BacklinksInput(title="Projects/Budget 2024")
    """
