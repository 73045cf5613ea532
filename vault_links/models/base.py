"""Base Pydantic models for MCP tool input validation.

Base Models:
- BaseVaultInput: optional vault selection shared by every vault-scoped tool
- BaseNoteInput: adds a validated note identifier
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, field_validator


def clean_vault_path(v: str, label: str = "Note title") -> str:
    """Validate a vault-relative path supplied by a client.

    Enforces:
    - Non-empty value
    - No '.' or '..' path segments
    - Relative path only (no leading '/')

    Raises:
        ValueError: If the path is empty, absolute, or attempts traversal.
    """
    cleaned = v.strip().replace("\\", "/")

    if not cleaned:
        raise ValueError(f"{label} cannot be empty.")

    parts = [part for part in cleaned.rstrip("/").split("/")]
    if any(part in {".", ".."} for part in parts):
        raise ValueError(
            f"{label} cannot contain '.' or '..' path segments. "
            f"Invalid value: '{cleaned}'"
        )

    if cleaned.startswith("/"):
        raise ValueError(
            f"{label} must be a relative path within the vault. "
            "Do not start with '/'. "
            f"Invalid value: '{cleaned}'"
        )

    return cleaned


class BaseVaultInput(BaseModel):
    """Base model for tools that act on one vault."""

    vault: Optional[str] = Field(
        None,
        description=(
            "Vault name (omit to use active vault). "
            "Use list_vaults() to discover available vaults."
        )
    )

    @field_validator('vault')
    @classmethod
    def validate_vault(cls, v: Optional[str]) -> Optional[str]:
        """Reject empty vault names; strip whitespace."""
        if v is not None and not v.strip():
            raise ValueError(
                "Vault name cannot be empty. "
                "Either omit the vault parameter to use the active vault, "
                "or provide a valid vault name from list_vaults()."
            )

        return v.strip() if v else None


class BaseNoteInput(BaseVaultInput):
    """Base model for operations on a single note."""

    title: str = Field(
        min_length=1,
        description=(
            "Note identifier (vault-relative path, .md optional). "
            "Examples: 'Projects/Budget 2024', 'Inbox'."
        ),
        examples=["Projects/Budget 2024", "Daily/2025-10-27", "Inbox"]
    )

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate a note identifier and strip a trailing ``.md``.

        Raises:
            ValueError: If the title is empty, absolute, or contains traversal segments
        """
        cleaned = clean_vault_path(v)

        if cleaned.lower().endswith(".md"):
            cleaned = cleaned[:-3]

        if not cleaned:
            raise ValueError(
                "Note title cannot be just '.md'. "
                "Provide a valid note name."
            )

        return cleaned
