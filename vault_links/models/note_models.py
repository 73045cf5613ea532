"""Pydantic input models for note deletion and tag editing."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from .base import BaseNoteInput


class DeleteNoteInput(BaseNoteInput):
    """Input model for delete_vault_note tool.

    Examples:
        >>> DeleteNoteInput(title="Scratch")
        >>> DeleteNoteInput(title="Old", check_backlinks=False, to_trash=False)
    """

    check_backlinks: bool = Field(
        True,
        description="Refuse to delete while other notes still link to this note.",
    )

    to_trash: bool = Field(
        True,
        description="Move the note into the vault's .trash folder instead of deleting it.",
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"title": "Scratch", "check_backlinks": True, "to_trash": True, "vault": None}
            ]
        }


class EditTagsInput(BaseNoteInput):
    """Input model for edit_note_tags tool.

    Examples:
        >>> EditTagsInput(title="Projects/Alpha", add=["project/alpha"])
        >>> EditTagsInput(title="Inbox", remove=["todo"])
    """

    add: list[str] = Field(
        default_factory=list,
        description="Tags to add to the frontmatter tags list (with or without '#').",
    )

    remove: list[str] = Field(
        default_factory=list,
        description="Tags to remove from frontmatter and inline #tag text.",
    )

    @field_validator('add', 'remove')
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Strip '#' markers and reject empty tags or tags containing spaces."""
        cleaned: list[str] = []
        for raw in v:
            tag = raw.strip().lstrip("#").strip("/")
            if not tag:
                raise ValueError("Tags cannot be empty.")
            if any(char.isspace() for char in tag):
                raise ValueError(f"Tag '{raw}' cannot contain whitespace.")
            cleaned.append(tag)
        return cleaned

    @model_validator(mode='after')
    def validate_has_changes(self) -> 'EditTagsInput':
        if not self.add and not self.remove:
            raise ValueError("Provide at least one tag to add or remove.")
        overlap = sorted(set(self.add) & set(self.remove))
        if overlap:
            raise ValueError(f"Tags cannot be both added and removed: {', '.join(overlap)}")
        return self
