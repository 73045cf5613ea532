"""Pydantic input models for batch move operations."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import BaseVaultInput, clean_vault_path


class MoveSpec(BaseModel):
    """One requested move: a note or a folder, to a new vault-relative path.

    Examples:
        >>> MoveSpec(source="Notes/B", destination="Archive/B")
        >>> MoveSpec(source="Projects/2023/", destination="Archive/2023")
    """

    source: str = Field(
        min_length=1,
        description=(
            "Current note path (.md optional) or folder path. "
            "Examples: 'Notes/B', 'Projects/2023'"
        )
    )

    destination: str = Field(
        min_length=1,
        description=(
            "New note path, or the new folder path when the source is a folder. "
            "Examples: 'Archive/B', 'Archive/2023'"
        )
    )

    @field_validator('source', 'destination')
    @classmethod
    def validate_path(cls, v: str) -> str:
        return clean_vault_path(v, "Move path")

    @model_validator(mode='after')
    def validate_different(self) -> 'MoveSpec':
        """Ensure the move actually changes the path."""
        if self.source.rstrip("/") == self.destination.rstrip("/"):
            raise ValueError(
                f"Source and destination are the same: '{self.source}'. "
                "Provide a different destination."
            )
        return self

    def as_tuple(self) -> tuple[str, str]:
        return self.source, self.destination


class MoveNotesInput(BaseVaultInput):
    """Input model for move_notes tool.

    Moves a batch of notes and/or folders atomically with respect to validation and
    rewrites every link that referenced them.

    Examples:
        >>> MoveNotesInput(moves=[{"source": "Notes/B", "destination": "Archive/B"}])
        >>> MoveNotesInput(moves=[{"source": "Old", "destination": "New"}], dry_run=True)
    """

    moves: list[MoveSpec] = Field(
        min_length=1,
        description="Moves to apply together. Sources and destinations must be unique.",
    )

    force: bool = Field(
        False,
        description="Overwrite destinations that already exist. Default: False.",
    )

    dry_run: bool = Field(
        False,
        description="Report planned moves and link rewrites without changing any file.",
    )

    @model_validator(mode='after')
    def validate_unique(self) -> 'MoveNotesInput':
        """Reject batches that repeat a source or a destination."""
        sources = [move.source.rstrip("/") for move in self.moves]
        destinations = [move.destination.rstrip("/") for move in self.moves]
        for label, values in (("source", sources), ("destination", destinations)):
            repeated = sorted({value for value in values if values.count(value) > 1})
            if repeated:
                raise ValueError(
                    f"Each {label} may appear only once per batch. "
                    f"Repeated: {', '.join(repeated)}"
                )
        return self

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {
                    "moves": [{"source": "Notes/B", "destination": "Archive/B"}],
                    "force": False,
                    "dry_run": True,
                    "vault": None
                }
            ]
        }
