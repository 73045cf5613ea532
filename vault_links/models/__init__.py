"""Pydantic input models for MCP tool validation.

Each model is the input schema of one tool, with field-level validation and
descriptive error messages.

Architecture:
- base: shared vault/note fields (BaseVaultInput, BaseNoteInput)
- move_models: batch note and folder moves
- link_models: link validation, analytics, backlinks
- note_models: deletion and tag editing
- vault_models: vault listing and selection
"""

from .base import BaseVaultInput, BaseNoteInput
from .move_models import MoveSpec, MoveNotesInput
from .link_models import ValidateLinksInput, AnalyzeVaultInput, BacklinksInput
from .note_models import DeleteNoteInput, EditTagsInput
from .vault_models import ListVaultsInput, SetActiveVaultInput

__all__ = [
    "BaseVaultInput",
    "BaseNoteInput",
    "MoveSpec",
    "MoveNotesInput",
    "ValidateLinksInput",
    "AnalyzeVaultInput",
    "BacklinksInput",
    "DeleteNoteInput",
    "EditTagsInput",
    "ListVaultsInput",
    "SetActiveVaultInput",
]
