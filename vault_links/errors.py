"""Exception types raised by vault link operations.

Batch-level failures are raised and abort the whole operation. File-level
failures are recorded as :class:`~vault_links.data_models.FileIssue` entries
in the returned report instead.
"""

from __future__ import annotations


class VaultLinksError(Exception):
    """Base class for all vault link errors."""


class BatchValidationError(VaultLinksError, ValueError):
    """A move batch is malformed; nothing was written."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Move batch rejected: " + "; ".join(self.problems))


class MoveConflictError(VaultLinksError, FileExistsError):
    """One or more move destinations already exist and ``force`` was not set."""

    def __init__(self, conflicts: list[str]) -> None:
        self.conflicts = list(conflicts)
        super().__init__(
            "Destination(s) already exist: "
            + ", ".join(self.conflicts)
            + ". Retry with force=True to overwrite."
        )


class MoveExecutionError(VaultLinksError, OSError):
    """The physical move phase failed and was rolled back."""

    def __init__(self, source: str, destination: str, cause: OSError) -> None:
        self.source = source
        self.destination = destination
        self.cause = cause
        super().__init__(f"Failed to move '{source}' to '{destination}': {cause}")


class NoteHasBacklinksError(VaultLinksError, ValueError):
    """A note cannot be deleted because other notes still link to it."""

    def __init__(self, note: str, backlinks: list[str]) -> None:
        self.note = note
        self.backlinks = list(backlinks)
        super().__init__(
            f"Note '{note}' has {len(self.backlinks)} backlink(s): "
            + ", ".join(self.backlinks)
            + ". Set check_backlinks=False to delete anyway."
        )
