"""Exceptions raised by the action pipeline."""

from typing import List


class PipelineError(Exception):
    """Base class for action pipeline errors."""


class BatchValidationError(PipelineError):
    """Raised when a batch fails re-validation at confirm time. Nothing was executed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class UnknownActionKindError(PipelineError):
    """A kind reached dispatch without a handler. Validation should make this impossible."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No store operation registered for action kind '{kind}'")


class HistoryNotFoundError(PipelineError):
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"History entry '{entry_id}' not found")


class HistoryConflictError(PipelineError):
    """The entry is not in the status the requested transition starts from."""

    def __init__(self, entry_id: str, status: str, message: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(message)


class SnapshotMissingError(PipelineError):
    def __init__(self, entry_id: str, snapshot: str):
        self.entry_id = entry_id
        self.snapshot = snapshot
        super().__init__(f"No {snapshot} snapshot available for history entry '{entry_id}'")
