"""Errors raised by the knowledge-graph engine."""


class NotegraphError(Exception):
    """Base class for all notegraph errors."""


class NoteNotFoundError(NotegraphError):
    """Raised when a note id does not exist in the owner's collection."""

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id


class InvalidTransitionError(NotegraphError):
    """Raised when a suggestion decision would leave a terminal state."""

    def __init__(self, source_id: str, target_id: str, current: str, requested: str):
        super().__init__(
            f"Suggestion {source_id} -> {target_id} is already {current}, cannot mark {requested}"
        )
        self.source_id = source_id
        self.target_id = target_id


class GenerationError(NotegraphError):
    """Raised when the generation backend fails after all retries."""


class OperationCancelledError(NotegraphError):
    """Raised when a registered operation is cancelled by the caller."""

    def __init__(self, operation_id: str):
        super().__init__(f"Operation {operation_id} was cancelled")
        self.operation_id = operation_id


class OperationTimeoutError(NotegraphError):
    """Raised when a registered operation exceeds its timeout."""

    def __init__(self, operation_id: str, timeout: float):
        super().__init__(f"Operation {operation_id} timed out after {timeout}s")
        self.operation_id = operation_id
        self.timeout = timeout
