"""Domain errors for discoverease-bates.

Services raise these; the API layer maps each kind to an HTTP status.
"""


class BatesEngineError(Exception):
    """Base class for all engine errors.

    Attributes:
        kind: Stable machine-readable error kind.
        status_code: HTTP status returned by the API layer.
    """

    kind: str = "internal"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(BatesEngineError):
    """Bad count, malformed prefix, unsupported export format, empty batch."""

    kind = "invalid_argument"
    status_code = 400


class NotFoundError(BatesEngineError):
    """A referenced case, production set, document or entry does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(BatesEngineError):
    """A counter changed between read and write. Callers may retry."""

    kind = "conflict"
    status_code = 409


class AllocationTimeoutError(ConflictError):
    """An allocation transaction exceeded its time bound and was rolled back."""

    kind = "allocation_timeout"


class ExportNotImplementedError(BatesEngineError):
    """The requested export format is declared but not available."""

    kind = "not_implemented"
    status_code = 501
