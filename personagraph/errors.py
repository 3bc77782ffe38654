"""Exception types for PersonaGraph."""

from typing import Any


class PersonaGraphError(Exception):
    """Base class for all PersonaGraph errors."""


class StorageError(PersonaGraphError):
    """A storage backend primitive failed."""


class GraphWriteError(PersonaGraphError):
    """A create/merge/update/delete against the graph failed.

    Carries the operation name and the fields identifying the record
    (persona, name/type or source/target/type) so that a failed write is
    never reported anonymously. The storage exception is chained as
    ``__cause__``.
    """

    def __init__(self, operation: str, cause: BaseException | None = None, **identifiers: Any):
        self.operation = operation
        self.identifiers = identifiers
        self.cause = cause
        detail = ", ".join(f"{k}={v!r}" for k, v in identifiers.items())
        message = f"{operation} failed ({detail})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
