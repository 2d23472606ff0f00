"""Typed failures raised by the collection lifecycle core."""

from __future__ import annotations


class CollectionError(RuntimeError):
    """Base class for every error the core surfaces to callers."""

    kind = "collection_error"
    retryable = False


class ValidationError(CollectionError):
    """Malformed input such as an incomplete checklist or a negative weight."""

    kind = "validation_error"


class ConflictError(CollectionError):
    """A state-machine precondition does not hold for the current record."""

    kind = "conflict"


class NotFoundError(CollectionError):
    kind = "not_found"


class TransportError(CollectionError):
    """Network or storage failure talking to the remote collaborator.

    The only category a caller may retry, either manually or by replaying
    the offline queue.
    """

    kind = "transport_error"
    retryable = True


class ExportError(CollectionError):
    """Report persistence or sharing failed.

    ``content`` carries the rendered report so callers can still hand it to
    the user.
    """

    kind = "export_error"

    def __init__(self, message: str, *, content: str | None = None) -> None:
        super().__init__(message)
        self.content = content
